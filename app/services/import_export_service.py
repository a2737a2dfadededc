# File: app/services/import_export_service.py

"""
Import and export service for the back-office.

Imports run one row at a time through a fixed pipeline:

    map -> validate foreign keys -> reconcile -> dispatch

Each row ends with exactly one outcome. Mapping, foreign key and storage
failures are recorded on the row and the batch moves on; rows already
written stay committed. A batch can only be cancelled between rows, either
through a ``threading.Event`` or when the configured import timeout elapses.

Exports read a whole table, format every schema field for display and write
a single-sheet workbook. The service also produces empty import templates
listing the accepted headers of each entity type.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.events import (
    DataExportedEvent,
    DataImportAbortedEvent,
    DataImportedEvent,
    EventBus,
    global_event_bus,
)
from app.core.exceptions import (
    BatchAbort,
    ForeignKeyError,
    MappingError,
    StorageError,
    ValidationException,
)
from app.db.models.base import utcnow
from app.db.models.enums import EntityType
from app.repositories.storage_repository import StorageRepository
from app.services.entity_mappers import map_row
from app.services.entity_schemas import (
    EntitySchema,
    FieldRole,
    FieldType,
    get_schema,
    get_supported_entity_types,
)
from app.services.field_coercion import (
    format_boolean_for_export,
    format_date_for_export,
    format_date_time_for_export,
)
from app.services.foreign_key_validator import ForeignKeyValidator
from app.services.reconciliation_service import ReconciliationEngine, Verdict, VerdictKind
from app.services.spreadsheet_codec import SpreadsheetCodec

logger = logging.getLogger(__name__)

IMPORT_MODES = ("import", "preview")
EXPORT_ID_HEADER = "ID"
EXPORT_CREATED_HEADER = "Creato il"
EXPORT_UPDATED_HEADER = "Aggiornato il"


class RowOutcome(str, Enum):
    IMPORTED = "imported"
    UPDATED = "updated"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    VALIDATED = "validated"
    FAILED = "failed"


class RowErrorType(str, Enum):
    MAPPING_ERROR = "MAPPING_ERROR"
    FK_ERROR = "FK_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"


@dataclass
class ImportRowResult:
    """Result of one input row; ``row_index`` is its 0-based position in the batch."""

    row_index: int
    entity_type: str
    outcome: RowOutcome
    verdict: Optional[Verdict] = None
    record_id: Optional[str] = None
    updated_fields: List[str] = field(default_factory=list)
    error_type: Optional[RowErrorType] = None
    error: Optional[str] = None
    error_field: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.outcome == RowOutcome.FAILED

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "row_index": self.row_index,
            "entity_type": self.entity_type,
            "outcome": self.outcome.value,
            "verdict": self.verdict.kind.value if self.verdict else None,
            "id": self.record_id,
            "updated_fields": list(self.updated_fields),
        }
        if self.failed:
            result["error_type"] = self.error_type.value if self.error_type else None
            result["error"] = self.error
            result["field"] = self.error_field
        return result


class ImportReport:
    """Container for the per-row results and counters of one batch."""

    def __init__(self, entity_type: EntityType, mode: str = "import", total_rows: int = 0):
        self.entity_type = entity_type
        self.mode = mode
        self.total_rows = total_rows
        self.results: List[ImportRowResult] = []
        self.aborted = False
        self.abort_reason: Optional[str] = None

    def add(self, result: ImportRowResult) -> None:
        self.results.append(result)

    def count(self, outcome: RowOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    def count_verdict(self, kind: VerdictKind) -> int:
        return sum(1 for r in self.results if r.verdict is not None and r.verdict.kind == kind)

    @property
    def processed_rows(self) -> int:
        return len(self.results)

    @property
    def errors(self) -> List[ImportRowResult]:
        return [r for r in self.results if r.failed]

    def summary(self) -> Dict[str, int]:
        return {
            "total_rows": self.total_rows,
            "processed_rows": self.processed_rows,
            "imported": self.count(RowOutcome.IMPORTED),
            "updated": self.count(RowOutcome.UPDATED),
            "skipped_duplicates": self.count(RowOutcome.SKIPPED_DUPLICATE),
            "validated": self.count(RowOutcome.VALIDATED),
            "failed": self.count(RowOutcome.FAILED),
            "new": self.count_verdict(VerdictKind.NEW),
            "to_update": self.count_verdict(VerdictKind.UPDATE),
            "duplicates": self.count_verdict(VerdictKind.DUPLICATE),
        }

    @property
    def message(self) -> str:
        s = self.summary()
        if self.aborted:
            return (
                f"Import interrotto dopo {s['processed_rows']} di {s['total_rows']} righe: "
                f"{self.abort_reason}"
            )
        if self.mode == "preview":
            return (
                f"Anteprima completata: {s['new']} nuovi, {s['to_update']} da aggiornare, "
                f"{s['duplicates']} duplicati, {s['failed']} errori."
            )
        return (
            f"Import completato: {s['imported']} nuovi, {s['updated']} aggiornati, "
            f"{s['skipped_duplicates']} duplicati ignorati, {s['failed']} errori."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type.value,
            "mode": self.mode,
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "summary": self.summary(),
            "results": [r.to_dict() for r in self.results],
            "errors": [r.to_dict() for r in self.errors],
        }


@dataclass
class ExportResult:
    """
    Outcome of an export.

    An empty table is not an error: ``has_data`` is False, ``message``
    explains why and no workbook is produced.
    """

    entity_type: EntityType
    has_data: bool
    row_count: int = 0
    content: Optional[bytes] = None
    filename: Optional[str] = None
    message: Optional[str] = None


class ImportExportService:
    """
    Service for importing spreadsheet rows into storage and exporting tables.

    Provides functionality for:
    - Reconciling raw rows against existing records (insert, update or skip)
    - Read-only previews of an import
    - Exporting a table to a formatted workbook
    - Import template generation
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        storage: Optional[StorageRepository] = None,
        codec: Optional[SpreadsheetCodec] = None,
        event_bus: Optional[EventBus] = None,
        timeout_seconds: Optional[int] = None,
    ):
        """
        Initialize import/export service with dependencies.

        Args:
            session: Database session, used when no storage is given
            storage: Storage collaborator shared by the whole pipeline
            codec: Spreadsheet reader/writer
            event_bus: Event bus for import/export events
            timeout_seconds: Per-batch deadline, 0 to disable; defaults to settings
        """
        if storage is None:
            if session is None:
                raise ValueError("Either a session or a storage must be provided")
            storage = StorageRepository(session)
        self.storage = storage
        self.codec = codec or SpreadsheetCodec()
        self.event_bus = event_bus if event_bus is not None else global_event_bus
        self.timeout_seconds = (
            settings.IMPORT_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )
        self.fk_validator = ForeignKeyValidator(self.storage)
        self.reconciler = ReconciliationEngine(self.storage)

    # -- entity types ---------------------------------------------------------

    def get_allowed_entity_types(self) -> List[EntityType]:
        """Entity types accepted for import and export, restricted by settings when configured."""
        configured = settings.IMPORTABLE_ENTITY_TYPES
        if not configured:
            return get_supported_entity_types()
        allowed = []
        for value in configured:
            try:
                allowed.append(EntityType.from_value(value))
            except ValueError:
                logger.warning(f"Ignoring unknown entity type in IMPORTABLE_ENTITY_TYPES: {value}")
        return allowed

    def resolve_entity_type(self, value: Any) -> EntityType:
        """
        Resolve a requested entity type against the allow-list.

        Raises:
            ValidationException: If the value is missing, unknown or not allowed
        """
        allowed = self.get_allowed_entity_types()
        entity_type = None
        if isinstance(value, EntityType):
            entity_type = value
        elif isinstance(value, str) and value.strip():
            try:
                entity_type = EntityType.from_value(value.strip())
            except ValueError:
                entity_type = None

        if entity_type is None or entity_type not in allowed:
            raise ValidationException(
                f"Tipo di entità non valido: {value}",
                {"entity_type": [f"Must be one of: {', '.join(e.value for e in allowed)}"]},
            )
        return entity_type

    # -- import ---------------------------------------------------------------

    def import_rows(
        self,
        entity_type: Any,
        rows: Sequence[Any],
        mode: str = "import",
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportReport:
        """
        Import a batch of raw rows.

        Args:
            entity_type: Target entity type (enum member or table name)
            rows: Raw rows keyed by spreadsheet header
            mode: "import" to write, "preview" to classify rows without writing
            cancel_event: Optional event checked between rows

        Returns:
            ImportReport with one result per processed row

        Raises:
            ValidationException: If the entity type, mode or batch size is invalid
            BatchAbort: If the batch is cancelled or times out; carries the partial report
        """
        entity_type = self.resolve_entity_type(entity_type)
        if mode not in IMPORT_MODES:
            raise ValidationException(
                f"Modalità non valida: {mode}", {"mode": [f"Must be one of: {', '.join(IMPORT_MODES)}"]}
            )
        rows = list(rows or [])
        if settings.IMPORT_MAX_ROWS and len(rows) > settings.IMPORT_MAX_ROWS:
            raise ValidationException(
                f"Troppe righe: {len(rows)}",
                {"data": [f"At most {settings.IMPORT_MAX_ROWS} rows per batch"]},
            )

        report = ImportReport(entity_type, mode, total_rows=len(rows))
        deadline = time.monotonic() + self.timeout_seconds if self.timeout_seconds else None
        logger.info(f"Starting {mode} of {len(rows)} rows into {entity_type.value}")

        for index, raw_row in enumerate(rows):
            reason = self._cancellation_reason(cancel_event, deadline)
            if reason:
                self._abort(report, reason)
            report.add(self._process_row(entity_type, index, raw_row, mode))

        summary = report.summary()
        logger.info(f"Finished {mode} into {entity_type.value}: {summary}")
        self.event_bus.publish(
            DataImportedEvent(
                entity_type=entity_type.value,
                mode=mode,
                total_rows=report.total_rows,
                imported=summary["imported"],
                updated=summary["updated"],
                skipped_duplicates=summary["skipped_duplicates"],
                failed=summary["failed"],
            )
        )
        return report

    def import_file(
        self,
        entity_type: Any,
        file_bytes: bytes,
        file_format: str = "excel",
        mode: str = "import",
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportReport:
        """Parse an uploaded spreadsheet and import its rows."""
        entity_type = self.resolve_entity_type(entity_type)
        rows = self.codec.parse(file_bytes, file_format)
        return self.import_rows(entity_type, rows, mode=mode, cancel_event=cancel_event)

    @staticmethod
    def _cancellation_reason(
        cancel_event: Optional[threading.Event], deadline: Optional[float]
    ) -> Optional[str]:
        if cancel_event is not None and cancel_event.is_set():
            return "operazione annullata"
        if deadline is not None and time.monotonic() > deadline:
            return "tempo massimo di importazione superato"
        return None

    def _abort(self, report: ImportReport, reason: str) -> None:
        report.aborted = True
        report.abort_reason = reason
        logger.warning(
            f"Import into {report.entity_type.value} aborted after "
            f"{report.processed_rows}/{report.total_rows} rows: {reason}"
        )
        self.event_bus.publish(
            DataImportAbortedEvent(
                entity_type=report.entity_type.value,
                reason=reason,
                processed_rows=report.processed_rows,
            )
        )
        raise BatchAbort(reason, report)

    def _process_row(
        self, entity_type: EntityType, index: int, raw_row: Any, mode: str
    ) -> ImportRowResult:
        result = ImportRowResult(row_index=index, entity_type=entity_type.value, outcome=RowOutcome.FAILED)

        if not isinstance(raw_row, Mapping):
            result.error_type = RowErrorType.MAPPING_ERROR
            result.error = "La riga non è un oggetto"
            return result

        try:
            payload = map_row(entity_type, raw_row, self.storage)
            self.fk_validator.validate(entity_type, payload)
            result.verdict = self.reconciler.reconcile(entity_type, payload)
            result.record_id = result.verdict.record_id
            result.updated_fields = list(result.verdict.updated_fields)
            if mode == "preview":
                result.outcome = RowOutcome.VALIDATED
            else:
                self._dispatch(entity_type, payload, result)
        except MappingError as e:
            result.error_type = RowErrorType.MAPPING_ERROR
            result.error = e.message
            result.error_field = e.field
        except ForeignKeyError as e:
            result.error_type = RowErrorType.FK_ERROR
            result.error = e.message
            result.error_field = e.field
        except StorageError as e:
            result.error_type = RowErrorType.STORAGE_ERROR
            result.error = e.message

        if result.failed:
            logger.debug(f"Row {index} of {entity_type.value} failed: {result.error}")
        else:
            logger.debug(f"Row {index} of {entity_type.value}: {result.outcome.value} {result.record_id}")
        return result

    def _dispatch(self, entity_type: EntityType, payload: Dict[str, Any], result: ImportRowResult) -> None:
        table = entity_type.value
        verdict = result.verdict
        now = utcnow()

        if verdict.kind == VerdictKind.NEW:
            data = dict(payload, created_at=now, updated_at=now)
            result.record_id = self.storage.insert(table, data)
            result.outcome = RowOutcome.IMPORTED
        elif verdict.kind == VerdictKind.UPDATE:
            data = {k: v for k, v in payload.items() if k not in ("id", "created_at")}
            data["updated_at"] = now
            self.storage.update(table, verdict.record_id, data)
            result.outcome = RowOutcome.UPDATED
        else:
            result.outcome = RowOutcome.SKIPPED_DUPLICATE

    # -- export ---------------------------------------------------------------

    def export_table(self, entity_type: Any) -> ExportResult:
        """
        Export every row of a table to a single-sheet workbook.

        Returns:
            ExportResult; ``has_data`` is False when the table is empty
        """
        entity_type = self.resolve_entity_type(entity_type)
        schema = get_schema(entity_type)
        rows = self.storage.select(schema.table)

        if not rows:
            logger.info(f"Export of {schema.table}: no rows")
            return ExportResult(
                entity_type=entity_type,
                has_data=False,
                message=f"Nessun dato da esportare per {schema.label or schema.table}.",
            )

        columns = self._export_columns(schema)
        formatted = [self._format_row(schema, row) for row in rows]
        filename = f"{entity_type.value}_export.xlsx"
        content = self.codec.serialize(formatted, sheet_name=schema.table, columns=columns)

        logger.info(f"Exported {len(rows)} rows from {schema.table}")
        self.event_bus.publish(
            DataExportedEvent(entity_type=entity_type.value, row_count=len(rows), filename=filename)
        )
        return ExportResult(
            entity_type=entity_type,
            has_data=True,
            row_count=len(rows),
            content=content,
            filename=filename,
            message=f"Esportate {len(rows)} righe da {schema.label or schema.table}.",
        )

    @staticmethod
    def _export_columns(schema: EntitySchema) -> List[str]:
        return [EXPORT_ID_HEADER] + schema.headers + [EXPORT_CREATED_HEADER, EXPORT_UPDATED_HEADER]

    def _format_row(self, schema: EntitySchema, row: Mapping[str, Any]) -> Dict[str, Any]:
        formatted: Dict[str, Any] = {EXPORT_ID_HEADER: row.get("id")}
        for spec in schema.fields:
            formatted[spec.header] = self._format_value(spec.field_type, row.get(spec.name))
        formatted[EXPORT_CREATED_HEADER] = self._format_value(FieldType.DATETIME, row.get("created_at"))
        formatted[EXPORT_UPDATED_HEADER] = self._format_value(FieldType.DATETIME, row.get("updated_at"))
        return formatted

    @staticmethod
    def _format_value(field_type: FieldType, value: Any) -> Any:
        if value is None:
            return None
        if field_type == FieldType.BOOLEAN:
            return format_boolean_for_export(value, settings.EXPORT_TRUE_LABEL, settings.EXPORT_FALSE_LABEL)
        if field_type == FieldType.DATE:
            return format_date_for_export(value, settings.EXPORT_DATE_FORMAT)
        if field_type == FieldType.DATETIME:
            return format_date_time_for_export(value, settings.EXPORT_DATETIME_FORMAT)
        return value

    # -- templates ------------------------------------------------------------

    def generate_import_template(self, entity_type: Any) -> bytes:
        """
        Generate an empty import workbook for an entity type.

        The data sheet carries the display header of every field followed by
        the shortcut code columns; the instructions sheet lists, for each
        column, its field, type, requiredness and accepted headers.
        """
        entity_type = self.resolve_entity_type(entity_type)
        schema = get_schema(entity_type)

        headers = schema.headers + [s.header for s in schema.shortcuts]
        instructions = [("Colonna", "Campo", "Tipo", "Obbligatorio", "Intestazioni accettate", "Note")]
        for spec in schema.fields:
            role = schema.role_of(spec.name)
            note = ""
            if spec.choices:
                note = "Valori: " + ", ".join(spec.choices.values())
            elif role == FieldRole.FOREIGN_KEY:
                note = f"ID di '{schema.get_foreign_key(spec.name).references.value}'"
            elif role == FieldRole.UNIQUE_MEMBER:
                note = "Usato per riconoscere record esistenti"
            instructions.append(
                (
                    spec.header,
                    spec.name,
                    spec.field_type.value,
                    "Sì" if spec.required else "No",
                    ", ".join(spec.aliases),
                    note,
                )
            )
        for shortcut in schema.shortcuts:
            rule = schema.get_foreign_key(shortcut.field)
            instructions.append(
                (
                    shortcut.header,
                    shortcut.field,
                    "codice",
                    "No",
                    ", ".join(shortcut.aliases),
                    f"In alternativa all'ID: cerca {rule.references.value}.{shortcut.lookup_column}",
                )
            )

        logger.info(f"Generated import template for {schema.table}")
        return self.codec.build_template(
            headers,
            sheet_name=schema.table,
            instructions=instructions,
            title=f"Modello di importazione: {schema.label or schema.table}",
        )
