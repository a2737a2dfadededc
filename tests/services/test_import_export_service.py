# tests/services/test_import_export_service.py

import io
import itertools
import threading
import uuid

import pandas as pd
import pytest

from app.core.config import settings
from app.core.events import DataExportedEvent, DataImportAbortedEvent, DataImportedEvent
from app.core.exceptions import BatchAbort, StorageError, ValidationException
from app.db.models.enums import EntityType
from app.services.import_export_service import ImportExportService, RowErrorType, RowOutcome
from app.services.reconciliation_service import VerdictKind


def _outcomes(report):
    return [r.outcome for r in report.results]


# --- End-to-end scenarios ---

def test_new_client_is_inserted(service, storage):
    report = service.import_rows("clienti", [{"ragione_sociale": "Acme", "partita_iva": ""}])

    result = report.results[0]
    assert result.outcome == RowOutcome.IMPORTED
    assert result.verdict.kind == VerdictKind.NEW
    stored = storage.select("clienti", {"ragione_sociale": "Acme"})
    assert len(stored) == 1
    assert stored[0]["id"] == result.record_id
    assert stored[0]["partita_iva"] is None
    assert stored[0]["attivo"] is True
    assert stored[0]["created_at"] is not None
    assert stored[0]["created_at"] == stored[0]["updated_at"]


def test_reimporting_same_row_is_duplicate(service, storage):
    row = {"ragione_sociale": "Acme", "partita_iva": ""}
    service.import_rows("clienti", [row])
    report = service.import_rows("clienti", [row])

    assert _outcomes(report) == [RowOutcome.SKIPPED_DUPLICATE]
    assert storage.count("clienti") == 1


def test_changed_field_updates_existing_record(service, storage):
    first = service.import_rows("clienti", [{"ragione_sociale": "Acme", "partita_iva": ""}])
    before = storage.select("clienti")[0]

    report = service.import_rows("clienti", [{"ragione_sociale": "Acme", "citta": "Roma"}])

    result = report.results[0]
    assert result.outcome == RowOutcome.UPDATED
    assert result.updated_fields == ["citta"]
    assert result.record_id == first.results[0].record_id
    after = storage.select("clienti")[0]
    assert after["citta"] == "Roma"
    assert after["created_at"] == before["created_at"]
    assert storage.count("clienti") == 1


def test_service_point_with_unknown_client_fails_without_write(service, storage):
    missing = str(uuid.uuid4())
    report = service.import_rows(
        "punti_servizio", [{"Nome Punto Servizio": "Magazzino", "ID Cliente": missing}]
    )

    result = report.results[0]
    assert result.outcome == RowOutcome.FAILED
    assert result.error_type == RowErrorType.FK_ERROR
    assert result.error_field == "id_cliente"
    assert missing in result.error
    assert storage.count("punti_servizio") == 0


def test_service_point_linked_by_codes(service, storage, acme, vigilux):
    report = service.import_rows(
        EntityType.SERVICE_POINT,
        [{"Nome Punto Servizio": "Magazzino", "Codice Cliente Manuale": "ACME01", "Codice Fornitore Manuale": "VGX"}],
    )

    assert _outcomes(report) == [RowOutcome.IMPORTED]
    stored = storage.select("punti_servizio")[0]
    assert stored["id_cliente"] == acme
    assert stored["fornitore_id"] == vigilux


# --- Batch behaviour ---

def test_every_row_gets_exactly_one_result(service, storage):
    rows = [
        {"Ragione Sociale": "Alfa"},
        {"Partita IVA": "123"},
        {"Ragione Sociale": "Alfa"},
        "not a row",
        {"Ragione Sociale": "Beta", "Città": "Bari"},
    ]
    report = service.import_rows("clienti", rows)

    assert [r.row_index for r in report.results] == [0, 1, 2, 3, 4]
    assert _outcomes(report) == [
        RowOutcome.IMPORTED,
        RowOutcome.FAILED,
        RowOutcome.SKIPPED_DUPLICATE,
        RowOutcome.FAILED,
        RowOutcome.IMPORTED,
    ]
    assert report.results[1].error_type == RowErrorType.MAPPING_ERROR
    assert report.results[1].error_field == "ragione_sociale"
    assert report.results[3].error_type == RowErrorType.MAPPING_ERROR

    summary = report.summary()
    assert summary["total_rows"] == 5
    assert summary["imported"] == 2
    assert summary["skipped_duplicates"] == 1
    assert summary["failed"] == 2
    assert storage.count("clienti") == 2


def test_out_of_range_amount_fails_only_its_row(service, storage):
    rows = [
        {"Tipo Servizio": "PIANTONAMENTO_ARMATO", "Importo": 10**400},
        {"Tipo Servizio": "BONIFICA", "Importo": 5},
    ]
    report = service.import_rows(EntityType.TARIFF, rows)

    assert _outcomes(report) == [RowOutcome.FAILED, RowOutcome.IMPORTED]
    assert report.results[0].error_type == RowErrorType.MAPPING_ERROR
    assert report.results[0].error_field == "importo"
    assert storage.count("tariffe") == 1


def test_reimport_of_whole_batch_is_idempotent(service):
    rows = [
        {"Ragione Sociale": "Alfa", "Partita IVA": "111"},
        {"Ragione Sociale": "Beta", "Città": "Bari", "Attivo": "FALSE"},
        {"Ragione Sociale": "Gamma", "Telefono": 3331234567.0},
    ]
    service.import_rows("clienti", rows)
    report = service.import_rows("clienti", rows)

    summary = report.summary()
    assert summary["imported"] == 0
    assert summary["updated"] == 0
    assert summary["skipped_duplicates"] == 3


def test_storage_error_is_recorded_and_batch_continues(service, storage, monkeypatch):
    original_insert = storage.insert

    def flaky_insert(table, payload):
        if payload.get("ragione_sociale") == "Broken":
            raise StorageError("insert", table, "disk full")
        return original_insert(table, payload)

    monkeypatch.setattr(storage, "insert", flaky_insert)
    report = service.import_rows("clienti", [{"Ragione Sociale": "Broken"}, {"Ragione Sociale": "Fine"}])

    assert _outcomes(report) == [RowOutcome.FAILED, RowOutcome.IMPORTED]
    assert report.results[0].error_type == RowErrorType.STORAGE_ERROR
    assert "disk full" in report.results[0].error
    assert storage.count("clienti") == 1


def test_preview_classifies_without_writing(service, storage, acme):
    rows = [
        {"Ragione Sociale": "Acme S.p.A.", "Partita IVA": "01234567890", "Codice Cliente Manuale": "ACME01", "Città": "Milano"},
        {"Ragione Sociale": "Acme S.p.A.", "Partita IVA": "01234567890", "Codice Cliente Manuale": "ACME01", "Città": "Roma"},
        {"Ragione Sociale": "Nuovo Cliente"},
    ]
    report = service.import_rows("clienti", rows, mode="preview")

    assert _outcomes(report) == [RowOutcome.VALIDATED] * 3
    assert [r.verdict.kind for r in report.results] == [
        VerdictKind.DUPLICATE,
        VerdictKind.UPDATE,
        VerdictKind.NEW,
    ]
    summary = report.summary()
    assert (summary["new"], summary["to_update"], summary["duplicates"]) == (1, 1, 1)
    assert storage.count("clienti") == 1
    assert storage.select("clienti")[0]["citta"] == "Milano"
    assert report.message.startswith("Anteprima")


def test_cancellation_between_rows_keeps_completed_rows(service, storage, event_bus, monkeypatch):
    cancel = threading.Event()
    original_insert = storage.insert

    def insert_then_cancel(table, payload):
        record_id = original_insert(table, payload)
        cancel.set()
        return record_id

    aborted = []
    event_bus.subscribe(DataImportAbortedEvent, aborted.append)
    monkeypatch.setattr(storage, "insert", insert_then_cancel)

    with pytest.raises(BatchAbort) as exc_info:
        service.import_rows("clienti", [{"Ragione Sociale": "Alfa"}, {"Ragione Sociale": "Beta"}], cancel_event=cancel)

    report = exc_info.value.report
    assert report.aborted
    assert report.processed_rows == 1
    assert report.total_rows == 2
    assert exc_info.value.details["report"]["summary"]["imported"] == 1
    assert storage.count("clienti") == 1
    assert aborted[0].processed_rows == 1


def test_timeout_aborts_batch(storage, event_bus, monkeypatch):
    service = ImportExportService(storage=storage, event_bus=event_bus, timeout_seconds=10)
    clock = itertools.chain([0.0, 0.0], itertools.repeat(1000.0))
    monkeypatch.setattr("app.services.import_export_service.time.monotonic", lambda: next(clock))

    with pytest.raises(BatchAbort) as exc_info:
        service.import_rows("clienti", [{"Ragione Sociale": "Alfa"}, {"Ragione Sociale": "Beta"}])

    assert exc_info.value.report.processed_rows == 1
    assert storage.count("clienti") == 1


def test_import_publishes_summary_event(service, event_bus):
    events = []
    event_bus.subscribe(DataImportedEvent, events.append)

    service.import_rows("clienti", [{"Ragione Sociale": "Alfa"}, {"Partita IVA": "1"}])

    assert len(events) == 1
    assert events[0].entity_type == "clienti"
    assert events[0].imported == 1
    assert events[0].failed == 1


# --- Request validation ---

def test_unknown_entity_type_is_rejected(service):
    with pytest.raises(ValidationException) as exc_info:
        service.import_rows("utenti", [{"nome": "x"}])
    assert "entity_type" in exc_info.value.details["validation_errors"]


def test_entity_type_accepts_member_name(service):
    assert service.resolve_entity_type("client") == EntityType.CLIENT
    assert service.resolve_entity_type("clienti") == EntityType.CLIENT


def test_allow_list_restricts_entity_types(service, monkeypatch):
    monkeypatch.setattr(settings, "IMPORTABLE_ENTITY_TYPES", ["clienti"])
    assert service.get_allowed_entity_types() == [EntityType.CLIENT]
    with pytest.raises(ValidationException):
        service.import_rows("fornitori", [{"Ragione Sociale": "Vigilux"}])


def test_batch_size_limit(service, monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_MAX_ROWS", 2)
    with pytest.raises(ValidationException):
        service.import_rows("clienti", [{"Ragione Sociale": str(i)} for i in range(3)])


def test_invalid_mode_is_rejected(service):
    with pytest.raises(ValidationException):
        service.import_rows("clienti", [], mode="dry-run")


def test_import_file_parses_csv(service, storage):
    content = "Ragione Sociale,Città\nAlfa,Bari\nBeta,Lecce\n".encode("utf-8")
    report = service.import_file("clienti", content, file_format="csv")

    assert report.summary()["imported"] == 2
    assert {r["citta"] for r in storage.select("clienti")} == {"Bari", "Lecce"}


# --- Export ---

def test_export_of_empty_table_has_no_data(service):
    result = service.export_table("clienti")

    assert result.has_data is False
    assert result.content is None
    assert result.message


def test_export_formats_values_for_display(service, event_bus):
    events = []
    event_bus.subscribe(DataExportedEvent, events.append)
    service.import_rows(
        "personale",
        [{"Nome": "Mario", "Cognome": "Rossi", "Data Nascita": "1990-05-20", "Attivo": "FALSE"}],
    )

    result = service.export_table("personale")

    assert result.has_data
    assert result.row_count == 1
    assert result.filename == "personale_export.xlsx"
    sheets = pd.read_excel(io.BytesIO(result.content), sheet_name=None, dtype=str)
    assert list(sheets) == ["personale"]
    df = sheets["personale"]
    assert list(df.columns[:3]) == ["ID", "Nome", "Cognome"]
    assert df.loc[0, "Data Nascita"] == "20/05/1990"
    assert df.loc[0, "Attivo"] == "No"
    assert "Creato il" in df.columns
    assert events[0].row_count == 1


def test_import_template_lists_headers_and_shortcuts(service):
    content = service.generate_import_template("punti_servizio")

    sheets = pd.read_excel(io.BytesIO(content), sheet_name=None)
    assert set(sheets) == {"punti_servizio", "Istruzioni"}
    columns = list(sheets["punti_servizio"].columns)
    assert columns[0] == "Nome Punto Servizio"
    assert "Codice Cliente Manuale" in columns
    assert "Codice Fornitore Manuale" in columns


def test_import_template_notes_describe_field_roles(service):
    content = service.generate_import_template("punti_servizio")

    sheet = pd.read_excel(io.BytesIO(content), sheet_name="Istruzioni", header=None)
    start = sheet.index[sheet[0] == "Colonna"][0]
    table = sheet.loc[start + 1 :].set_axis(list(sheet.loc[start]), axis=1)
    fields = table.drop_duplicates("Campo", keep="first")
    notes = dict(zip(fields["Campo"], fields["Note"]))
    assert notes["id_cliente"] == "ID di 'clienti'"
    assert notes["fornitore_id"] == "ID di 'fornitori'"
    assert notes["codice_sicep"] == "Usato per riconoscere record esistenti"
    assert pd.isna(notes["telefono"])
