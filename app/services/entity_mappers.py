# File: app/services/entity_mappers.py
"""
Entity mapper registry.

A mapper turns one raw spreadsheet row (a dict keyed by header) into the
canonical payload of its entity type: every schema field is looked up by
its aliases, coerced by its semantic type and null-normalized. Shortcut
codes are resolved to foreign key UUIDs through read-only storage lookups.

Mappers never write. Any row that cannot be mapped raises ``MappingError``.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from app.core.exceptions import MappingError
from app.db.models.enums import EntityType, ServiceRequestStatus, ServiceType
from app.repositories.storage_repository import StorageRepository
from app.services.entity_schemas import (
    EntitySchema,
    FieldSpec,
    FieldType,
    ShortcutCode,
    get_schema,
    get_supported_entity_types,
)
from app.services.field_coercion import (
    get_field_value,
    has_field_value,
    is_valid_uuid,
    to_boolean,
    to_date_only,
    to_date_time,
    to_number,
    to_string,
    to_time,
    to_uuid,
)

logger = logging.getLogger(__name__)

CONVERTERS = {
    FieldType.STRING: to_string,
    FieldType.NUMBER: to_number,
    FieldType.DATE: to_date_only,
    FieldType.DATETIME: to_date_time,
    FieldType.TIME: to_time,
    FieldType.UUID: to_uuid,
}


class EntityMapper:
    """
    Schema-driven mapper; subclasses add entity-specific rules in ``apply_rules``.
    """

    def __init__(self, schema: EntitySchema):
        self.schema = schema

    @property
    def entity_type(self) -> EntityType:
        return self.schema.entity_type

    def map(self, raw_row: Mapping[str, Any], storage: StorageRepository) -> Dict[str, Any]:
        """
        Build the canonical payload for one row.

        Args:
            raw_row: Spreadsheet row keyed by header
            storage: Storage used for shortcut code lookups

        Returns:
            Payload keyed by column name; blank nullable fields are None

        Raises:
            MappingError: If a required field is missing, a value is not
                allowed, or a shortcut code cannot be resolved
        """
        payload: Dict[str, Any] = {}
        for spec in self.schema.fields:
            shortcut = self.schema.get_shortcut(spec.name)
            if shortcut is not None:
                value = self._resolve_shortcut(spec, shortcut, raw_row, storage)
            else:
                value = self._extract(spec, raw_row)
            if value is None and spec.omit_when_blank:
                continue
            payload[spec.name] = value

        payload = self.apply_rules(raw_row, payload)

        for spec in self.schema.fields:
            if spec.required and payload.get(spec.name) is None:
                raise MappingError(spec.name, "campo obbligatorio mancante o non valido")
        return payload

    def apply_rules(self, raw_row: Mapping[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        return payload

    def _extract(self, spec: FieldSpec, raw_row: Mapping[str, Any]) -> Any:
        if spec.field_type == FieldType.BOOLEAN:
            if has_field_value(raw_row, spec.aliases):
                return get_field_value(raw_row, spec.aliases, to_boolean)
            if spec.required:
                raise MappingError(spec.name, "campo obbligatorio mancante (TRUE/FALSE)")
            return None if spec.omit_when_blank else False

        value = get_field_value(raw_row, spec.aliases, CONVERTERS[spec.field_type])
        if value is None and spec.field_type == FieldType.TIME and has_field_value(raw_row, spec.aliases):
            raw = get_field_value(raw_row, spec.aliases, to_string)
            raise MappingError(spec.name, f"orario '{raw}' non valido, atteso HH:mm")
        if value is not None and spec.choices:
            value = self._normalize_choice(spec, value)
        return value

    @staticmethod
    def _normalize_choice(spec: FieldSpec, value: str) -> str:
        folded = value.strip().lower()
        for stored, label in spec.choices.items():
            if folded in (stored.lower(), label.lower()):
                return stored
        if spec.strict_choices:
            allowed = ", ".join(spec.choices.values())
            raise MappingError(spec.name, f"valore '{value}' non ammesso (valori validi: {allowed})")
        return value

    def _resolve_shortcut(
        self,
        spec: FieldSpec,
        shortcut: ShortcutCode,
        raw_row: Mapping[str, Any],
        storage: StorageRepository,
    ) -> Optional[str]:
        """
        Resolve a foreign key given either as UUID or as a shortcut code.

        A well-formed UUID wins without any lookup. Otherwise a present code
        must match exactly one row of the referenced table. With no code, a
        malformed UUID is passed on unchanged for the foreign key validator
        to reject.
        """
        raw_id = get_field_value(raw_row, spec.aliases, to_uuid)
        if raw_id is not None and is_valid_uuid(raw_id):
            return raw_id

        code = get_field_value(raw_row, shortcut.aliases, to_string)
        if code is None:
            return raw_id

        rule = self.schema.get_foreign_key(spec.name)
        ref_table = rule.references.value
        matches = storage.select(ref_table, {shortcut.lookup_column: code}, limit=2)
        if not matches:
            raise MappingError(
                spec.name, f"nessun record in '{ref_table}' con {shortcut.header} '{code}'"
            )
        if len(matches) > 1:
            raise MappingError(
                spec.name, f"{shortcut.header} '{code}' corrisponde a più record in '{ref_table}'"
            )
        logger.debug(f"Resolved {shortcut.header} '{code}' to {ref_table}/{matches[0]['id']}")
        return matches[0]["id"]


class ServicePointMapper(EntityMapper):
    """
    Service points carry a recovery rule for a historical export layout in
    which latitude and longitude landed in the Note and fornitore_id columns.
    """

    def apply_rules(self, raw_row, payload):
        if payload.get("latitude") is None and payload.get("longitude") is None:
            shifted_lat = to_number(raw_row.get("Note", raw_row.get("note")))
            shifted_lon = to_number(raw_row.get("fornitore_id", raw_row.get("fornitoreId")))
            if (
                shifted_lat is not None
                and shifted_lon is not None
                and abs(shifted_lat) <= 90
                and abs(shifted_lon) <= 180
            ):
                logger.debug("Recovered shifted latitude/longitude from Note/fornitore_id columns")
                payload["latitude"] = shifted_lat
                payload["longitude"] = shifted_lon
                payload["note"] = None
                if not is_valid_uuid(payload.get("fornitore_id")):
                    payload["fornitore_id"] = None
        return payload


class ServiceRequestMapper(EntityMapper):
    def apply_rules(self, raw_row, payload):
        if payload.get("status") is None:
            payload["status"] = ServiceRequestStatus.PENDING.value

        if payload.get("tipo_servizio") == ServiceType.APERTURA_CHIUSURA.value:
            if payload.get("tipo_apertura_chiusura") is None:
                raise MappingError(
                    "tipo_apertura_chiusura",
                    "obbligatorio per il tipo servizio Apertura/Chiusura",
                )
        else:
            payload["tipo_apertura_chiusura"] = None

        if payload.get("tipo_servizio") != ServiceType.BONIFICA.value:
            payload["tipo_bonifica"] = None

        agents = payload.get("numero_agenti")
        if agents is not None and (not isinstance(agents, int) or agents < 1):
            raise MappingError("numero_agenti", f"deve essere un intero positivo, trovato '{agents}'")

        start, end = payload.get("data_inizio_servizio"), payload.get("data_fine_servizio")
        if start and end and end < start:
            raise MappingError("data_fine_servizio", "precede la data di inizio servizio")
        return payload


class DailyScheduleMapper(EntityMapper):
    def apply_rules(self, raw_row, payload):
        active = payload.get("attivo")
        h24 = payload.get("h24")
        has_times = payload.get("ora_inizio") is not None or payload.get("ora_fine") is not None

        if active:
            if h24 and has_times:
                raise MappingError("h24", "se H24 è vero, Ora Inizio e Ora Fine devono essere vuote")
            if not h24 and payload.get("ora_inizio") is None:
                raise MappingError("ora_inizio", "obbligatoria se il giorno non è H24")
        elif h24 or has_times:
            raise MappingError(
                "attivo", "un giorno non attivo non può avere H24 né Ora Inizio/Ora Fine"
            )
        return payload


MAPPER_CLASSES = {
    EntityType.SERVICE_POINT: ServicePointMapper,
    EntityType.SERVICE_REQUEST: ServiceRequestMapper,
    EntityType.SERVICE_REQUEST_DAILY_SCHEDULE: DailyScheduleMapper,
}

MAPPER_REGISTRY: Dict[EntityType, EntityMapper] = {
    entity_type: MAPPER_CLASSES.get(entity_type, EntityMapper)(get_schema(entity_type))
    for entity_type in get_supported_entity_types()
}


def get_mapper(entity_type: EntityType) -> EntityMapper:
    return MAPPER_REGISTRY[EntityType(entity_type)]


def map_row(
    entity_type: EntityType, raw_row: Mapping[str, Any], storage: StorageRepository
) -> Dict[str, Any]:
    """Map a raw row of the given entity type to its canonical payload."""
    return get_mapper(entity_type).map(raw_row, storage)
