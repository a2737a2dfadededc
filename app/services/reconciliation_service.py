# File: app/services/reconciliation_service.py
"""
Unique-key reconciliation.

Classifies a canonical payload against storage as NEW, UPDATE or DUPLICATE.

Each entity type declares an ordered list of candidate key-sets. The first
key-set whose fields are all populated in the payload is the only one used
to probe storage: when it finds nothing the row is NEW, even if a later
key-set would have matched another record. When no key-set is fully
populated the row is NEW without querying storage.

A matched record is diffed field by field against the payload, ignoring the
``created_at``/``updated_at`` bookkeeping columns. Values are compared after
coercion, so 10, 10.0 and "10" are equal for a numeric field.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from app.db.models.enums import EntityType
from app.repositories.storage_repository import StorageRepository
from app.services.entity_schemas import EntitySchema, FieldSpec, FieldType, get_schema
from app.services.field_coercion import (
    is_blank,
    to_date_only,
    to_date_time,
    to_number,
    to_string,
    to_time,
)

logger = logging.getLogger(__name__)

TIMESTAMP_FIELDS = frozenset({"created_at", "updated_at"})
IGNORED_FIELDS = TIMESTAMP_FIELDS | {"id"}


class VerdictKind(str, Enum):
    NEW = "NEW"
    UPDATE = "UPDATE"
    DUPLICATE = "DUPLICATE"


@dataclass
class Verdict:
    """
    Outcome of reconciling one payload.

    Attributes:
        kind: NEW, UPDATE or DUPLICATE
        record_id: Identifier of the matched record (UPDATE and DUPLICATE)
        updated_fields: Fields whose value differs from the stored record (UPDATE)
        key_set: Candidate key-set used to probe storage, if any
    """

    kind: VerdictKind
    record_id: Optional[str] = None
    updated_fields: List[str] = field(default_factory=list)
    key_set: Optional[Tuple[str, ...]] = None

    @classmethod
    def new(cls, key_set: Optional[Tuple[str, ...]] = None) -> "Verdict":
        return cls(VerdictKind.NEW, key_set=key_set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.kind.value,
            "id": self.record_id,
            "updated_fields": list(self.updated_fields),
            "key_set": list(self.key_set) if self.key_set else None,
        }


def _normalize(value: Any, spec: Optional[FieldSpec]) -> Any:
    if is_blank(value):
        return None
    field_type = spec.field_type if spec else None
    if field_type == FieldType.DATE:
        return to_date_only(value) or value
    if field_type == FieldType.DATETIME:
        return to_date_time(value) or value
    if field_type == FieldType.TIME:
        return to_time(value) or value
    if isinstance(value, bool) or field_type == FieldType.BOOLEAN:
        return value
    number = to_number(value) if field_type == FieldType.NUMBER or not isinstance(value, str) else None
    if number is not None:
        return float(number)
    return to_string(value)


def values_equal(incoming: Any, stored: Any, spec: Optional[FieldSpec] = None) -> bool:
    """Compare an incoming payload value with a stored one on their coerced types."""
    return _normalize(incoming, spec) == _normalize(stored, spec)


class ReconciliationEngine:
    """Classifies payloads against storage using the entity's unique-key rules."""

    def __init__(self, storage: StorageRepository):
        self.storage = storage

    @staticmethod
    def select_key_set(schema: EntitySchema, payload: Dict[str, Any]) -> Optional[Tuple[str, ...]]:
        """Return the first candidate key-set fully populated in ``payload``."""
        for key_set in schema.unique_keys:
            if all(not is_blank(payload.get(name)) for name in key_set):
                return key_set
        return None

    @staticmethod
    def diff(schema: EntitySchema, payload: Dict[str, Any], existing: Dict[str, Any]) -> List[str]:
        """List the payload fields, in payload order, that differ from the stored record."""
        changed = []
        for name, value in payload.items():
            if name in IGNORED_FIELDS:
                continue
            if not values_equal(value, existing.get(name), schema.get_field(name)):
                changed.append(name)
        return changed

    def find_existing(
        self, entity_type: EntityType, payload: Dict[str, Any]
    ) -> Tuple[Optional[Tuple[str, ...]], Optional[Dict[str, Any]]]:
        schema = get_schema(entity_type)
        key_set = self.select_key_set(schema, payload)
        if key_set is None:
            return None, None
        rows = self.storage.select(schema.table, {name: payload[name] for name in key_set}, limit=1)
        return key_set, (rows[0] if rows else None)

    def reconcile(self, entity_type: EntityType, payload: Dict[str, Any]) -> Verdict:
        """
        Classify a payload as NEW, UPDATE or DUPLICATE.

        Args:
            entity_type: Target entity type
            payload: Canonical payload produced by the entity mapper

        Returns:
            The reconciliation verdict
        """
        schema = get_schema(entity_type)
        key_set, existing = self.find_existing(entity_type, payload)
        if key_set is None:
            logger.debug(f"{schema.table}: no candidate key-set populated, NEW")
            return Verdict.new()
        if existing is None:
            logger.debug(f"{schema.table}: no match on {key_set}, NEW")
            return Verdict.new(key_set)

        changed = self.diff(schema, payload, existing)
        if changed:
            logger.debug(f"{schema.table}/{existing['id']}: UPDATE {changed}")
            return Verdict(VerdictKind.UPDATE, existing["id"], changed, key_set)
        logger.debug(f"{schema.table}/{existing['id']}: DUPLICATE")
        return Verdict(VerdictKind.DUPLICATE, existing["id"], [], key_set)
