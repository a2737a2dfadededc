# File: app/services/foreign_key_validator.py
"""
Referential integrity check run on a canonical payload before any write.
"""

import logging
from typing import Any, Dict

from app.core.exceptions import ForeignKeyError
from app.db.models.enums import EntityType
from app.repositories.storage_repository import StorageRepository
from app.services.entity_schemas import get_schema

logger = logging.getLogger(__name__)


class ForeignKeyValidator:
    """
    Confirms that every non-null foreign key of a payload references an
    existing row.

    Rules are checked in declaration order and validation stops at the first
    failure. Null foreign keys are always valid; requiredness is enforced by
    the mappers.
    """

    def __init__(self, storage: StorageRepository):
        self.storage = storage

    def validate(self, entity_type: EntityType, payload: Dict[str, Any]) -> None:
        """
        Raises:
            ForeignKeyError: For the first foreign key that has no target row
        """
        schema = get_schema(entity_type)
        for rule in schema.foreign_keys:
            value = payload.get(rule.field)
            if value is None:
                continue
            ref_table = rule.references.value
            if not self.storage.select(ref_table, {"id": value}, limit=1):
                logger.debug(f"{schema.table}.{rule.field}={value} not found in {ref_table}")
                raise ForeignKeyError(rule.field, value, ref_table)
