# File: app/repositories/storage_repository.py
"""
Table-generic storage layer for the import/export pipeline.

Every component of the reconciliation pipeline talks to storage through
this narrow interface, addressing tables by their canonical name:

    select(table, filters, limit) -> rows
    insert(table, payload) -> id
    update(table, id, payload)
    delete(table, id)

Rows are returned as plain dictionaries with dates and datetimes in ISO form.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import StorageError
from app.db.models import ModelRegistry
from app.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class StorageRepository:
    """
    Storage collaborator backed by one SQLAlchemy session.

    The session is owned by the caller (request scope for HTTP entry points);
    per-table repositories are created lazily and cached.
    """

    def __init__(self, session: Session):
        self.session = session
        self._repositories: Dict[str, BaseRepository] = {}

    def _repository(self, table: str) -> BaseRepository:
        repository = self._repositories.get(table)
        if repository is None:
            model = ModelRegistry.get_model(table)
            if model is None:
                raise StorageError("resolve", table, "unknown table")
            repository = BaseRepository(self.session, model)
            self._repositories[table] = repository
        return repository

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch rows whose columns equal every value in ``filters``.

        Args:
            table: Canonical table name
            filters: Column=value equality filters combined with AND
            limit: Maximum number of rows, None for all

        Returns:
            List of row dictionaries
        """
        entities = self._repository(table).list(skip=0, limit=limit, **(filters or {}))
        logger.debug(f"select {table} {filters or {}} -> {len(entities)} rows")
        return [entity.to_dict() for entity in entities]

    def insert(self, table: str, payload: Dict[str, Any]) -> str:
        """Insert a row and return its generated identifier."""
        entity = self._repository(table).create(payload)
        logger.debug(f"insert {table} -> {entity.id}")
        return entity.id

    def update(self, table: str, id: Any, payload: Dict[str, Any]) -> None:
        """Overwrite the given columns of an existing row."""
        self._repository(table).update(id, payload)
        logger.debug(f"update {table}/{id} fields={sorted(payload)}")

    def delete(self, table: str, id: Any) -> None:
        """Delete a row; deleting a missing row is an error."""
        if not self._repository(table).delete(id):
            raise StorageError("delete", table, f"record {id} not found")
        logger.debug(f"delete {table}/{id}")

    def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        return self._repository(table).count(**(filters or {}))
