# File: app/repositories/base_repository.py

import logging
from datetime import date, datetime
from typing import Generic, TypeVar, Dict, Any, Optional, List, Type

from sqlalchemy import Date, DateTime, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import StorageError

T = TypeVar("T")
logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Base repository class providing common CRUD operations for all entities using
    modern SQLAlchemy select() syntax.

    Every write runs in its own transaction: it is committed on success and
    rolled back on failure, with the driver error surfaced as ``StorageError``.

    Attributes:
        session (Session): The SQLAlchemy session for database operations
        model (Type[T]): The SQLAlchemy model class this repository manages
    """

    def __init__(self, session: Session, model: Optional[Type[T]] = None):
        """
        Initialize the repository with a database session and the specific model.

        Args:
            session (Session): SQLAlchemy database session
            model (Type[T]): The SQLAlchemy model class this repository manages.
        """
        self.session = session
        self.model = model

    def _get_model(self) -> Type[T]:
        """Ensures the model is set before use."""
        if self.model is None:
            raise TypeError(f"Repository model is not set for {self.__class__.__name__}")
        return self.model

    @property
    def table_name(self) -> str:
        return self._get_model().__tablename__

    def _column_names(self) -> set:
        return {c.name for c in self._get_model().__table__.columns}

    def _coerce(self, key: str, value: Any) -> Any:
        """
        Convert ISO strings into the Python type of Date/DateTime columns.

        Values that cannot be parsed are passed through for the driver to reject.
        """
        if not isinstance(value, str):
            return value
        column = self._get_model().__table__.columns.get(key)
        if column is None:
            return value
        try:
            if isinstance(column.type, DateTime):
                return datetime.fromisoformat(value)
            if isinstance(column.type, Date):
                return date.fromisoformat(value[:10])
        except ValueError:
            return value
        return value

    def _prepare(self, data: Dict[str, Any]) -> Dict[str, Any]:
        columns = self._column_names()
        return {k: self._coerce(k, v) for k, v in data.items() if k in columns}

    def get_by_id(self, id: Any) -> Optional[T]:
        """
        Retrieve an entity by its primary key ID.

        Args:
            id: The primary key ID of the entity

        Returns:
            Optional[T]: The entity if found, None otherwise
        """
        model_class = self._get_model()
        stmt = select(model_class).where(getattr(model_class, "id") == id)
        try:
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError("select", self.table_name, str(e)) from e

    def list(self, skip: int = 0, limit: Optional[int] = 100, **filters) -> List[T]:
        """
        Retrieve entities matching every filter (logical AND).

        Args:
            skip (int): Number of records to skip (for pagination)
            limit (Optional[int]): Maximum number of records to return, None for all
            **filters: Field=value equality filters; None matches NULL

        Returns:
            List[T]: List of entities matching the criteria
        """
        model_class = self._get_model()
        stmt = select(model_class)

        for key, value in filters.items():
            if not hasattr(model_class, key):
                raise StorageError("select", self.table_name, f"unknown column '{key}'")
            column = getattr(model_class, key)
            if value is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == self._coerce(key, value))

        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            return list(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError("select", self.table_name, str(e)) from e

    def create(self, data: Dict[str, Any]) -> T:
        """
        Create a new entity.

        Args:
            data (Dict[str, Any]): Dictionary containing entity field values;
                keys that are not columns of the model are ignored

        Returns:
            T: The created entity
        """
        model_class = self._get_model()
        entity = model_class(**self._prepare(data))
        try:
            self.session.add(entity)
            self.session.commit()
            self.session.refresh(entity)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Insert into {self.table_name} failed: {e}")
            raise StorageError("insert", self.table_name, str(e)) from e
        return entity

    def update(self, id: Any, data: Dict[str, Any]) -> T:
        """
        Update an existing entity.

        Args:
            id: The primary key ID of the entity to update
            data (Dict[str, Any]): Dictionary containing the fields to update

        Returns:
            T: The updated entity

        Raises:
            StorageError: If the entity does not exist or the write fails
        """
        entity = self.get_by_id(id)
        if entity is None:
            raise StorageError("update", self.table_name, f"record {id} not found")

        for key, value in self._prepare(data).items():
            if key == "id":
                continue
            setattr(entity, key, value)

        try:
            self.session.commit()
            self.session.refresh(entity)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Update of {self.table_name}/{id} failed: {e}")
            raise StorageError("update", self.table_name, str(e)) from e
        return entity

    def delete(self, id: Any) -> bool:
        """
        Delete an entity by ID.

        Returns:
            bool: True if entity was deleted, False if not found
        """
        entity = self.get_by_id(id)
        if not entity:
            return False

        try:
            self.session.delete(entity)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Delete of {self.table_name}/{id} failed: {e}")
            raise StorageError("delete", self.table_name, str(e)) from e
        return True

    def count(self, **filters) -> int:
        """
        Count entities matching the given filters.
        """
        model_class = self._get_model()
        stmt = select(func.count(getattr(model_class, "id"))).select_from(model_class)

        for key, value in filters.items():
            if hasattr(model_class, key):
                stmt = stmt.where(getattr(model_class, key) == self._coerce(key, value))

        try:
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError("count", self.table_name, str(e)) from e
