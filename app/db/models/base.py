# File: app/db/models/base.py
"""
Base models and mixins for the back-office data model.

This module provides the foundation for all database models in the system, including:
- Base SQLAlchemy model class
- Timestamp mixin shared by every imported table
- Model registry resolving storage table names to model classes
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Type
import uuid

from sqlalchemy import Column, String, DateTime, MetaData
from sqlalchemy.orm import declarative_base

# Create the SQLAlchemy base
Base = declarative_base(metadata=MetaData())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModelRegistry:
    """
    Registry resolving storage table names to model classes.

    Every model mapped on ``Base`` is reachable by its ``__tablename__``,
    which is how the table-generic storage layer addresses it.
    """

    @classmethod
    def get_model(cls, table: str) -> Optional[Type[Base]]:
        """
        Get a model class by table name.

        Args:
            table: The storage table name

        Returns:
            The model class if found, None otherwise
        """
        for mapper in Base.registry.mappers:
            if getattr(mapper.class_, "__tablename__", None) == table:
                return mapper.class_
        return None


class TimestampMixin:
    """
    Mixin providing creation and modification timestamps.

    The import pipeline stamps both on insert and only ``updated_at`` on
    update; the defaults cover rows written by other code paths.
    """

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class AbstractBase(Base):
    """
    Abstract base class for all model entities.

    Attributes:
        id: Primary key, a UUID rendered as a 36 character string
    """

    __abstract__ = True

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the model instance to a dictionary.

        Dates and datetimes are rendered in ISO form.

        Returns:
            Dictionary representation of the model instance
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            result[column.name] = value
        return result

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={self.id})>"
