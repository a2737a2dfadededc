"""
Initializes the models package for SQLAlchemy declarative base.

This file imports all model classes into the `app.db.models` namespace so
that SQLAlchemy's metadata is populated with every table definition when
`Base.metadata.create_all()` is called.
"""

from app.db.models.base import Base, AbstractBase, TimestampMixin, ModelRegistry

from app.db.models.enums import (
    EntityType,
    ServiceType,
    OpeningClosingType,
    InspectionType,
    ServiceRequestStatus,
)

from app.db.models.client import Client, ClientAddressBookEntry
from app.db.models.supplier import Supplier, SupplierAddressBookEntry
from app.db.models.service_point import ServicePoint, ServicePointAddressBookEntry
from app.db.models.staff import Staff, NetworkOperator, Procedure
from app.db.models.service_request import (
    Tariff,
    ServiceRequest,
    ServiceRequestDailySchedule,
    ServiceRequestInspection,
)

__all__ = [
    "Base",
    "AbstractBase",
    "TimestampMixin",
    "ModelRegistry",
    "EntityType",
    "ServiceType",
    "OpeningClosingType",
    "InspectionType",
    "ServiceRequestStatus",
    "Client",
    "ClientAddressBookEntry",
    "Supplier",
    "SupplierAddressBookEntry",
    "ServicePoint",
    "ServicePointAddressBookEntry",
    "Staff",
    "NetworkOperator",
    "Procedure",
    "Tariff",
    "ServiceRequest",
    "ServiceRequestDailySchedule",
    "ServiceRequestInspection",
]
