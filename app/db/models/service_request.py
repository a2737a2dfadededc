# File: app/db/models/service_request.py
"""
Tariff and service request models.

A service request (``richieste_servizio``) carries its weekly schedule in
``richieste_servizio_orari_giornalieri`` and, for inspection services,
its cadence in ``richieste_servizio_ispezioni``.
"""

from sqlalchemy import Boolean, Column, Date, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db.models.base import AbstractBase, TimestampMixin


class Tariff(AbstractBase, TimestampMixin):
    """
    Agreed rate for a service type (``tariffe``).

    Attributes:
        client_id: Client the rate applies to
        tipo_servizio: Service type code, required
        importo: Amount billed to the client, required
        supplier_rate: Cost paid to the supplier
        unita_misura: Unit of measure (e.g. "ora")
        punto_servizio_id: Optional service point restriction
        fornitore_id: Optional supplier restriction
        data_inizio_validita: Validity start
        data_fine_validita: Validity end
    """

    __tablename__ = "tariffe"

    client_id = Column(String(36), ForeignKey("clienti.id"))
    tipo_servizio = Column(String(100), nullable=False)
    importo = Column(Float, nullable=False)
    supplier_rate = Column(Float)
    unita_misura = Column(String(50))
    punto_servizio_id = Column(String(36), ForeignKey("punti_servizio.id"))
    fornitore_id = Column(String(36), ForeignKey("fornitori.id"))
    data_inizio_validita = Column(Date)
    data_fine_validita = Column(Date)
    note = Column(Text)


class ServiceRequest(AbstractBase, TimestampMixin):
    """
    Service request (``richieste_servizio``).

    Attributes:
        client_id: Requesting client, required
        punto_servizio_id: Site where the service takes place
        fornitore_id: Supplier assigned to the service
        tipo_servizio: Service type code, required
        tipo_apertura_chiusura: Opening/closing variant, required for APERTURA_CHIUSURA
        tipo_bonifica: Reclamation variant for BONIFICA services
        data_inizio_servizio: First service day, required
        data_fine_servizio: Last service day, required
        numero_agenti: Number of guards, required
        status: Workflow status, defaults to "pending"
        total_hours_calculated: Total service hours computed from the schedule
    """

    __tablename__ = "richieste_servizio"

    client_id = Column(String(36), ForeignKey("clienti.id"), nullable=False)
    punto_servizio_id = Column(String(36), ForeignKey("punti_servizio.id"))
    fornitore_id = Column(String(36), ForeignKey("fornitori.id"))
    tipo_servizio = Column(String(50), nullable=False)
    tipo_apertura_chiusura = Column(String(50))
    tipo_bonifica = Column(String(100))
    data_inizio_servizio = Column(Date, nullable=False)
    data_fine_servizio = Column(Date, nullable=False)
    numero_agenti = Column(Integer, nullable=False)
    note = Column(Text)
    status = Column(String(20), nullable=False, default="pending")
    total_hours_calculated = Column(Float)

    daily_schedules = relationship(
        "ServiceRequestDailySchedule", back_populates="service_request", cascade="all, delete-orphan"
    )
    inspection = relationship(
        "ServiceRequestInspection", back_populates="service_request", cascade="all, delete-orphan"
    )


class ServiceRequestDailySchedule(AbstractBase, TimestampMixin):
    """
    One weekday slot of a service request schedule.

    ``ora_inizio`` and ``ora_fine`` are stored as "HH:MM" strings; both are
    empty for H24 or inactive days.
    """

    __tablename__ = "richieste_servizio_orari_giornalieri"

    richiesta_servizio_id = Column(String(36), ForeignKey("richieste_servizio.id"), nullable=False)
    giorno_settimana = Column(String(20), nullable=False)
    h24 = Column(Boolean, nullable=False, default=False)
    ora_inizio = Column(String(8))
    ora_fine = Column(String(8))
    attivo = Column(Boolean, nullable=False, default=True)

    service_request = relationship("ServiceRequest", back_populates="daily_schedules")


class ServiceRequestInspection(AbstractBase, TimestampMixin):
    """Inspection cadence of an ISPEZIONI service request."""

    __tablename__ = "richieste_servizio_ispezioni"

    richiesta_servizio_id = Column(String(36), ForeignKey("richieste_servizio.id"), nullable=False)
    data_servizio = Column(Date)
    cadenza_ore = Column(Float)
    tipo_ispezione = Column(String(50))

    service_request = relationship("ServiceRequest", back_populates="inspection")
