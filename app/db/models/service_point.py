# File: app/db/models/service_point.py
"""
Service point models for the back office.

A service point (``punti_servizio``) is a guarded site belonging to a
client, optionally covered by a supplier.
"""

from sqlalchemy import Column, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from app.db.models.base import AbstractBase, TimestampMixin


class ServicePoint(AbstractBase, TimestampMixin):
    """
    Service point model.

    Attributes:
        nome_punto_servizio: Site name, required
        id_cliente: Owning client
        fornitore_id: Supplier covering the site
        referente: On-site contact
        tempo_intervento: Agreed intervention time
        codice_cliente: Client-side site code
        codice_sicep: Alarm receiver (SICEP) code
        codice_fatturazione: Billing code
        latitude: Site latitude
        longitude: Site longitude
        nome_procedura: Name of the procedure applied at the site
    """

    __tablename__ = "punti_servizio"
    __table_args__ = (
        Index("idx_punti_servizio_nome", "nome_punto_servizio"),
        Index("idx_punti_servizio_cliente", "id_cliente"),
    )

    nome_punto_servizio = Column(String(255), nullable=False)
    id_cliente = Column(String(36), ForeignKey("clienti.id"))
    indirizzo = Column(String(255))
    citta = Column(String(100))
    cap = Column(String(10))
    provincia = Column(String(10))
    referente = Column(String(255))
    telefono_referente = Column(String(50))
    telefono = Column(String(50))
    email = Column(String(255))
    note = Column(Text)
    tempo_intervento = Column(String(50))
    fornitore_id = Column(String(36), ForeignKey("fornitori.id"))
    codice_cliente = Column(String(100))
    codice_sicep = Column(String(100))
    codice_fatturazione = Column(String(100))
    latitude = Column(Float)
    longitude = Column(Float)
    nome_procedura = Column(String(255))

    contacts = relationship(
        "ServicePointAddressBookEntry", back_populates="service_point", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<ServicePoint(id={self.id}, nome_punto_servizio='{self.nome_punto_servizio}')>"


class ServicePointAddressBookEntry(AbstractBase, TimestampMixin):
    """Address book entry attached to a service point."""

    __tablename__ = "rubrica_punti_servizio"

    punto_servizio_id = Column(String(36), ForeignKey("punti_servizio.id"), nullable=False)
    tipo_recapito = Column(String(100), nullable=False)
    nome_persona = Column(String(255))
    telefono_fisso = Column(String(50))
    telefono_cellulare = Column(String(50))
    email_recapito = Column(String(255))
    note = Column(Text)

    service_point = relationship("ServicePoint", back_populates="contacts")
