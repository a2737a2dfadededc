# File: app/db/models/supplier.py
"""
Supplier models for the back office.

This module defines the Supplier registry (``fornitori``), i.e. partner
security companies that can be assigned to service points, and their
address book (``rubrica_fornitori``).
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from app.db.models.base import AbstractBase, TimestampMixin


class Supplier(AbstractBase, TimestampMixin):
    """
    Supplier model representing a partner service provider.

    Attributes:
        ragione_sociale: Company name, required
        codice_fiscale: Italian fiscal code
        partita_iva: VAT number
        tipo_servizio: Kind of service provided
        attivo: Whether the supplier is active
        codice_cliente_associato: Manually assigned supplier code, used by
            spreadsheets to reference the supplier without its UUID
    """

    __tablename__ = "fornitori"
    __table_args__ = (
        Index("idx_fornitori_ragione_sociale", "ragione_sociale"),
        Index("idx_fornitori_codice_cliente_associato", "codice_cliente_associato"),
    )

    ragione_sociale = Column(String(255), nullable=False)
    codice_fiscale = Column(String(32))
    partita_iva = Column(String(32))
    indirizzo = Column(String(255))
    citta = Column(String(100))
    cap = Column(String(10))
    provincia = Column(String(10))
    telefono = Column(String(50))
    email = Column(String(255))
    pec = Column(String(255))
    tipo_servizio = Column(String(100))
    attivo = Column(Boolean, nullable=False, default=True)
    note = Column(Text)
    codice_cliente_associato = Column(String(100))

    contacts = relationship(
        "SupplierAddressBookEntry", back_populates="supplier", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Supplier(id={self.id}, ragione_sociale='{self.ragione_sociale}')>"


class SupplierAddressBookEntry(AbstractBase, TimestampMixin):
    """Address book entry attached to a supplier."""

    __tablename__ = "rubrica_fornitori"

    fornitore_id = Column(String(36), ForeignKey("fornitori.id"), nullable=False)
    tipo_recapito = Column(String(100), nullable=False)
    nome_persona = Column(String(255))
    telefono_fisso = Column(String(50))
    telefono_cellulare = Column(String(50))
    email_recapito = Column(String(255))
    note = Column(Text)

    supplier = relationship("Supplier", back_populates="contacts")
