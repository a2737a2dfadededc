# File: app/db/models/client.py
"""
Client models for the back office.

This module defines the Client registry (``clienti``) and the per-client
address book (``rubrica_clienti``).
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from app.db.models.base import AbstractBase, TimestampMixin


class Client(AbstractBase, TimestampMixin):
    """
    Client model representing a customer of security services.

    Attributes:
        ragione_sociale: Company name, required
        codice_fiscale: Italian fiscal code
        partita_iva: VAT number
        indirizzo: Street address
        citta: City
        cap: Postal code
        provincia: Province code
        telefono: Phone number
        email: Contact email
        pec: Certified email address
        sdi: Electronic invoicing recipient code
        attivo: Whether the client is active
        note: Free-text notes
        codice_cliente_custom: Manually assigned client code, used by
            spreadsheets to reference the client without its UUID
    """

    __tablename__ = "clienti"
    __table_args__ = (
        Index("idx_clienti_ragione_sociale", "ragione_sociale"),
        Index("idx_clienti_codice_cliente_custom", "codice_cliente_custom"),
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
    sdi = Column(String(20))
    attivo = Column(Boolean, nullable=False, default=True)
    note = Column(Text)
    codice_cliente_custom = Column(String(100))

    contacts = relationship(
        "ClientAddressBookEntry", back_populates="client", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Client(id={self.id}, ragione_sociale='{self.ragione_sociale}')>"


class ClientAddressBookEntry(AbstractBase, TimestampMixin):
    """
    Address book entry attached to a client.

    Attributes:
        client_id: Owning client
        tipo_recapito: Contact kind (e.g. "Amministrazione"), required
        nome_persona: Contact person
        telefono_fisso: Landline
        telefono_cellulare: Mobile
        email_recapito: Contact email
        note: Free-text notes
    """

    __tablename__ = "rubrica_clienti"

    client_id = Column(String(36), ForeignKey("clienti.id"), nullable=False)
    tipo_recapito = Column(String(100), nullable=False)
    nome_persona = Column(String(255))
    telefono_fisso = Column(String(50))
    telefono_cellulare = Column(String(50))
    email_recapito = Column(String(255))
    note = Column(Text)

    client = relationship("Client", back_populates="contacts")
