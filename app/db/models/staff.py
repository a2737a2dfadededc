# File: app/db/models/staff.py
"""
Staff, network operator and procedure registries.
"""

from sqlalchemy import Boolean, Column, Date, ForeignKey, String, Text

from app.db.models.base import AbstractBase, TimestampMixin


class Staff(AbstractBase, TimestampMixin):
    """
    Internal personnel (``personale``).

    Attributes:
        nome: First name, required
        cognome: Last name, required
        ruolo: Job role
        data_nascita: Birth date
        data_assunzione: Hiring date
        data_cessazione: Termination date
    """

    __tablename__ = "personale"

    nome = Column(String(100), nullable=False)
    cognome = Column(String(100), nullable=False)
    codice_fiscale = Column(String(32))
    ruolo = Column(String(100))
    telefono = Column(String(50))
    email = Column(String(255))
    data_nascita = Column(Date)
    luogo_nascita = Column(String(100))
    indirizzo = Column(String(255))
    cap = Column(String(10))
    citta = Column(String(100))
    provincia = Column(String(10))
    data_assunzione = Column(Date)
    data_cessazione = Column(Date)
    attivo = Column(Boolean, nullable=False, default=True)
    note = Column(Text)

    def __repr__(self):
        return f"<Staff(id={self.id}, nome='{self.nome}', cognome='{self.cognome}')>"


class NetworkOperator(AbstractBase, TimestampMixin):
    """Operator working for a client's network (``operatori_network``)."""

    __tablename__ = "operatori_network"

    nome = Column(String(100), nullable=False)
    cognome = Column(String(100), nullable=False)
    cliente_id = Column(String(36), ForeignKey("clienti.id"))
    telefono = Column(String(50))
    email = Column(String(255))
    note = Column(Text)


class Procedure(AbstractBase, TimestampMixin):
    """Operational procedure document (``procedure``)."""

    __tablename__ = "procedure"

    nome_procedura = Column(String(255), nullable=False)
    descrizione = Column(Text)
    versione = Column(String(50))
    data_ultima_revisione = Column(Date)
    responsabile = Column(String(255))
    documento_url = Column(String(1024))
    attivo = Column(Boolean, nullable=False, default=True)
    note = Column(Text)
