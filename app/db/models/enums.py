# File: app/db/models/enums.py
"""
Enumerations shared by the models and the import/export pipeline.
"""

from enum import Enum as PyEnum


class EntityType(str, PyEnum):
    """
    Importable/exportable record types.

    The value of each member is the canonical storage table name.
    """

    CLIENT = "clienti"
    SUPPLIER = "fornitori"
    SERVICE_POINT = "punti_servizio"
    STAFF = "personale"
    NETWORK_OPERATOR = "operatori_network"
    PROCEDURE = "procedure"
    TARIFF = "tariffe"
    CLIENT_ADDRESS_BOOK = "rubrica_clienti"
    SUPPLIER_ADDRESS_BOOK = "rubrica_fornitori"
    SERVICE_POINT_ADDRESS_BOOK = "rubrica_punti_servizio"
    SERVICE_REQUEST = "richieste_servizio"
    SERVICE_REQUEST_DAILY_SCHEDULE = "richieste_servizio_orari_giornalieri"
    SERVICE_REQUEST_INSPECTION = "richieste_servizio_ispezioni"

    @property
    def table(self) -> str:
        return self.value

    @classmethod
    def from_value(cls, value: str) -> "EntityType":
        """Resolve a table name or member name (case-insensitive) to an EntityType."""
        for member in cls:
            if value == member.value or value.upper() == member.name:
                return member
        raise ValueError(f"Unknown entity type: {value}")


class ServiceType(str, PyEnum):
    PIANTONAMENTO_ARMATO = "PIANTONAMENTO_ARMATO"
    SERVIZIO_FIDUCIARIO = "SERVIZIO_FIDUCIARIO"
    ISPEZIONI = "ISPEZIONI"
    APERTURA_CHIUSURA = "APERTURA_CHIUSURA"
    BONIFICA = "BONIFICA"


class OpeningClosingType(str, PyEnum):
    APERTURA_E_CHIUSURA = "APERTURA_E_CHIUSURA"
    SOLO_APERTURA = "SOLO_APERTURA"
    SOLO_CHIUSURA = "SOLO_CHIUSURA"


class InspectionType(str, PyEnum):
    PERIMETRALE = "PERIMETRALE"
    INTERNA = "INTERNA"
    COMPLETA = "COMPLETA"


class ServiceRequestStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


# Human-readable labels accepted in spreadsheets, keyed by stored value
SERVICE_TYPE_LABELS = {
    ServiceType.PIANTONAMENTO_ARMATO.value: "Piantonamento Armato",
    ServiceType.SERVIZIO_FIDUCIARIO.value: "Servizio Fiduciario",
    ServiceType.ISPEZIONI.value: "Ispezioni",
    ServiceType.APERTURA_CHIUSURA.value: "Apertura/Chiusura",
    ServiceType.BONIFICA.value: "Bonifica",
}

OPENING_CLOSING_LABELS = {
    OpeningClosingType.APERTURA_E_CHIUSURA.value: "Apertura e Chiusura",
    OpeningClosingType.SOLO_APERTURA.value: "Solo Apertura",
    OpeningClosingType.SOLO_CHIUSURA.value: "Solo Chiusura",
}

INSPECTION_TYPE_LABELS = {
    InspectionType.PERIMETRALE.value: "Perimetrale",
    InspectionType.INTERNA.value: "Interna",
    InspectionType.COMPLETA.value: "Completa",
}

DAYS_OF_WEEK = [
    "Lunedì",
    "Martedì",
    "Mercoledì",
    "Giovedì",
    "Venerdì",
    "Sabato",
    "Domenica",
    "Festivo",
]
