# File: app/services/entity_schemas.py
"""
Import/export rules for every entity type.

This module is the single source of truth read by the mappers, the
reconciliation engine, the foreign key validator, the export codec and the
template generator. For each entity type it declares:

- the ordered field schema: name, semantic type, header aliases, requiredness;
- the ordered candidate unique-key sets used to find an existing record;
- the foreign key rules, in validation order;
- the shortcut codes that let a spreadsheet reference a related record by a
  human-entered code instead of its UUID.

The first alias of a field is its display header in exports and templates.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from app.db.models.enums import (
    DAYS_OF_WEEK,
    INSPECTION_TYPE_LABELS,
    OPENING_CLOSING_LABELS,
    SERVICE_TYPE_LABELS,
    EntityType,
)


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    UUID = "uuid"
    TIME = "time"


class FieldRole(str, Enum):
    PLAIN = "plain"
    FOREIGN_KEY = "foreign_key"
    UNIQUE_MEMBER = "unique_member"


@dataclass(frozen=True)
class FieldSpec:
    """
    One field of an entity's schema.

    Attributes:
        name: Storage column name
        field_type: Semantic type driving coercion and export formatting
        aliases: Accepted spreadsheet headers, tried in order
        required: Whether mapping fails when the field is blank
        omit_when_blank: Leave the key out of the payload when blank, so the
            storage default applies (used for booleans defaulting to true)
        choices: Stored value -> display label; raw cells matching either are
            normalized to the stored value
        strict_choices: Reject values outside ``choices`` instead of passing them through
    """

    name: str
    field_type: FieldType = FieldType.STRING
    aliases: Tuple[str, ...] = ()
    required: bool = False
    omit_when_blank: bool = False
    choices: Optional[Mapping[str, str]] = None
    strict_choices: bool = False

    @property
    def header(self) -> str:
        return self.aliases[0] if self.aliases else self.name


@dataclass(frozen=True)
class ForeignKeyRule:
    field: str
    references: EntityType


@dataclass(frozen=True)
class ShortcutCode:
    """
    A human-entered code that resolves to the UUID of a related record.

    Attributes:
        field: Foreign key field populated by the lookup
        aliases: Spreadsheet headers holding the code
        lookup_column: Column of the referenced table the code is matched against
    """

    field: str
    aliases: Tuple[str, ...]
    lookup_column: str

    @property
    def header(self) -> str:
        return self.aliases[0]


@dataclass(frozen=True)
class EntitySchema:
    entity_type: EntityType
    fields: Tuple[FieldSpec, ...]
    unique_keys: Tuple[Tuple[str, ...], ...] = ()
    foreign_keys: Tuple[ForeignKeyRule, ...] = ()
    shortcuts: Tuple[ShortcutCode, ...] = ()
    label: str = ""

    @property
    def table(self) -> str:
        return self.entity_type.value

    @property
    def headers(self) -> List[str]:
        return [f.header for f in self.fields]

    def get_field(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def get_foreign_key(self, name: str) -> Optional[ForeignKeyRule]:
        for rule in self.foreign_keys:
            if rule.field == name:
                return rule
        return None

    def get_shortcut(self, name: str) -> Optional[ShortcutCode]:
        for shortcut in self.shortcuts:
            if shortcut.field == name:
                return shortcut
        return None

    def role_of(self, name: str) -> FieldRole:
        if self.get_foreign_key(name) is not None:
            return FieldRole.FOREIGN_KEY
        if any(name in key_set for key_set in self.unique_keys):
            return FieldRole.UNIQUE_MEMBER
        return FieldRole.PLAIN


def _field(name: str, *aliases: str, **options) -> FieldSpec:
    return FieldSpec(name=name, aliases=tuple(aliases) or (name,), **options)


def _text(name: str, *aliases: str, required: bool = False) -> FieldSpec:
    return _field(name, *aliases, required=required)


def _number(name: str, *aliases: str, required: bool = False) -> FieldSpec:
    return _field(name, *aliases, field_type=FieldType.NUMBER, required=required)


def _date(name: str, *aliases: str, required: bool = False) -> FieldSpec:
    return _field(name, *aliases, field_type=FieldType.DATE, required=required)


def _uuid(name: str, *aliases: str, required: bool = False) -> FieldSpec:
    return _field(name, *aliases, field_type=FieldType.UUID, required=required)


def _active_flag() -> FieldSpec:
    return _field(
        "attivo",
        "Attivo",
        "attivo",
        "Attivo (TRUE/FALSE)",
        field_type=FieldType.BOOLEAN,
        omit_when_blank=True,
    )


# Aliases shared by several entities
NOTE = ("Note", "note")
ADDRESS_FIELDS = (
    _text("indirizzo", "Indirizzo", "indirizzo"),
    _text("citta", "Città", "citta"),
    _text("cap", "CAP", "cap"),
    _text("provincia", "Provincia", "provincia"),
)
CLIENT_ID_ALIASES = ("ID Cliente", "client_id", "clientId", "ID Cliente (UUID)")
SUPPLIER_ID_ALIASES = ("ID Fornitore", "fornitore_id", "fornitoreId", "ID Fornitore (UUID)")
SERVICE_POINT_ID_ALIASES = (
    "ID Punto Servizio",
    "punto_servizio_id",
    "puntoServizioId",
    "ID Punto Servizio (UUID)",
)
SERVICE_REQUEST_ID_ALIASES = (
    "ID Richiesta Servizio",
    "richiesta_servizio_id",
    "richiestaServizioId",
    "ID Richiesta Servizio (UUID)",
)


def _address_book_fields(owner: FieldSpec) -> Tuple[FieldSpec, ...]:
    return (
        owner,
        _text("tipo_recapito", "Tipo Recapito", "tipo_recapito", "tipoRecapito", required=True),
        _text("nome_persona", "Nome Persona", "nome_persona", "nomePersona"),
        _text("telefono_fisso", "Telefono Fisso", "telefono_fisso", "telefonoFisso"),
        _text("telefono_cellulare", "Telefono Cellulare", "telefono_cellulare", "telefonoCellulare"),
        _text("email_recapito", "Email Recapito", "email_recapito", "emailRecapito"),
        _text("note", *NOTE),
    )


ENTITY_SCHEMAS: Dict[EntityType, EntitySchema] = {
    EntityType.CLIENT: EntitySchema(
        entity_type=EntityType.CLIENT,
        label="Clienti",
        fields=(
            _text("ragione_sociale", "Ragione Sociale", "ragione_sociale", "ragioneSociale", required=True),
            _text("codice_fiscale", "Codice Fiscale", "codice_fiscale", "codiceFiscale"),
            _text("partita_iva", "Partita IVA", "partita_iva", "partitaIva"),
            *ADDRESS_FIELDS,
            _text("telefono", "Telefono", "telefono"),
            _text("email", "Email", "email"),
            _text("pec", "PEC", "pec"),
            _text("sdi", "SDI", "sdi"),
            _active_flag(),
            _text("note", *NOTE),
            _text("codice_cliente_custom", "Codice Cliente Manuale", "codice_cliente_custom", "codiceClienteCustom"),
        ),
        unique_keys=(
            ("ragione_sociale",),
            ("partita_iva",),
            ("codice_fiscale",),
            ("codice_cliente_custom",),
        ),
    ),
    EntityType.SUPPLIER: EntitySchema(
        entity_type=EntityType.SUPPLIER,
        label="Fornitori",
        fields=(
            _text("ragione_sociale", "Ragione Sociale", "ragione_sociale", "ragioneSociale", required=True),
            _text("codice_fiscale", "Codice Fiscale", "codice_fiscale", "codiceFiscale"),
            _text("partita_iva", "Partita IVA", "partita_iva", "partitaIva"),
            *ADDRESS_FIELDS,
            _text("telefono", "Telefono", "telefono"),
            _text("email", "Email", "email"),
            _text("pec", "PEC", "pec"),
            _text("tipo_servizio", "Tipo Servizio", "tipo_servizio", "tipoServizio"),
            _active_flag(),
            _text("note", *NOTE),
            _text(
                "codice_cliente_associato",
                "Codice Fornitore Manuale",
                "codice_cliente_associato",
                "codiceClienteAssociato",
            ),
        ),
        unique_keys=(
            ("ragione_sociale",),
            ("partita_iva",),
            ("codice_fiscale",),
            ("codice_cliente_associato",),
        ),
    ),
    EntityType.SERVICE_POINT: EntitySchema(
        entity_type=EntityType.SERVICE_POINT,
        label="Punti Servizio",
        fields=(
            _text("nome_punto_servizio", "Nome Punto Servizio", "nome_punto_servizio", "nomePuntoServizio", required=True),
            _uuid("id_cliente", "ID Cliente", "id_cliente", "idCliente", "ID Cliente (UUID)"),
            *ADDRESS_FIELDS,
            _text("referente", "Referente", "referente"),
            _text("telefono_referente", "Telefono Referente", "telefono_referente", "telefonoReferente"),
            _text("telefono", "Telefono", "telefono"),
            _text("email", "Email", "email"),
            _text("note", *NOTE),
            _text("tempo_intervento", "Tempo Intervento", "tempo_intervento", "tempoIntervento"),
            _uuid("fornitore_id", *SUPPLIER_ID_ALIASES),
            _text("codice_cliente", "Codice Cliente", "codice_cliente", "codiceCliente"),
            _text("codice_sicep", "Codice SICEP", "codice_sicep", "codiceSicep"),
            _text("codice_fatturazione", "Codice Fatturazione", "codice_fatturazione", "codiceFatturazione"),
            _number("latitude", "Latitudine", "latitude"),
            _number("longitude", "Longitudine", "longitude"),
            _text("nome_procedura", "Nome Procedura", "nome_procedura", "nomeProcedura"),
        ),
        unique_keys=(
            ("nome_punto_servizio", "id_cliente"),
            ("nome_punto_servizio",),
            ("codice_cliente",),
            ("codice_sicep",),
            ("codice_fatturazione",),
        ),
        foreign_keys=(
            ForeignKeyRule("id_cliente", EntityType.CLIENT),
            ForeignKeyRule("fornitore_id", EntityType.SUPPLIER),
        ),
        shortcuts=(
            ShortcutCode(
                "id_cliente",
                ("Codice Cliente Manuale", "codice_cliente_custom", "codiceClienteCustom"),
                "codice_cliente_custom",
            ),
            ShortcutCode(
                "fornitore_id",
                ("Codice Fornitore Manuale", "codice_cliente_associato", "codiceClienteAssociato"),
                "codice_cliente_associato",
            ),
        ),
    ),
    EntityType.STAFF: EntitySchema(
        entity_type=EntityType.STAFF,
        label="Personale",
        fields=(
            _text("nome", "Nome", "nome", required=True),
            _text("cognome", "Cognome", "cognome", required=True),
            _text("codice_fiscale", "Codice Fiscale", "codice_fiscale", "codiceFiscale"),
            _text("ruolo", "Ruolo", "ruolo"),
            _text("telefono", "Telefono", "telefono"),
            _text("email", "Email", "email"),
            _date("data_nascita", "Data Nascita", "data_nascita", "dataNascita", "Data Nascita (YYYY-MM-DD)"),
            _text("luogo_nascita", "Luogo Nascita", "luogo_nascita", "luogoNascita"),
            *ADDRESS_FIELDS,
            _date("data_assunzione", "Data Assunzione", "data_assunzione", "dataAssunzione", "Data Assunzione (YYYY-MM-DD)"),
            _date("data_cessazione", "Data Cessazione", "data_cessazione", "dataCessazione", "Data Cessazione (YYYY-MM-DD)"),
            _active_flag(),
            _text("note", *NOTE),
        ),
        unique_keys=(
            ("nome", "cognome"),
            ("codice_fiscale",),
            ("email",),
        ),
    ),
    EntityType.NETWORK_OPERATOR: EntitySchema(
        entity_type=EntityType.NETWORK_OPERATOR,
        label="Operatori Network",
        fields=(
            _text("nome", "Nome", "nome", required=True),
            _text("cognome", "Cognome", "cognome", required=True),
            _uuid("cliente_id", "ID Cliente", "id_cliente", "idCliente", "ID Cliente (UUID)", "cliente_id"),
            _text("telefono", "Telefono", "telefono"),
            _text("email", "Email", "email"),
            _text("note", *NOTE),
        ),
        unique_keys=(
            ("nome", "cognome", "cliente_id"),
            ("email",),
        ),
        foreign_keys=(ForeignKeyRule("cliente_id", EntityType.CLIENT),),
    ),
    EntityType.PROCEDURE: EntitySchema(
        entity_type=EntityType.PROCEDURE,
        label="Procedure",
        fields=(
            _text("nome_procedura", "Nome Procedura", "nome_procedura", "nomeProcedura", required=True),
            _text("descrizione", "Descrizione", "descrizione"),
            _text("versione", "Versione", "versione"),
            _date(
                "data_ultima_revisione",
                "Data Ultima Revisione",
                "data_ultima_revisione",
                "dataUltimaRevisione",
                "Data Ultima Revisione (YYYY-MM-DD)",
            ),
            _text("responsabile", "Responsabile", "responsabile"),
            _text("documento_url", "URL Documento", "documento_url", "documentoUrl"),
            _active_flag(),
            _text("note", *NOTE),
        ),
        unique_keys=(("nome_procedura",),),
    ),
    EntityType.TARIFF: EntitySchema(
        entity_type=EntityType.TARIFF,
        label="Tariffe",
        fields=(
            _uuid("client_id", *CLIENT_ID_ALIASES),
            _text("tipo_servizio", "Tipo Servizio", "tipo_servizio", "tipoServizio", required=True),
            _number("importo", "Importo", "importo", required=True),
            _number("supplier_rate", "Costo Fornitore", "supplier_rate", "supplierRate"),
            _text("unita_misura", "Unità di Misura", "unita_misura", "unitaMisura"),
            _uuid("punto_servizio_id", *SERVICE_POINT_ID_ALIASES),
            _uuid("fornitore_id", *SUPPLIER_ID_ALIASES),
            _date(
                "data_inizio_validita",
                "Data Inizio Validità",
                "data_inizio_validita",
                "dataInizioValidita",
                "Data Inizio Validità (YYYY-MM-DD)",
            ),
            _date(
                "data_fine_validita",
                "Data Fine Validità",
                "data_fine_validita",
                "dataFineValidita",
                "Data Fine Validità (YYYY-MM-DD)",
            ),
            _text("note", *NOTE),
        ),
        unique_keys=(
            ("client_id", "tipo_servizio", "punto_servizio_id"),
            ("client_id", "tipo_servizio", "fornitore_id"),
        ),
        foreign_keys=(
            ForeignKeyRule("client_id", EntityType.CLIENT),
            ForeignKeyRule("punto_servizio_id", EntityType.SERVICE_POINT),
            ForeignKeyRule("fornitore_id", EntityType.SUPPLIER),
        ),
    ),
    EntityType.CLIENT_ADDRESS_BOOK: EntitySchema(
        entity_type=EntityType.CLIENT_ADDRESS_BOOK,
        label="Rubrica Clienti",
        fields=_address_book_fields(_uuid("client_id", *CLIENT_ID_ALIASES, required=True)),
        unique_keys=(("client_id", "tipo_recapito"),),
        foreign_keys=(ForeignKeyRule("client_id", EntityType.CLIENT),),
    ),
    EntityType.SUPPLIER_ADDRESS_BOOK: EntitySchema(
        entity_type=EntityType.SUPPLIER_ADDRESS_BOOK,
        label="Rubrica Fornitori",
        fields=_address_book_fields(_uuid("fornitore_id", *SUPPLIER_ID_ALIASES, required=True)),
        unique_keys=(("fornitore_id", "tipo_recapito"),),
        foreign_keys=(ForeignKeyRule("fornitore_id", EntityType.SUPPLIER),),
    ),
    EntityType.SERVICE_POINT_ADDRESS_BOOK: EntitySchema(
        entity_type=EntityType.SERVICE_POINT_ADDRESS_BOOK,
        label="Rubrica Punti Servizio",
        fields=_address_book_fields(_uuid("punto_servizio_id", *SERVICE_POINT_ID_ALIASES, required=True)),
        unique_keys=(("punto_servizio_id", "tipo_recapito"),),
        foreign_keys=(ForeignKeyRule("punto_servizio_id", EntityType.SERVICE_POINT),),
    ),
    EntityType.SERVICE_REQUEST: EntitySchema(
        entity_type=EntityType.SERVICE_REQUEST,
        label="Richieste Servizio",
        fields=(
            _uuid("client_id", *CLIENT_ID_ALIASES, required=True),
            _uuid("punto_servizio_id", *SERVICE_POINT_ID_ALIASES),
            _uuid("fornitore_id", *SUPPLIER_ID_ALIASES),
            _field(
                "tipo_servizio",
                "Tipo Servizio",
                "tipo_servizio",
                "tipoServizio",
                required=True,
                choices=SERVICE_TYPE_LABELS,
                strict_choices=True,
            ),
            _field(
                "tipo_apertura_chiusura",
                "Tipo Apertura Chiusura",
                "tipo_apertura_chiusura",
                "tipoAperturaChiusura",
                choices=OPENING_CLOSING_LABELS,
                strict_choices=True,
            ),
            _text("tipo_bonifica", "Tipo Bonifica", "tipo_bonifica", "tipoBonifica"),
            _date(
                "data_inizio_servizio",
                "Data Inizio Servizio",
                "data_inizio_servizio",
                "dataInizioServizio",
                "Data Inizio Servizio (YYYY-MM-DD)",
                required=True,
            ),
            _date(
                "data_fine_servizio",
                "Data Fine Servizio",
                "data_fine_servizio",
                "dataFineServizio",
                "Data Fine Servizio (YYYY-MM-DD)",
                required=True,
            ),
            _number("numero_agenti", "Numero Agenti", "numero_agenti", "numeroAgenti", required=True),
            _text("note", *NOTE),
            _text("status", "Status", "status"),
            _number(
                "total_hours_calculated",
                "Total Hours Calculated",
                "total_hours_calculated",
                "totalHoursCalculated",
            ),
        ),
        unique_keys=(
            ("client_id", "punto_servizio_id", "tipo_servizio", "data_inizio_servizio", "data_fine_servizio"),
            ("client_id", "tipo_servizio", "data_inizio_servizio", "data_fine_servizio"),
        ),
        foreign_keys=(
            ForeignKeyRule("client_id", EntityType.CLIENT),
            ForeignKeyRule("punto_servizio_id", EntityType.SERVICE_POINT),
            ForeignKeyRule("fornitore_id", EntityType.SUPPLIER),
        ),
    ),
    EntityType.SERVICE_REQUEST_DAILY_SCHEDULE: EntitySchema(
        entity_type=EntityType.SERVICE_REQUEST_DAILY_SCHEDULE,
        label="Orari Giornalieri",
        fields=(
            _uuid("richiesta_servizio_id", *SERVICE_REQUEST_ID_ALIASES, required=True),
            _field(
                "giorno_settimana",
                "Giorno Settimana",
                "giorno_settimana",
                "giornoSettimana",
                required=True,
                choices={day: day for day in DAYS_OF_WEEK},
                strict_choices=True,
            ),
            _field("h24", "H24", "h24", "H24 (TRUE/FALSE)", field_type=FieldType.BOOLEAN),
            _field("ora_inizio", "Ora Inizio", "ora_inizio", "oraInizio", "Ora Inizio (HH:mm)", field_type=FieldType.TIME),
            _field("ora_fine", "Ora Fine", "ora_fine", "oraFine", "Ora Fine (HH:mm)", field_type=FieldType.TIME),
            _field(
                "attivo",
                "Attivo",
                "attivo",
                "Attivo (TRUE/FALSE)",
                field_type=FieldType.BOOLEAN,
                required=True,
            ),
        ),
        unique_keys=(("richiesta_servizio_id", "giorno_settimana"),),
        foreign_keys=(ForeignKeyRule("richiesta_servizio_id", EntityType.SERVICE_REQUEST),),
    ),
    EntityType.SERVICE_REQUEST_INSPECTION: EntitySchema(
        entity_type=EntityType.SERVICE_REQUEST_INSPECTION,
        label="Ispezioni",
        fields=(
            _uuid("richiesta_servizio_id", *SERVICE_REQUEST_ID_ALIASES, required=True),
            _date("data_servizio", "Data Servizio", "data_servizio", "dataServizio", "Data Servizio (YYYY-MM-DD)"),
            _number("cadenza_ore", "Cadenza Ore", "cadenza_ore", "cadenzaOre"),
            _field(
                "tipo_ispezione",
                "Tipo Ispezione",
                "tipo_ispezione",
                "tipoIspezione",
                choices=INSPECTION_TYPE_LABELS,
                strict_choices=True,
            ),
        ),
        unique_keys=(("richiesta_servizio_id",),),
        foreign_keys=(ForeignKeyRule("richiesta_servizio_id", EntityType.SERVICE_REQUEST),),
    ),
}


def get_schema(entity_type: EntityType) -> EntitySchema:
    return ENTITY_SCHEMAS[EntityType(entity_type)]


def get_supported_entity_types() -> List[EntityType]:
    return list(ENTITY_SCHEMAS.keys())
