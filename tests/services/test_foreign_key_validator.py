# tests/services/test_foreign_key_validator.py

import uuid

import pytest

from app.core.exceptions import ForeignKeyError
from app.db.models.enums import EntityType
from app.services.foreign_key_validator import ForeignKeyValidator


@pytest.fixture
def validator(storage):
    return ForeignKeyValidator(storage)


def test_existing_references_are_valid(validator, acme, vigilux):
    validator.validate(
        EntityType.SERVICE_POINT,
        {"nome_punto_servizio": "Magazzino", "id_cliente": acme, "fornitore_id": vigilux},
    )


def test_null_references_are_valid(validator):
    validator.validate(
        EntityType.SERVICE_POINT,
        {"nome_punto_servizio": "Magazzino", "id_cliente": None, "fornitore_id": None},
    )


def test_missing_reference_is_reported(validator, acme):
    missing = str(uuid.uuid4())
    with pytest.raises(ForeignKeyError) as exc_info:
        validator.validate(
            EntityType.SERVICE_POINT,
            {"nome_punto_servizio": "Magazzino", "id_cliente": acme, "fornitore_id": missing},
        )
    error = exc_info.value
    assert error.field == "fornitore_id"
    assert error.value == missing
    assert error.ref_table == "fornitori"
    assert error.message == f"Errore: ID FORNITORE_ID '{missing}' non trovato nella tabella 'fornitori'."


def test_only_first_failing_rule_is_reported(validator):
    payload = {
        "client_id": str(uuid.uuid4()),
        "tipo_servizio": "PIANTONAMENTO_ARMATO",
        "importo": 10,
        "punto_servizio_id": str(uuid.uuid4()),
        "fornitore_id": str(uuid.uuid4()),
    }
    with pytest.raises(ForeignKeyError) as exc_info:
        validator.validate(EntityType.TARIFF, payload)
    assert exc_info.value.field == "client_id"
    assert exc_info.value.ref_table == "clienti"


def test_entities_without_foreign_keys_always_pass(validator):
    validator.validate(EntityType.CLIENT, {"ragione_sociale": "Acme"})
