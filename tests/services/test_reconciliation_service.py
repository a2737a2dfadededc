# tests/services/test_reconciliation_service.py

from datetime import date

import pytest

from app.db.models.enums import EntityType
from app.services.entity_mappers import map_row
from app.services.entity_schemas import FieldSpec, FieldType, get_schema
from app.services.reconciliation_service import (
    ReconciliationEngine,
    VerdictKind,
    values_equal,
)


@pytest.fixture
def engine_(storage):
    return ReconciliationEngine(storage)


def _acme_row(**overrides):
    row = {
        "Ragione Sociale": "Acme S.p.A.",
        "Partita IVA": "01234567890",
        "Codice Cliente Manuale": "ACME01",
        "Città": "Milano",
    }
    row.update(overrides)
    return row


def test_identical_row_is_duplicate(storage, engine_, acme):
    payload = map_row(EntityType.CLIENT, _acme_row(), storage)
    verdict = engine_.reconcile(EntityType.CLIENT, payload)

    assert verdict.kind == VerdictKind.DUPLICATE
    assert verdict.record_id == acme
    assert verdict.updated_fields == []
    assert verdict.key_set == ("ragione_sociale",)


def test_changed_row_is_update_with_changed_fields(storage, engine_, acme):
    payload = map_row(EntityType.CLIENT, _acme_row(**{"Città": "Torino", "Email": "info@acme.it"}), storage)
    verdict = engine_.reconcile(EntityType.CLIENT, payload)

    assert verdict.kind == VerdictKind.UPDATE
    assert verdict.record_id == acme
    assert verdict.updated_fields == ["citta", "email"]


def test_only_first_populated_key_set_is_probed(storage, engine_, acme):
    # Same VAT number, different company name: the name key-set comes first and finds nothing
    payload = map_row(EntityType.CLIENT, _acme_row(**{"Ragione Sociale": "Acme Nuova S.r.l."}), storage)
    verdict = engine_.reconcile(EntityType.CLIENT, payload)

    assert verdict.kind == VerdictKind.NEW
    assert verdict.record_id is None
    assert verdict.key_set == ("ragione_sociale",)


def test_first_populated_key_set_decides_the_matched_record(storage, engine_, acme):
    other = storage.insert("clienti", {"ragione_sociale": "Beta S.r.l.", "partita_iva": "99999999999"})
    # Name matches Acme, VAT number matches Beta
    payload = map_row(EntityType.CLIENT, _acme_row(**{"Partita IVA": "99999999999"}), storage)
    verdict = engine_.reconcile(EntityType.CLIENT, payload)

    assert verdict.kind == VerdictKind.UPDATE
    assert verdict.record_id == acme
    assert verdict.record_id != other
    assert verdict.key_set == ("ragione_sociale",)
    assert verdict.updated_fields == ["partita_iva"]


def test_no_populated_key_set_is_new_without_lookup(engine_):
    schema = get_schema(EntityType.TARIFF)
    payload = {"client_id": None, "tipo_servizio": "PIANTONAMENTO_ARMATO", "importo": 10}

    assert engine_.select_key_set(schema, payload) is None
    verdict = engine_.reconcile(EntityType.TARIFF, payload)
    assert verdict.kind == VerdictKind.NEW
    assert verdict.key_set is None


def test_select_key_set_skips_partially_populated_sets():
    schema = get_schema(EntityType.SERVICE_POINT)
    payload = {"nome_punto_servizio": "Magazzino", "id_cliente": None}
    assert ReconciliationEngine.select_key_set(schema, payload) == ("nome_punto_servizio",)


def test_diff_ignores_timestamps():
    schema = get_schema(EntityType.CLIENT)
    existing = {
        "id": "a",
        "ragione_sociale": "Acme",
        "created_at": "2020-01-01T00:00:00",
        "updated_at": "2020-01-01T00:00:00",
    }
    payload = {
        "ragione_sociale": "Acme",
        "created_at": "2024-06-01T10:00:00",
        "updated_at": "2024-06-01T10:00:00",
    }
    assert ReconciliationEngine.diff(schema, payload, existing) == []


def test_numeric_values_compare_after_coercion():
    importo = FieldSpec("importo", FieldType.NUMBER)
    assert values_equal("10", 10.0, importo)
    assert values_equal(10, 10.0, importo)
    assert not values_equal("10,5", 10.0, importo)


def test_date_values_compare_in_iso_form():
    spec = FieldSpec("data_nascita", FieldType.DATE)
    assert values_equal("2024-01-15", date(2024, 1, 15), spec)
    assert values_equal("2024-01-15", "2024-01-15", spec)
    assert not values_equal("2024-01-16", "2024-01-15", spec)


def test_blank_and_none_are_equal():
    assert values_equal("", None, FieldSpec("note"))
    assert values_equal(None, None)


def test_verdict_to_dict(storage, engine_, acme):
    payload = map_row(EntityType.CLIENT, _acme_row(**{"Città": "Roma"}), storage)
    data = engine_.reconcile(EntityType.CLIENT, payload).to_dict()
    assert data == {"status": "UPDATE", "id": acme, "updated_fields": ["citta"], "key_set": ["ragione_sociale"]}
