# tests/repositories/test_storage_repository.py

import pytest

from app.core.exceptions import StorageError


def test_select_returns_rows_as_dicts(storage, acme):
    rows = storage.select("clienti", {"codice_cliente_custom": "ACME01"})

    assert len(rows) == 1
    assert rows[0]["id"] == acme
    assert rows[0]["ragione_sociale"] == "Acme S.p.A."
    assert isinstance(rows[0]["created_at"], str)


def test_update_overwrites_given_columns(storage, acme):
    storage.update("clienti", acme, {"citta": "Torino"})

    row = storage.select("clienti", {"id": acme})[0]
    assert row["citta"] == "Torino"
    assert row["partita_iva"] == "01234567890"


def test_delete_removes_row(storage, acme, vigilux):
    storage.delete("clienti", acme)

    assert storage.select("clienti", {"id": acme}) == []
    assert storage.count("clienti") == 0
    assert storage.count("fornitori") == 1


def test_delete_missing_row_raises(storage, acme):
    storage.delete("clienti", acme)

    with pytest.raises(StorageError) as exc_info:
        storage.delete("clienti", acme)
    assert exc_info.value.operation == "delete"
    assert exc_info.value.table == "clienti"


def test_unknown_table_raises(storage):
    with pytest.raises(StorageError):
        storage.select("non_esiste")
