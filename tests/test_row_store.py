"""
Tests for the directory adapter.
"""

import pytest
from conftest import FakeValuesClient

from services.errors import EmptyTable, FieldNotFound, IntegrationError, RecordNotFound
from services.row_store import RowStore, column_letter, extract_sheet_name


def test_column_letter():
    assert column_letter(0) == "A"
    assert column_letter(25) == "Z"
    assert column_letter(26) == "AA"
    assert column_letter(27) == "AB"


def test_extract_sheet_name():
    assert extract_sheet_name("Página1!A:Z") == "Página1"
    assert extract_sheet_name("A:Z") == "Sheet1"


def test_read_all_requires_table_id(values_client):
    store = RowStore(values_client, "", "Página1!A:Z")
    with pytest.raises(IntegrationError):
        store.read_all()
    assert values_client.reads == []


def test_write_then_read_back(row_store, values_client):
    cell = row_store.write_cell(2, 3, "Niterói")
    assert cell == "Página1!D3"
    assert row_store.read_all()[2][3] == "Niterói"


def test_apply_field_update_with_identifier(row_store, values_client):
    res = row_store.apply_field_update(
        "telefone", "11977776666", identifier={"key": "telefone", "value": "+5511988887777"}
    )

    assert res.cell == "Página1!B2"
    assert res.row_number == 2
    assert res.old_value == "+55 11 98888-7777"
    assert values_client.writes == [("Página1!B2", "11977776666")]
    assert values_client.table[1][1] == "11977776666"


def test_apply_field_update_resolves_column_synonym(row_store, values_client):
    res = row_store.apply_field_update("user_email", "ana@new.com", fallback_identity={"email": "ana@example.com"})
    assert res.cell == "Página1!C2"


def test_empty_table_makes_no_write():
    client = FakeValuesClient(table=[["Nome", "Telefone"]])
    store = RowStore(client, "sheet-123", "Página1!A:Z")
    with pytest.raises(EmptyTable):
        store.apply_field_update("telefone", "11977776666", identifier={"key": "telefone", "value": "1"})
    assert client.writes == []


def test_unknown_user(row_store, values_client):
    with pytest.raises(RecordNotFound):
        row_store.apply_field_update("telefone", "1", fallback_identity={"email": "nobody@example.com"})
    assert values_client.writes == []


def test_unknown_field(row_store, values_client):
    with pytest.raises(FieldNotFound) as exc:
        row_store.apply_field_update("bairro", "Centro", fallback_identity={"email": "ana@example.com"})
    assert str(exc.value) == 'Coluna para o campo "bairro" não encontrada.'
    assert values_client.writes == []
