# services/row_store.py
# Directory table adapter: full reads, single-cell writes and the composed field update.
# The header row is re-read on every call; column positions are never cached.

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from services.errors import EmptyTable, FieldNotFound, IntegrationError, RecordNotFound
from services.field_resolver import normalize_header, resolve_column, resolve_row

logger = logging.getLogger(__name__)


def extract_sheet_name(range_a1: str) -> str:
    idx = range_a1.find("!")
    return range_a1[:idx] if idx >= 0 else "Sheet1"


def column_letter(index: int) -> str:
    """
    Zero-based column index to A1 letters (0 -> A, 25 -> Z, 26 -> AA).

    :param index: zero-based column index
    :type index: int
    :return: column letters
    :rtype: str
    """

    n = index + 1
    letters = ""
    while n > 0:
        n, mod = divmod(n - 1, 26)
        letters = chr(65 + mod) + letters
    return letters


@dataclass
class FieldUpdate:
    row_index: int  # zero-based, into the table returned by read_all()
    col_index: int
    cell: str  # A1 reference that was written
    old_value: str
    new_value: str

    @property
    def row_number(self) -> int:
        return self.row_index + 1


class RowStore:
    """
    :param values_client: object with ``get(range)`` and ``update(range, value)``
    :type values_client: SheetsValuesClient
    :param table_id: spreadsheet identity; reads fail when it is empty
    :type table_id: str
    :param table_range: A1 range that holds the directory, header first
    :type table_range: str
    """

    def __init__(self, values_client, table_id: str, table_range: str):
        self.values_client = values_client
        self.table_id = table_id
        self.table_range = table_range

    def read_all(self) -> List[List[Any]]:
        if not self.table_id:
            raise IntegrationError("Planilha não configurada (SHEET_ID ausente).")
        return self.values_client.get(self.table_range) or []

    def write_cell(self, row_index: int, col_index: int, value: Any) -> str:
        """
        Unconditional single-cell overwrite; concurrent writers race and the last one wins.

        :param row_index: zero-based row index
        :type row_index: int
        :param col_index: zero-based column index
        :type col_index: int
        :param value: new value
        :type value: Any
        :return: the A1 reference written
        :rtype: str
        """

        cell = f"{extract_sheet_name(self.table_range)}!{column_letter(col_index)}{row_index + 1}"
        self.values_client.update(cell, value)
        return cell

    def apply_field_update(
        self,
        field: str,
        new_value: str,
        identifier: Optional[Dict[str, Any]] = None,
        fallback_identity: Optional[Dict[str, Any]] = None,
    ) -> FieldUpdate:
        """
        Read the table, locate the user's row and the field's column, and write the new value.

        :param field: field name or synonym ("telefone", "email", "Cidade", ...)
        :type field: str
        :param new_value: value to store
        :type new_value: str
        :param identifier: explicit {"key", "value"} from the instruction
        :type identifier: Optional[Dict[str, Any]]
        :param fallback_identity: session {"email", "phone", "name"}
        :type fallback_identity: Optional[Dict[str, Any]]
        :return: coordinates and old/new values of the written cell
        :rtype: FieldUpdate
        :raises EmptyTable: header only (or nothing) in range
        :raises RecordNotFound: no row matches any identifier candidate
        :raises FieldNotFound: the field has no column
        """

        table = self.read_all()
        if len(table) <= 1:
            raise EmptyTable("Planilha vazia ou intervalo inválido.")

        headers = [normalize_header(h) for h in table[0]]
        row_index = resolve_row(table, headers, identifier, fallback_identity)
        if row_index is None:
            raise RecordNotFound("Linha do usuário não encontrada na planilha.")

        col_index = resolve_column(headers, field)
        if col_index is None:
            raise FieldNotFound(f'Coluna para o campo "{field}" não encontrada.')

        row = table[row_index]
        old_value = row[col_index] if col_index < len(row) and row[col_index] is not None else ""
        cell = self.write_cell(row_index, col_index, new_value)
        logger.info("[SHEETS] %s: %s -> %s", cell, old_value, new_value)
        return FieldUpdate(row_index, col_index, cell, str(old_value), new_value)
