# services/google_sheets.py
# Google Sheets v4 REST wrapper (values.get / values.update)

import logging
from typing import Any, Dict, List
from urllib.parse import quote

import requests

from services.errors import IntegrationError

logger = logging.getLogger(__name__)

SHEETS_BASE = "https://sheets.googleapis.com/v4/spreadsheets"


def _rng(s: str) -> str:
    # A1 ranges may hold non-ASCII sheet names ("Página1!A:Z")
    return quote(s, safe="!:'")


def _body(r: requests.Response, what: str, message: str) -> Dict[str, Any]:
    try:
        data = r.json()
    except ValueError as e:
        logger.error("[SHEETS] %s returned non-JSON body | %s", what, r.text[:500])
        raise IntegrationError(message, r.status_code) from e
    if not isinstance(data, dict):
        logger.error("[SHEETS] %s returned unexpected body | %s", what, r.text[:500])
        raise IntegrationError(message, r.status_code)
    return data


class SheetsValuesClient:
    """
    Minimal client for one spreadsheet's values.

    :param spreadsheet_id: spreadsheet identity (SHEET_ID)
    :type spreadsheet_id: str
    :param auth: object exposing ``auth_header() -> Dict[str, str]``
    :type auth: GoogleServiceAuth
    :param timeout: per-request timeout in seconds
    :type timeout: int
    """

    def __init__(self, spreadsheet_id: str, auth, timeout: int = 20):
        self.spreadsheet_id = spreadsheet_id
        self.auth = auth
        self.timeout = timeout

    def _url(self, range_a1: str) -> str:
        return f"{SHEETS_BASE}/{quote(self.spreadsheet_id, safe='')}/values/{_rng(range_a1)}"

    def get(self, range_a1: str) -> List[List[Any]]:
        """
        Read a range as a 2D list (missing trailing cells are simply absent).

        :param range_a1: A1 range, e.g. "Página1!A:Z"
        :type range_a1: str
        :return: rows of cell values
        :rtype: List[List[Any]]
        :raises IntegrationError: transport or API error
        """

        try:
            r = requests.get(self._url(range_a1), headers=self.auth.auth_header(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("[SHEETS] get %s failed: %s", range_a1, e)
            raise IntegrationError("Falha ao ler a planilha.") from e
        if not r.ok:
            logger.error("[SHEETS] get %s failed: %s | %s", range_a1, r.status_code, r.text)
            raise IntegrationError("Falha ao ler a planilha.", r.status_code)
        return _body(r, f"get {range_a1}", "Falha ao ler a planilha.").get("values") or []

    def update(self, range_a1: str, value: Any) -> Dict[str, Any]:
        """
        Overwrite a single cell with a RAW value.

        :param range_a1: A1 cell, e.g. "Página1!B3"
        :type range_a1: str
        :param value: new cell value
        :type value: Any
        :return: API response (updatedRange, updatedCells, ...)
        :rtype: Dict[str, Any]
        :raises IntegrationError: transport or API error
        """

        try:
            r = requests.put(
                self._url(range_a1),
                headers=self.auth.auth_header(),
                params={"valueInputOption": "RAW"},
                json={"range": range_a1, "values": [[value]]},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("[SHEETS] update %s failed: %s", range_a1, e)
            raise IntegrationError("Falha ao atualizar a planilha.") from e
        if not r.ok:
            logger.error("[SHEETS] update %s failed: %s | %s", range_a1, r.status_code, r.text)
            raise IntegrationError("Falha ao atualizar a planilha.", r.status_code)
        return _body(r, f"update {range_a1}", "Falha ao atualizar a planilha.")
