# services/field_resolver.py
# Maps loose identifiers/field names onto row and column positions of the directory table.
# Row 0 is always the header; nothing here talks to the network.

import re
from typing import Any, Dict, List, Optional, Sequence

PHONE_KEY_DIGITS = 11

# alias group key -> header names accepted for it (checked in order)
FIELD_ALIASES: Dict[str, List[str]] = {
    "telefone": ["telefone", "phone", "celular", "mobile", "user_phone", "telefone_do_usuario"],
    "email": ["email", "e-mail", "mail", "user_email"],
    "nome": ["nome", "name", "user_name", "full_name"],
}


def normalize_header(h: Any) -> str:
    """
    Normalize a header cell or field name: trimmed, lowercased, whitespace runs as '_'.

    :param h: raw header value (may be None or non-string)
    :type h: Any
    :return: normalized name
    :rtype: str
    """

    return re.sub(r"\s+", "_", str(h if h is not None else "").strip().lower())


def only_digits(s: Optional[str]) -> str:
    return re.sub(r"\D+", "", s or "")


def phone_key(s: Optional[str]) -> str:
    """
    Comparison key for phone numbers: the last 11 digits, so that
    '+55 11 98888-7777' and '11988887777' compare equal.

    :param s: phone number in any formatting
    :type s: Optional[str]
    :return: up to 11 trailing digits ('' when there are none)
    :rtype: str
    """

    return only_digits(s)[-PHONE_KEY_DIGITS:]


def is_phone_header(header: str) -> bool:
    return "telefone" in header or "phone" in header


def _cell(row: Sequence[Any], col: int) -> str:
    if col < len(row) and row[col] is not None:
        return str(row[col])
    return ""


def _identifier_candidates(identifier: Optional[Dict[str, Any]], fallback: Dict[str, Any]) -> List[Dict[str, str]]:
    candidates: List[Dict[str, str]] = []
    if identifier and identifier.get("key") and identifier.get("value"):
        candidates.append({"key": normalize_header(identifier["key"]), "value": str(identifier["value"])})
    if fallback.get("email"):
        candidates.append({"key": "email", "value": str(fallback["email"])})
    if fallback.get("phone"):
        candidates.append({"key": "telefone", "value": str(fallback["phone"])})
        candidates.append({"key": "phone", "value": str(fallback["phone"])})
    if fallback.get("name"):
        candidates.append({"key": "nome", "value": str(fallback["name"])})
        candidates.append({"key": "name", "value": str(fallback["name"])})
    return candidates


def resolve_row(
    table: List[List[Any]],
    headers: List[str],
    identifier: Optional[Dict[str, Any]] = None,
    fallback_identity: Optional[Dict[str, Any]] = None,
) -> Optional[int]:
    """
    Find the data row addressed by the instruction identifier or, failing that,
    by the session identity (email, then phone, then name).

    A candidate only counts when its key is an existing (normalized) header.
    Phone-type columns compare by :func:`phone_key`; every other column compares
    trimmed, case-insensitive text.

    :param table: full table, row 0 being the header
    :type table: List[List[Any]]
    :param headers: normalized header row
    :type headers: List[str]
    :param identifier: {"key": ..., "value": ...} from the instruction, if any
    :type identifier: Optional[Dict[str, Any]]
    :param fallback_identity: {"email", "phone", "name"} from the session
    :type fallback_identity: Optional[Dict[str, Any]]
    :return: index into ``table`` (>= 1) or None when nothing matches
    :rtype: Optional[int]
    """

    for cand in _identifier_candidates(identifier, fallback_identity or {}):
        if cand["key"] not in headers:
            continue
        col = headers.index(cand["key"])
        phone_col = is_phone_header(headers[col])
        target_phone = phone_key(cand["value"])
        target_text = cand["value"].strip().lower()

        for i in range(1, len(table)):
            cell = _cell(table[i], col)
            if phone_col:
                if target_phone and phone_key(cell) == target_phone:
                    return i
            elif cell.strip().lower() == target_text:
                return i
    return None


def resolve_column(headers: List[str], field: Optional[str]) -> Optional[int]:
    """
    Find the column for a field name: exact normalized match first, then the alias
    table (an alias group applies when its key is contained in the wanted name).

    :param headers: normalized header row
    :type headers: List[str]
    :param field: wanted field, possibly a synonym ("Telefone", "user_phone", ...)
    :type field: Optional[str]
    :return: column index or None
    :rtype: Optional[int]
    """

    if not field:
        return None
    wanted = normalize_header(field)
    if wanted in headers:
        return headers.index(wanted)

    for group, aliases in FIELD_ALIASES.items():
        if group not in wanted:
            continue
        for alias in aliases:
            if alias in headers:
                return headers.index(alias)
    return None
