# routes/user_data.py
# getUserData webhook: phone number typed by the user -> directory row -> session variables
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from dependencies import get_row_store
from schemas.webhook_schema import WebhookOutput, WebhookResponse, live_instructions
from services.errors import BadRequest
from services.field_resolver import PHONE_KEY_DIGITS, normalize_header, phone_key, resolve_column
from services.row_store import RowStore

logger = logging.getLogger(__name__)
router = APIRouter(tags=["directory"])

MISSING_TEXT = "Input de texto do usuário não encontrado."
EMPTY_SHEET = "A planilha está vazia."
USER_NOT_FOUND = "Usuário não encontrado com este número de telefone."
INTERNAL_ERROR = "Ocorreu um erro interno ao buscar seus dados."


def _require_text(body: Any) -> str:
    text = body.get("input", {}).get("text") if isinstance(body, dict) and isinstance(body.get("input"), dict) else None
    if not isinstance(text, str) or not text.strip():
        raise BadRequest(MISSING_TEXT)
    return text


def _cell(row: List[Any], col: int) -> str:
    return str(row[col]) if col < len(row) and row[col] is not None else ""


def lookup_user(row_store: RowStore, phone_text: str) -> Tuple[str, Optional[Dict[str, str]]]:
    """
    Find the user whose phone matches the last 11 digits of ``phone_text``.

    Columns are located by header (nome/telefone/email and their aliases); when a header
    is missing the classic layout is assumed (name, phone, email in A, B, C).

    :param row_store: directory adapter
    :type row_store: RowStore
    :param phone_text: phone as typed, any punctuation or country code
    :type phone_text: str
    :return: (markdown for the agent, session variables or None when not found)
    :rtype: Tuple[str, Optional[Dict[str, str]]]
    """

    table = row_store.read_all()
    if len(table) <= 1:
        return EMPTY_SHEET, None

    headers = [normalize_header(h) for h in table[0]]
    name_col = resolve_column(headers, "nome")
    phone_col = resolve_column(headers, "telefone")
    email_col = resolve_column(headers, "email")
    name_col = 0 if name_col is None else name_col
    phone_col = 1 if phone_col is None else phone_col
    email_col = 2 if email_col is None else email_col

    key = phone_key(phone_text)
    if len(key) != PHONE_KEY_DIGITS:
        logger.info("[USER] phone key too short: %r", key)
        return USER_NOT_FOUND, None

    row = next((r for r in table[1:] if phone_key(_cell(r, phone_col)) == key), None)
    if row is None:
        return USER_NOT_FOUND, None

    user = {
        "nome": _cell(row, name_col),
        "telefone": _cell(row, phone_col),
        "email": _cell(row, email_col),
    }
    content = (
        "### Dados do Usuário\n"
        f"- **Nome:** {user['nome']}\n"
        f"- **Telefone:** {user['telefone']}\n"
        f"- **Email:** {user['email']}"
    )
    return content, {"user_email": user["email"], "user_phone": user["telefone"], "user_name": user["nome"]}


@router.post("/getUserData")
async def get_user_data(request: Request, row_store: RowStore = Depends(get_row_store)):
    """
    Look up the caller in the directory by phone number (``input.text``).

    - 400 when there is no text
    - 200 with a friendly message for empty sheet / unknown number
    - 500 on integration failures
    """
    try:
        body = await request.json()
        logger.info("[USER] body: %s", body)
        try:
            phone_text = _require_text(body)
        except BadRequest as e:
            return JSONResponse(status_code=400, content=WebhookResponse(output=WebhookOutput(text=str(e))).body())

        content, variables = await asyncio.to_thread(lookup_user, row_store, phone_text)
        return JSONResponse(content=live_instructions("conteudo", content, variables))
    except Exception as e:
        logger.error("[USER] getUserData failed: %s", e, exc_info=True)
        return JSONResponse(status_code=500, content=live_instructions("conteudo", INTERNAL_ERROR))
