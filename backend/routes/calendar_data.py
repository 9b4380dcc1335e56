# routes/calendar_data.py
# getCalendarData webhook: next events of the user's calendar as markdown for the agent
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from config import Settings
from dependencies import get_event_store, get_settings
from schemas.webhook_schema import SessionContext, live_instructions
from services.errors import IntegrationError
from services.event_store import EventStore

logger = logging.getLogger(__name__)
router = APIRouter(tags=["calendar"])

MISSING_EMAIL = "E-mail do usuário não foi passado para este webhook."
NO_EVENTS = "Nenhum compromisso encontrado para os próximos dias."
NOT_SHARED = (
    "Não consegui acessar sua agenda. Verifique se ela foi compartilhada corretamente "
    "com o e-mail da Service Account."
)
INTERNAL_ERROR = "Ocorreu um erro interno ao buscar a agenda."


def format_start(start: Dict[str, Any], tz: str) -> str:
    """
    'dd/mm/yyyy, HH:MM:SS' in ``tz`` for timed events, 'dd/mm/yyyy' for all-day ones.
    """
    if start.get("dateTime"):
        dt = datetime.fromisoformat(start["dateTime"].replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=ZoneInfo(start.get("timeZone") or tz))
        return dt.astimezone(ZoneInfo(tz)).strftime("%d/%m/%Y, %H:%M:%S")
    if start.get("date"):
        return datetime.strptime(start["date"], "%Y-%m-%d").strftime("%d/%m/%Y")
    return ""


def format_agenda(events: List[Dict[str, Any]], tz: str) -> str:
    lines = []
    for ev in events:
        when = format_start(ev.get("start") or {}, tz)
        if not when:
            continue
        lines.append(f"- **{ev.get('summary') or '(sem título)'}**: {when}")
    return "\n### Próximos Compromissos\n" + "\n".join(lines)


@router.post("/getCalendarData")
async def get_calendar_data(
    request: Request,
    event_store: EventStore = Depends(get_event_store),
    settings: Settings = Depends(get_settings),
):
    """
    Upcoming events of the calendar shared under ``session_variables.user_email``.
    A calendar the service account cannot see (404) is reported to the user, not as an error.
    """
    try:
        body = await request.json()
        ctx = SessionContext.from_body(body)
        if not ctx.user_email:
            return JSONResponse(content=live_instructions("agenda", MISSING_EMAIL))

        events = await asyncio.to_thread(event_store.upcoming, ctx.user_email, settings.agenda_max_results)
        logger.info("[GCAL] %d upcoming events for %s", len(events), ctx.user_email)
        if not events:
            return JSONResponse(content=live_instructions("agenda", NO_EVENTS))
        return JSONResponse(content=live_instructions("agenda", format_agenda(events, settings.default_tz)))
    except IntegrationError as e:
        if e.status_code == 404:
            logger.warning("[GCAL] calendar not shared with the service account: %s", e)
            return JSONResponse(content=live_instructions("agenda", NOT_SHARED))
        logger.error("[GCAL] getCalendarData failed: %s", e)
        return JSONResponse(status_code=500, content=live_instructions("agenda", INTERNAL_ERROR))
    except Exception as e:
        logger.error("[GCAL] getCalendarData failed: %s", e, exc_info=True)
        return JSONResponse(status_code=500, content=live_instructions("agenda", INTERNAL_ERROR))
