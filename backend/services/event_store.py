# services/event_store.py
# Calendar adapter used by the webhooks: defaults (timezone, 'primary' scope),
# partial patches, and event lookup by summary within a single day.

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from services.errors import BadInstruction
from services.google_calendar import _rfc3339

logger = logging.getLogger(__name__)

PRIMARY = "primary"
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SUMMARY_SEARCH_LIMIT = 5


def day_window(date: str):
    """
    UTC bounds of one calendar day, as used for summary searches.

    :param date: 'YYYY-MM-DD'
    :type date: str
    :return: (timeMin, timeMax)
    :rtype: Tuple[str, str]
    :raises BadInstruction: date is not YYYY-MM-DD
    """

    if not ISO_DATE_RE.match(date or ""):
        raise BadInstruction(f"Data inválida para busca de evento: {date}")
    return f"{date}T00:00:00Z", f"{date}T23:59:59Z"


class EventStore:
    """
    :param client: calendar REST client (list_events/insert_event/patch_event/delete_event)
    :type client: GoogleCalendarClient
    :param default_tz: IANA zone applied when an event does not name one
    :type default_tz: str
    """

    def __init__(self, client, default_tz: str):
        self.client = client
        self.default_tz = default_tz

    def _when(self, value: str, tz: Optional[str]) -> Dict[str, str]:
        return {"dateTime": value, "timeZone": tz or self.default_tz}

    def create(self, event: Dict[str, Any], scope: Optional[str] = None) -> Dict[str, Any]:
        """
        Insert a new event.

        :param event: summary/start/end required; description/location/attendees/timezone optional
        :type event: Dict[str, Any]
        :param scope: calendar id; 'primary' when empty
        :type scope: Optional[str]
        :return: created event
        :rtype: Dict[str, Any]
        :raises BadInstruction: summary, start or end missing
        """

        if not (event.get("summary") and event.get("start") and event.get("end")):
            raise BadInstruction("Para create_event: summary, start e end são obrigatórios.")
        tz = event.get("timezone")
        body: Dict[str, Any] = {
            "summary": event["summary"],
            "start": self._when(event["start"], tz),
            "end": self._when(event["end"], tz),
        }
        for key in ("description", "location"):
            if event.get(key):
                body[key] = event[key]
        if event.get("attendees"):
            body["attendees"] = list(event["attendees"])
        return self.client.insert_event(scope or PRIMARY, body)

    def list(
        self,
        scope: Optional[str],
        query: Optional[str] = None,
        time_min: Optional[str] = None,
        time_max: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        return self.client.list_events(scope or PRIMARY, time_min, time_max, query, limit)

    def upcoming(self, scope: str, limit: int = 10, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        start = now or datetime.now(timezone.utc)
        return self.list(scope, time_min=_rfc3339(start), limit=limit)

    def patch(self, event_id: str, fields: Dict[str, Any], scope: Optional[str] = None) -> Dict[str, Any]:
        """
        Send only the fields that were provided; start/end carry the event's (or default) zone.

        :param event_id: event id
        :type event_id: str
        :param fields: summary/description/location/attendees/start/end/timezone
        :type fields: Dict[str, Any]
        :param scope: calendar id
        :type scope: Optional[str]
        :return: updated event
        :rtype: Dict[str, Any]
        """

        tz = fields.get("timezone")
        body: Dict[str, Any] = {}
        for key in ("summary", "description", "location", "attendees"):
            if fields.get(key):
                body[key] = fields[key]
        if fields.get("start"):
            body["start"] = self._when(fields["start"], tz)
        if fields.get("end"):
            body["end"] = self._when(fields["end"], tz)
        return self.client.patch_event(scope or PRIMARY, event_id, body)

    def delete(self, event_id: str, scope: Optional[str] = None) -> None:
        self.client.delete_event(scope or PRIMARY, event_id)

    def find_by_summary(self, summary: str, date: Optional[str] = None, scope: Optional[str] = None) -> Optional[str]:
        """
        Id of the first event matching ``summary`` on ``date`` (UTC day), or None.
        Several matches are not disambiguated: the earliest one wins.

        :param summary: free-text title to search
        :type summary: str
        :param date: 'YYYY-MM-DD'; no time window when omitted
        :type date: Optional[str]
        :param scope: calendar id
        :type scope: Optional[str]
        :return: event id or None
        :rtype: Optional[str]
        """

        time_min, time_max = day_window(date) if date else (None, None)
        matches = self.list(scope, query=summary, time_min=time_min, time_max=time_max, limit=SUMMARY_SEARCH_LIMIT)
        if len(matches) > 1:
            logger.info("[GCAL] %d events match '%s' on %s; using the first", len(matches), summary, date)
        return matches[0].get("id") if matches else None
