# services/google_calendar.py
# Google Calendar v3 REST wrapper
# - service-account bearer header
# - event list/insert/patch/delete for one calendar id (normally the user's e-mail)
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from services.errors import IntegrationError

logger = logging.getLogger(__name__)

GCAL_BASE = "https://www.googleapis.com/calendar/v3"


def _rfc3339(dt: datetime) -> str:
    """
    datetime -> RFC3339 UTC('Z') string, for timeMin/timeMax.

    :param dt: timezone-aware datetime
    :type dt: datetime
    :return: e.g. '2025-10-19T12:00:00Z'
    :rtype: str
    """

    return (
        dt.astimezone(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def _normalize_rfc3339(s: Optional[str]) -> Optional[str]:
    """
    Append 'Z' when a timestamp carries no zone designator.

    :param s: timestamp that may or may not include Z/+HH:MM/-HH:MM
    :type s: Optional[str]
    :return: RFC3339 string or None
    :rtype: Optional[str]
    """

    if not s:
        return None
    # the date part has '-' too, so only look for an offset after 'T'
    if "Z" in s or "+" in s or "-" in s[11:]:
        return s
    return s + "Z"


def _cid(s: str) -> str:
    # calendar ids are e-mails or group ids; keep them readable in the path
    return quote(s, safe='@._-+%')


def _eid(s: str) -> str:
    return quote(s, safe='@._-+%')


def _norm_attendees_for_write(v) -> Optional[List[Dict[str, str]]]:
    """
    Attendee e-mails -> [{'email': ...}] as the API expects.

    :param v: list of e-mails, a single e-mail, or None
    :type v: Any
    :return: attendee list or None when nothing was given
    :rtype: Optional[List[Dict[str, str]]]
    """

    if v is None:
        return None
    if not isinstance(v, list):
        v = [v]
    out = []
    for x in v:
        email = x.strip() if isinstance(x, str) else ""
        if email:
            out.append({"email": email})
    return out


class GoogleCalendarClient:
    """
    Thin REST client; every method raises :class:`IntegrationError` (with the
    upstream status code) instead of returning error payloads.

    :param auth: object exposing ``auth_header() -> Dict[str, str]``
    :type auth: GoogleServiceAuth
    :param timeout: per-request timeout in seconds
    :type timeout: int
    """

    def __init__(self, auth, timeout: int = 20):
        self.auth = auth
        self.timeout = timeout

    def _events_url(self, calendar_id: str, event_id: Optional[str] = None) -> str:
        url = f"{GCAL_BASE}/calendars/{_cid(calendar_id)}/events"
        return f"{url}/{_eid(event_id)}" if event_id else url

    def _send(self, method: str, url: str, what: str, **kwargs) -> requests.Response:
        try:
            r = requests.request(method, url, headers=self.auth.auth_header(), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("[GCAL] %s failed: %s", what, e)
            raise IntegrationError(f"Falha na agenda ({what}).") from e
        if not r.ok:
            logger.error("[GCAL] %s failed(%s) | %s", what, r.status_code, r.text)
            raise IntegrationError(f"Falha na agenda ({what}).", r.status_code)
        return r

    def _json(self, r: requests.Response, what: str) -> Dict[str, Any]:
        try:
            data = r.json()
        except ValueError as e:
            logger.error("[GCAL] %s returned non-JSON body | %s", what, r.text[:500])
            raise IntegrationError(f"Falha na agenda ({what}).", r.status_code) from e
        if not isinstance(data, dict):
            logger.error("[GCAL] %s returned unexpected body | %s", what, r.text[:500])
            raise IntegrationError(f"Falha na agenda ({what}).", r.status_code)
        return data

    def list_events(
        self,
        calendar_id: str,
        time_min: Optional[str] = None,
        time_max: Optional[str] = None,
        query: Optional[str] = None,
        max_results: int = 50,
    ) -> List[Dict[str, Any]]:
        """
        List events of one calendar, recurring events expanded to single instances,
        ordered by start time.

        :param calendar_id: calendar id ('primary' or an e-mail)
        :type calendar_id: str
        :param time_min: lower bound (inclusive, RFC3339)
        :type time_min: Optional[str]
        :param time_max: upper bound (exclusive, RFC3339)
        :type time_max: Optional[str]
        :param query: free-text search (q)
        :type query: Optional[str]
        :param max_results: page size
        :type max_results: int
        :return: event resources
        :rtype: List[Dict[str, Any]]
        """

        params: Dict[str, Any] = {"singleEvents": "true", "orderBy": "startTime", "maxResults": max_results}
        if time_min:
            params["timeMin"] = _normalize_rfc3339(time_min)
        if time_max:
            params["timeMax"] = _normalize_rfc3339(time_max)
        if query:
            params["q"] = query

        r = self._send("GET", self._events_url(calendar_id), "list", params=params)
        items = self._json(r, "list").get("items") or []
        logger.info("[GCAL] %s -> %d items (q=%s)", calendar_id, len(items), query)
        return items

    def insert_event(self, calendar_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(body)
        if "attendees" in payload:
            att = _norm_attendees_for_write(payload.pop("attendees"))
            if att:
                payload["attendees"] = att
        r = self._send("POST", self._events_url(calendar_id), "insert", json=payload)
        return self._json(r, "insert")

    def patch_event(self, calendar_id: str, event_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Partial update; only the keys present in ``body`` are sent.

        :param calendar_id: calendar id
        :type calendar_id: str
        :param event_id: event id
        :type event_id: str
        :param body: fields to change
        :type body: Dict[str, Any]
        :return: updated event
        :rtype: Dict[str, Any]
        """

        payload = dict(body)
        if "attendees" in payload:
            att = _norm_attendees_for_write(payload.pop("attendees"))
            if att is not None:
                payload["attendees"] = att
        r = self._send("PATCH", self._events_url(calendar_id, event_id), "patch", json=payload)
        return self._json(r, "patch")

    def delete_event(self, calendar_id: str, event_id: str) -> None:
        # a second delete of the same event answers 404/410 and surfaces as IntegrationError
        self._send("DELETE", self._events_url(calendar_id, event_id), "delete")
