"""
Pytest configuration and shared fixtures.

The stores are exercised against in-memory fakes of the REST clients; nothing here
touches the network.
"""

import copy
import re
import sys
from pathlib import Path

import pytest

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from services.errors import IntegrationError  # noqa: E402

DIRECTORY = [
    ["Nome", "Telefone", "Email", "Cidade"],
    ["Ana Souza", "+55 11 98888-7777", "ana@example.com", "São Paulo"],
    ["Bruno Lima", "21977776666", "bruno@example.com", "Rio de Janeiro"],
]


def _col_index(letters: str) -> int:
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - 64)
    return n - 1


class FakeValuesClient:
    """In-memory stand-in for SheetsValuesClient."""

    def __init__(self, table=None, error=None):
        self.table = copy.deepcopy(table if table is not None else DIRECTORY)
        self.error = error
        self.reads = []
        self.writes = []

    def get(self, range_a1):
        self.reads.append(range_a1)
        if self.error:
            raise self.error
        return copy.deepcopy(self.table)

    def update(self, range_a1, value):
        self.writes.append((range_a1, value))
        m = re.match(r"^([A-Z]+)(\d+)$", range_a1.split("!")[-1])
        row, col = int(m.group(2)) - 1, _col_index(m.group(1))
        while len(self.table[row]) <= col:
            self.table[row].append("")
        self.table[row][col] = value
        return {"updatedRange": range_a1, "updatedCells": 1}


class FakeCalendarClient:
    """In-memory stand-in for GoogleCalendarClient; events keyed by calendar id."""

    def __init__(self, events=None, error=None):
        self.events = copy.deepcopy(events or {})
        self.error = error
        self.calls = []
        self._next_id = 1

    def list_events(self, calendar_id, time_min=None, time_max=None, query=None, max_results=50):
        self.calls.append(("list", calendar_id, time_min, time_max, query, max_results))
        if self.error:
            raise self.error
        items = self.events.get(calendar_id, [])
        if query:
            items = [e for e in items if query.lower() in (e.get("summary") or "").lower()]
        return copy.deepcopy(items[:max_results])

    def insert_event(self, calendar_id, body):
        self.calls.append(("insert", calendar_id, body))
        if self.error:
            raise self.error
        item = dict(body, id=f"evt{self._next_id}")
        self._next_id += 1
        self.events.setdefault(calendar_id, []).append(item)
        return dict(item)

    def patch_event(self, calendar_id, event_id, body):
        self.calls.append(("patch", calendar_id, event_id, body))
        for item in self.events.get(calendar_id, []):
            if item["id"] == event_id:
                item.update(body)
                return dict(item)
        raise IntegrationError("Falha na agenda (patch).", 404)

    def delete_event(self, calendar_id, event_id):
        self.calls.append(("delete", calendar_id, event_id))
        items = self.events.get(calendar_id, [])
        if not any(e["id"] == event_id for e in items):
            raise IntegrationError("Falha na agenda (delete).", 404)
        self.events[calendar_id] = [e for e in items if e["id"] != event_id]

    def mutations(self):
        return [c for c in self.calls if c[0] != "list"]


class FakeHistory:
    def __init__(self, messages=None, error=None):
        self.messages = messages or []
        self.error = error
        self.calls = []

    def fetch_messages(self, session_id):
        self.calls.append(session_id)
        if self.error:
            raise self.error
        return copy.deepcopy(self.messages)


class FakeClassifier:
    """Returns a canned answer (or raises) and counts the calls."""

    def __init__(self, answer="", error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    def classify(self, transcript, scoping_key):
        self.calls.append((transcript, scoping_key))
        if self.error:
            raise self.error
        return self.answer


class FakeAuth:
    def auth_header(self):
        return {"Authorization": "Bearer test-token"}


def user_turn(text, time="2025-01-31T12:00:00Z"):
    return {"event": "message:received", "time": time, "message": {"text": text}}


def agent_turn(*texts, time="2025-01-31T12:00:01Z"):
    return {
        "event": "message:brain_send",
        "time": time,
        "message": {"responses": [{"type": "text", "texts": list(texts)}]},
    }


@pytest.fixture
def values_client():
    return FakeValuesClient()


@pytest.fixture
def row_store(values_client):
    from services.row_store import RowStore

    return RowStore(values_client, "sheet-123", "Página1!A:Z")


@pytest.fixture
def calendar_client():
    return FakeCalendarClient()


@pytest.fixture
def event_store(calendar_client):
    from services.event_store import EventStore

    return EventStore(calendar_client, "America/Sao_Paulo")


@pytest.fixture
def session_body():
    """Webhook body of a known user asking to change their phone."""
    return {
        "input": {"text": "Meu novo número é 11977776666"},
        "context": {
            "session_id": "sess-1",
            "session_variables": {
                "user_name": "Ana",
                "user_email": "ana@example.com",
                "user_phone": "+55 11 98888-7777",
            },
        },
    }
