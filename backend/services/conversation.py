# services/conversation.py
# Transcript reconciliation: the durable session log can lag behind the live turn,
# so the live text is appended when the log does not end with it yet.

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from services.errors import WebhookError

logger = logging.getLogger(__name__)

USER = "USER"
AGENT = "AGENT"

USER_EVENT = "message:received"
AGENT_EVENT = "message:brain_send"


@dataclass
class Message:
    origin: str  # USER | AGENT
    text: str
    emitted_at: Optional[str] = None


def _response_text(response: Any) -> str:
    if not isinstance(response, dict):
        return ""
    if response.get("text"):
        return str(response["text"])
    texts = response.get("texts")
    if isinstance(texts, list):
        return " ".join(str(t) for t in texts if t)
    return ""


def parse_messages(raw: List[Dict[str, Any]]) -> List[Message]:
    """
    Keep user and agent turns (in log order) that carry some text.

    :param raw: messages as returned by the history store
    :type raw: List[Dict[str, Any]]
    :return: transcript messages
    :rtype: List[Message]
    """

    out: List[Message] = []
    for m in raw or []:
        if not isinstance(m, dict):
            continue
        body = m.get("message")
        body = body if isinstance(body, dict) else {}
        if m.get("event") == USER_EVENT:
            text = (body.get("text") or "").strip()
            origin = USER
        elif m.get("event") == AGENT_EVENT:
            responses = body.get("responses")
            parts = [_response_text(r) for r in responses] if isinstance(responses, list) else []
            text = " ".join(p for p in parts if p).strip()
            origin = AGENT
        else:
            continue
        if text:
            out.append(Message(origin, text, m.get("time")))
    return out


def flatten(messages: List[Message]) -> str:
    return "\n".join(f"{'U' if m.origin == USER else 'A'}: {m.text}" for m in messages)


def last_user_text(messages: List[Message]) -> str:
    for m in reversed(messages):
        if m.origin == USER:
            return m.text
    return ""


class ConversationReconciler:
    """
    :param history: object exposing ``fetch_messages(session_id) -> list``
    :type history: MoveoHistoryClient
    """

    def __init__(self, history):
        self.history = history

    def fetch(self, session_id: Optional[str]) -> List[Message]:
        # a failed fetch degrades to an empty log
        if not session_id:
            logger.warning("[EDIT] webhook without session_id")
            return []
        try:
            return parse_messages(self.history.fetch_messages(session_id))
        except WebhookError as e:
            logger.error("[EDIT] history fetch failed sid=%s | %s", session_id, e)
            return []
        except Exception as e:
            logger.error("[EDIT] unreadable history sid=%s | %s", session_id, e, exc_info=True)
            return []

    def reconcile(self, session_id: Optional[str], live_text: str) -> str:
        """
        Durable transcript plus the live user turn when the log does not end with it.

        :param session_id: conversation session id
        :type session_id: Optional[str]
        :param live_text: text of the turn that triggered this webhook
        :type live_text: str
        :return: 'U: ...'/'A: ...' lines, trimmed ('' when there is nothing at all)
        :rtype: str
        """

        return self.reconcile_messages(self.fetch(session_id), live_text)

    @staticmethod
    def reconcile_messages(messages: List[Message], live_text: str) -> str:
        transcript = flatten(messages)
        live_text = (live_text or "").strip()
        if live_text:
            live_line = f"U: {live_text}"
            lines = transcript.split("\n") if transcript else []
            if not lines or lines[-1] != live_line:
                transcript = f"{transcript}\n{live_line}" if transcript else live_line
        return transcript.strip()
