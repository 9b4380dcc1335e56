# services/moveo_history.py
# Moveo Analytics GraphQL: ordered message log of one session

import logging
from typing import Any, Dict, List

import requests

from services.errors import IntegrationError

logger = logging.getLogger(__name__)

SESSION_CONTENT_QUERY = """
query SessionContentV2($sessionId: String) {
    rows: log_session_content_v2(args: { session_id: $sessionId }) {
        messages
        session_id
        start_time
        end_time
        user_id
        user_name
        user_email
    }
}
"""


class MoveoHistoryClient:
    """
    :param url: Analytics GraphQL endpoint
    :type url: str
    :param account_id: Moveo account id (X-Moveo-Account-Id)
    :type account_id: str
    :param api_key: Analytics API key
    :type api_key: str
    :param timeout: request timeout in seconds
    :type timeout: int
    """

    def __init__(self, url: str, account_id: str, api_key: str, timeout: int = 20):
        self.url = url
        self.account_id = account_id
        self.api_key = api_key
        self.timeout = timeout

    def fetch_messages(self, session_id: str) -> List[Dict[str, Any]]:
        """
        Raw messages of the session in emission order ('event' tells user vs. bot turns).

        :param session_id: conversation session id
        :type session_id: str
        :return: list of {event, time, message: {text, responses}}
        :rtype: List[Dict[str, Any]]
        :raises IntegrationError: missing credentials, transport failure or GraphQL errors
        """

        if not self.api_key or not self.account_id:
            raise IntegrationError("Histórico da conversa não configurado.")
        try:
            r = requests.post(
                self.url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"apikey {self.api_key}",
                    "X-Moveo-Account-Id": self.account_id,
                },
                json={"query": SESSION_CONTENT_QUERY, "variables": {"sessionId": session_id}},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("[HISTORY] request failed sid=%s | %s", session_id, e)
            raise IntegrationError("Falha ao buscar o histórico da conversa.") from e
        if not r.ok:
            logger.error("[HISTORY] request failed(%s) sid=%s | %s", r.status_code, session_id, r.text)
            raise IntegrationError("Falha ao buscar o histórico da conversa.", r.status_code)

        try:
            data = r.json() or {}
            if not isinstance(data, dict):
                raise ValueError("GraphQL reply is not an object")
        except ValueError as e:
            logger.error("[HISTORY] invalid JSON sid=%s | %s", session_id, r.text[:500])
            raise IntegrationError("Falha ao buscar o histórico da conversa.") from e
        if data.get("errors"):
            logger.error("[HISTORY] graphql errors sid=%s | %s", session_id, data["errors"])
            raise IntegrationError("Falha ao buscar o histórico da conversa.")
        payload = data.get("data") if isinstance(data.get("data"), dict) else {}
        rows = payload.get("rows") or []
        first = rows[0] if isinstance(rows, list) and rows else None
        if first is not None and not isinstance(first, dict):
            logger.error("[HISTORY] unexpected row shape sid=%s | %r", session_id, first)
            raise IntegrationError("Falha ao buscar o histórico da conversa.")
        messages = first.get("messages") if first else None
        return messages if isinstance(messages, list) else []
