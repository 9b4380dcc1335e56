# services/openai_classifier.py
# OpenAI chat completion that turns a conversation into one edit instruction (raw JSON text)

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import requests

from services.errors import ClassifierUnavailable

logger = logging.getLogger(__name__)

EDIT_SYSTEM_PROMPT = """
Você é um assistente especialista em extrair UMA única instrução de edição a partir de uma conversa.
Sua resposta DEVE ser um único objeto JSON, sem texto adicional.
Data e hora atuais: {NOW} (fuso {TZ}).

Para atualizar a planilha de usuários use uma destas ações: "update_phone", "update_email", "update_name".
"new_value" é o novo valor extraído da conversa. "identifier" deve ter a chave "telefone" e o valor "{PHONE}".
Exemplo: {{"action": "update_phone", "new_value": "novo_numero", "identifier": {{"key": "telefone", "value": "{PHONE}"}}}}
Para qualquer outra coluna da planilha use "update_sheet_field" com o nome da coluna em "field":
{{"action": "update_sheet_field", "field": "cidade", "new_value": "Campinas", "identifier": {{"key": "telefone", "value": "{PHONE}"}}}}

Para criar, editar ou remover eventos da agenda (datas em ISO 8601):
{{"action": "create_event", "event": {{"summary": "Título", "start": "2025-01-31T14:00:00", "end": "2025-01-31T15:00:00"}}}}
{{"action": "update_event", "event": {{"summary": "Título a ser encontrado", "date": "2025-01-31", "start": "novo_inicio", "end": "novo_fim"}}}}
{{"action": "delete_event", "event": {{"summary": "Título a ser cancelado", "date": "2025-01-31"}}}}

Analise a conversa e retorne APENAS o JSON. Se não houver uma ação clara, retorne {{"action": "unknown"}}.
"""


def build_messages(transcript: str, scoping_key: str, tz: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    System prompt (action vocabulary + scoping phone) followed by the transcript as the user turn.

    :param transcript: reconciled 'U:'/'A:' transcript
    :type transcript: str
    :param scoping_key: user's current phone, used as identifier value
    :type scoping_key: str
    :param tz: IANA zone used to state the current time
    :type tz: str
    :param now: reference time (defaults to now)
    :type now: Optional[datetime]
    :return: chat messages
    :rtype: List[Dict[str, Any]]
    """

    now = now or datetime.now(ZoneInfo(tz))
    system = EDIT_SYSTEM_PROMPT.format(NOW=now.strftime("%Y-%m-%dT%H:%M"), TZ=tz, PHONE=scoping_key or "")
    return [
        {"role": "system", "content": system.strip()},
        {"role": "user", "content": transcript},
    ]


class OpenAIClassifier:
    """
    :param api_key: OPENAI_API_KEY
    :type api_key: str
    :param base_url: API base, e.g. https://api.openai.com/v1
    :type base_url: str
    :param model: chat model name
    :type model: str
    :param tz: zone for the 'current time' line of the prompt
    :type tz: str
    :param timeout: request timeout in seconds
    :type timeout: int
    """

    def __init__(self, api_key: str, base_url: str, model: str, tz: str, timeout: int = 45):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.tz = tz
        self.timeout = timeout

    def classify(self, transcript: str, scoping_key: str) -> str:
        """
        :return: the completion content, expected to be one JSON object
        :rtype: str
        :raises ClassifierUnavailable: key unset, transport failure or non-2xx answer
        """

        if not self.api_key:
            raise ClassifierUnavailable("OPENAI_API_KEY não configurada.")

        logger.debug("[LLM] req: model=%s chars=%d", self.model, len(transcript))
        try:
            r = requests.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "response_format": {"type": "json_object"},
                    "messages": build_messages(transcript, scoping_key, self.tz),
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("[LLM] call failed: %s", e)
            raise ClassifierUnavailable("Serviço de IA indisponível.") from e

        if not r.ok:
            logger.error("[LLM] OpenAI API error: %s %s", r.status_code, r.text)
            raise ClassifierUnavailable("Serviço de IA indisponível.", r.status_code)

        try:
            content = (r.json().get("choices") or [{}])[0].get("message", {}).get("content") or ""
        except (ValueError, AttributeError, IndexError) as e:
            logger.error("[LLM] unexpected response body: %s", r.text[:500])
            raise ClassifierUnavailable("Resposta inesperada do serviço de IA.") from e
        logger.debug("[LLM] res: %s", content[:200].replace("\n", " "))
        return content
