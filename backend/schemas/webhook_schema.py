# schemas/webhook_schema.py
# Moveo webhook envelopes: the inbound session context and the outbound "output" block.
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


def _dig(obj: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _text(v: Any) -> str:
    return v.strip() if isinstance(v, str) else ""


class SessionContext(BaseModel):
    """
    Per-request identity bag taken from the webhook body. Nothing is stored server-side;
    changes travel back to the platform as ``session_variables``.
    """

    session_id: Optional[str] = None
    user_name: str = ""
    user_email: str = ""
    user_phone: str = ""
    calendar_scope: str = ""

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "SessionContext":
        """
        :param body: decoded webhook JSON
        :type body: Dict[str, Any]
        :return: session context (missing values are empty strings)
        :rtype: SessionContext
        """

        session_id = (
            _dig(body, "context", "session_id")
            or _dig(body, "session_id")
            or _dig(body, "context", "$sys_session")
            or _dig(body, "context", "$sys-session")
            or _dig(body, "$sys-session")
        )
        variables = _dig(body, "context", "session_variables") or {}
        user_email = _text(_dig(variables, "user_email")) or _text(_dig(body, "context", "$user", "email"))
        return cls(
            session_id=session_id if isinstance(session_id, str) and session_id else None,
            user_name=_text(_dig(variables, "user_name")) or _text(_dig(body, "context", "$user", "display_name")),
            user_email=user_email,
            user_phone=_text(_dig(variables, "user_phone")),
            calendar_scope=_text(_dig(variables, "user_email")),
        )

    def fallback_identity(self) -> Dict[str, str]:
        return {"email": self.user_email, "phone": self.user_phone, "name": self.user_name}


def live_text(body: Dict[str, Any]) -> str:
    """Text of the turn that triggered the webhook ('' when absent)."""
    return _text(_dig(body, "input", "text"))


class TextResponse(BaseModel):
    type: str = "text"
    texts: List[str]


class WebhookOutput(BaseModel):
    live_instructions: Optional[Union[str, Dict[str, str]]] = None
    session_variables: Optional[Dict[str, str]] = None
    responses: Optional[List[TextResponse]] = None
    text: Optional[str] = None


class WebhookResponse(BaseModel):
    output: WebhookOutput = Field(default_factory=WebhookOutput)
    context: Optional[Dict[str, Any]] = None

    def body(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def live_instructions(key: str, message: str, session_variables: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    # lookup flows answer {"output": {"live_instructions": {key: message}}}
    return WebhookResponse(
        output=WebhookOutput(live_instructions={key: message}, session_variables=session_variables)
    ).body()


def text_responses(*texts: str, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return WebhookResponse(
        output=WebhookOutput(responses=[TextResponse(texts=list(texts))]), context=context
    ).body()
