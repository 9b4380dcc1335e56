# schemas/instruction_schema.py
# Structured edit instruction returned by the classifier: a closed set of action tags.
# Anything outside the vocabulary becomes UnknownInstruction and is never executed.
import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from services.errors import MalformedInstruction

SHEET_ACTIONS = ("update_phone", "update_email", "update_name", "update_sheet_field")
EVENT_ACTIONS = ("create_event", "update_event", "delete_event")
EVENT_FIELDS = (
    "eventId", "summary", "description", "location", "attendees",
    "start", "end", "timezone", "date", "calendarId",
)


def _as_text(v):
    # the model sometimes answers numbers for phones/ids
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class Identifier(BaseModel):
    """How to locate the directory row, e.g. {"key": "telefone", "value": "+5511988887777"}."""

    key: Optional[str] = None
    value: Optional[str] = None

    coerce_text = field_validator("key", "value", mode="before")(_as_text)


class EventPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    eventId: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: Optional[List[str]] = None
    start: Optional[str] = None
    end: Optional[str] = None
    timezone: Optional[str] = None
    date: Optional[str] = None
    calendarId: Optional[str] = None

    coerce_text = field_validator("eventId", "summary", "start", "end", "date", mode="before")(_as_text)

    @field_validator("attendees", mode="before")
    @classmethod
    def attendee_emails(cls, v):
        if v is None:
            return None
        if not isinstance(v, list):
            v = [v]
        out = []
        for a in v:
            if isinstance(a, dict):
                a = a.get("email")
            if isinstance(a, str) and a.strip():
                out.append(a.strip())
        return out


class SheetUpdateInstruction(BaseModel):
    model_config = ConfigDict(extra="allow")

    action: Literal["update_phone", "update_email", "update_name", "update_sheet_field"]
    new_value: Optional[str] = None
    field: Optional[str] = None
    identifier: Optional[Identifier] = None

    coerce_text = field_validator("new_value", "field", mode="before")(_as_text)


class EventInstruction(BaseModel):
    model_config = ConfigDict(extra="allow")

    action: Literal["create_event", "update_event", "delete_event"]
    event: EventPayload = Field(default_factory=EventPayload)

    @model_validator(mode="before")
    @classmethod
    def lift_flat_event(cls, data):
        # accept {"action": "create_event", "summary": ...} without the "event" wrapper
        if isinstance(data, dict) and data.get("event") is None:
            data = {k: v for k, v in data.items() if k != "event"}
        if isinstance(data, dict) and not isinstance(data.get("event"), dict):
            flat = {k: data[k] for k in EVENT_FIELDS if k in data}
            if flat:
                data = {k: v for k, v in data.items() if k not in flat}
                data["event"] = flat
        return data


class UnknownInstruction(BaseModel):
    action: str = "unknown"
    payload: Dict[str, Any] = Field(default_factory=dict)


Instruction = Union[SheetUpdateInstruction, EventInstruction, UnknownInstruction]


def parse_instruction(data: Any) -> Instruction:
    """
    Turn the classifier's decoded JSON into one instruction variant.

    :param data: decoded JSON value
    :type data: Any
    :return: SheetUpdateInstruction | EventInstruction | UnknownInstruction
    :rtype: Instruction
    :raises MalformedInstruction: not an object, or a known action with ill-typed fields
    """

    if not isinstance(data, dict):
        raise MalformedInstruction("A resposta da IA não é um objeto JSON.")
    action = data.get("action")
    try:
        if action in SHEET_ACTIONS:
            return SheetUpdateInstruction.model_validate(data)
        if action in EVENT_ACTIONS:
            return EventInstruction.model_validate(data)
    except ValidationError as e:
        raise MalformedInstruction(f"Instrução '{action}' com campos inválidos.") from e
    return UnknownInstruction(
        action=action if isinstance(action, str) and action else "unknown",
        payload={k: v for k, v in data.items() if k != "action"},
    )


def parse_instruction_text(raw: Optional[str]) -> Instruction:
    if not raw or not raw.strip():
        raise MalformedInstruction("A resposta da IA estava vazia.")
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MalformedInstruction("A resposta da IA não estava no formato JSON esperado.") from e
    return parse_instruction(data)
