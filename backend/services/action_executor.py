# services/action_executor.py
# Instruction -> one mutation on the directory sheet or the calendar.
# Each action tag maps to a single handler; any failure inside a handler becomes
# a user-safe message instead of an HTTP error.

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from schemas.instruction_schema import EventInstruction, Instruction, SheetUpdateInstruction
from schemas.webhook_schema import SessionContext
from services.errors import BadInstruction, EventNotFound, UnknownAction, WebhookError
from services.event_store import PRIMARY
from services.field_resolver import normalize_header

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Não consegui identificar ou executar a edição solicitada."

# action -> (field asked to the sheet, session variable patched)
IDENTITY_FIELDS = {
    "update_phone": ("telefone", "user_phone"),
    "update_email": ("email", "user_email"),
    "update_name": ("nome", "user_name"),
}

# normalized field name -> session variable
SESSION_VARIABLE_FOR_FIELD = {
    "telefone": "user_phone", "phone": "user_phone", "user_phone": "user_phone",
    "email": "user_email", "user_email": "user_email",
    "nome": "user_name", "name": "user_name", "user_name": "user_name",
}


@dataclass
class ExecutionResult:
    action: str
    ok: bool
    message: str
    session_patch: Dict[str, str] = field(default_factory=dict)


def resolve_calendar_scope(instruction_scope: Optional[str], ctx: SessionContext) -> str:
    """instruction scope -> session calendar scope -> session e-mail -> 'primary'"""
    return instruction_scope or ctx.calendar_scope or ctx.user_email or PRIMARY


class ActionExecutor:
    """
    :param row_store: directory adapter (apply_field_update)
    :type row_store: RowStore
    :param event_store: calendar adapter (create/patch/delete/find_by_summary)
    :type event_store: EventStore
    """

    def __init__(self, row_store, event_store):
        self.row_store = row_store
        self.event_store = event_store
        self.handlers: Dict[str, Callable[[Any, SessionContext], ExecutionResult]] = {
            "update_phone": self._update_identity,
            "update_email": self._update_identity,
            "update_name": self._update_identity,
            "update_sheet_field": self._update_sheet_field,
            "create_event": self._create_event,
            "update_event": self._update_event,
            "delete_event": self._delete_event,
        }

    def execute(self, instruction: Optional[Instruction], ctx: SessionContext) -> ExecutionResult:
        """
        Dispatch on the action tag. Missing instructions and unknown tags make no store call.

        :param instruction: classifier output, or None when classification failed
        :type instruction: Optional[Instruction]
        :param ctx: session identity of the caller
        :type ctx: SessionContext
        :return: message for the user plus session-variable patch
        :rtype: ExecutionResult
        """

        action = instruction.action if instruction is not None else "error"
        handler = self.handlers.get(action)
        try:
            if handler is None:
                raise UnknownAction("Ação não reconhecida pela IA.")
            return handler(instruction, ctx)
        except WebhookError as e:
            logger.error("[EDIT] action %s failed: %s", action, e)
            return ExecutionResult(action, False, f"{FAILURE_MESSAGE} Detalhe: {e}")
        except Exception:
            logger.exception("[EDIT] action %s crashed", action)
            return ExecutionResult(action, False, FAILURE_MESSAGE)

    # Sheets
    def _apply(self, field_name: str, new_value: str, ins: SheetUpdateInstruction, ctx: SessionContext):
        res = self.row_store.apply_field_update(
            field_name,
            new_value,
            identifier=ins.identifier.model_dump() if ins.identifier else None,
            fallback_identity=ctx.fallback_identity(),
        )
        logger.info("[EDIT] sheet %s row %d (%s -> %s)", res.cell, res.row_number, res.old_value, res.new_value)
        return res

    def _update_identity(self, ins: SheetUpdateInstruction, ctx: SessionContext) -> ExecutionResult:
        field_name, variable = IDENTITY_FIELDS[ins.action]
        new_value = (ins.new_value or "").strip()
        if not new_value:
            raise BadInstruction("new_value ausente.")
        self._apply(field_name, new_value, ins, ctx)

        if ins.action == "update_phone":
            message = f"Pronto, {ctx.user_name or 'ok'}! Atualizei seu telefone para {new_value}."
        elif ins.action == "update_email":
            message = f"Tudo certo! Atualizei seu e-mail para {new_value}."
        else:
            message = f"Nome atualizado para {new_value}."
        return ExecutionResult(ins.action, True, message, {variable: new_value})

    def _update_sheet_field(self, ins: SheetUpdateInstruction, ctx: SessionContext) -> ExecutionResult:
        field_name = (ins.field or "").strip()
        new_value = (ins.new_value or "").strip()
        if not field_name or not new_value:
            raise BadInstruction("field/new_value ausentes.")
        self._apply(field_name, new_value, ins, ctx)

        patch = {}
        variable = SESSION_VARIABLE_FOR_FIELD.get(normalize_header(field_name))
        if variable:
            patch[variable] = new_value
        return ExecutionResult(ins.action, True, f'Campo "{field_name}" atualizado para "{new_value}".', patch)

    # Calendar
    def _target_event_id(self, ins: EventInstruction, scope: str, verb: str) -> str:
        ev = ins.event
        if ev.eventId:
            return ev.eventId
        if not ev.summary:
            raise BadInstruction(f"Informe o evento (eventId ou summary) para {verb}.")
        date = ev.date or (ev.start[:10] if ev.start else None)
        event_id = self.event_store.find_by_summary(ev.summary, date, scope)
        if not event_id:
            raise EventNotFound(f"Não foi possível identificar o evento para {verb}.")
        return event_id

    def _create_event(self, ins: EventInstruction, ctx: SessionContext) -> ExecutionResult:
        ev = ins.event
        if not (ev.summary and ev.start and ev.end):
            raise BadInstruction("Para create_event: summary, start e end são obrigatórios.")
        scope = resolve_calendar_scope(ev.calendarId, ctx)
        created = self.event_store.create(
            ev.model_dump(include={"summary", "description", "location", "attendees", "start", "end", "timezone"},
                          exclude_none=True),
            scope,
        )
        return ExecutionResult(
            ins.action, True,
            f"Evento criado: {created.get('summary')} ({created.get('id')}).",
            {"last_event_id": str(created.get("id") or "")},
        )

    def _update_event(self, ins: EventInstruction, ctx: SessionContext) -> ExecutionResult:
        ev = ins.event
        scope = resolve_calendar_scope(ev.calendarId, ctx)
        event_id = self._target_event_id(ins, scope, "atualizar")
        updated = self.event_store.patch(
            event_id,
            ev.model_dump(include={"summary", "description", "location", "attendees", "start", "end", "timezone"},
                          exclude_none=True),
            scope,
        )
        return ExecutionResult(
            ins.action, True,
            f"Evento atualizado: {updated.get('summary')} ({updated.get('id')}).",
            {"last_event_id": str(updated.get("id") or event_id)},
        )

    def _delete_event(self, ins: EventInstruction, ctx: SessionContext) -> ExecutionResult:
        scope = resolve_calendar_scope(ins.event.calendarId, ctx)
        event_id = self._target_event_id(ins, scope, "excluir")
        self.event_store.delete(event_id, scope)
        return ExecutionResult(ins.action, True, "Ok! Evento removido.", {"last_event_id": event_id})
