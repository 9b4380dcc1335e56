# routes/edit_data.py
# editData webhook: session log + live turn -> classifier -> one edit on the sheet or calendar
import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from dependencies import get_action_executor, get_instruction_resolver, get_reconciler
from schemas.webhook_schema import SessionContext, WebhookOutput, WebhookResponse, live_text, text_responses
from services.action_executor import ActionExecutor
from services.conversation import ConversationReconciler, last_user_text
from services.errors import BadRequest, WebhookError
from services.instruction_resolver import InstructionResolver

logger = logging.getLogger(__name__)
router = APIRouter(tags=["edit"])

EMPTY_HISTORY = (
    "Desculpe, não consegui recuperar o histórico da conversa para processar seu pedido. "
    "Por favor, tente novamente."
)
INTERNAL_ERROR = "Erro interno ao processar sua solicitação. Tente novamente."
INTERNAL_CONTEXT = {"live_instructions": "### Erro\n- Falha interna ao processar sua solicitação."}


def run_edit(
    body: Dict[str, Any],
    reconciler: ConversationReconciler,
    resolver: InstructionResolver,
    executor: ActionExecutor,
) -> Dict[str, Any]:
    """
    Blocking edit pipeline. Integration failures below the classifier never raise;
    they end up as a safe message in ``live_instructions``.

    :param body: decoded webhook JSON
    :type body: Dict[str, Any]
    :return: response body for the platform
    :rtype: Dict[str, Any]
    """

    ctx = SessionContext.from_body(body)
    messages = reconciler.fetch(ctx.session_id)
    transcript = reconciler.reconcile_messages(messages, live_text(body))
    if not transcript:
        logger.warning("[EDIT] empty transcript sid=%s", ctx.session_id)
        return text_responses(EMPTY_HISTORY)

    logger.info("[EDIT] transcript sid=%s\n%s", ctx.session_id, transcript)
    logger.info("[EDIT] last user message in session log: %s", last_user_text(messages) or "(none)")

    instruction = None
    try:
        instruction = resolver.resolve(transcript, ctx.user_phone)
        logger.info("[EDIT] instruction: %s", instruction.model_dump(exclude_none=True))
    except WebhookError as e:
        logger.error("[EDIT] classification failed: %s", e)

    result = executor.execute(instruction, ctx)
    logger.info("[EDIT] action=%s ok=%s reply=%s", result.action, result.ok, result.message)
    return WebhookResponse(
        output=WebhookOutput(live_instructions=result.message, session_variables=result.session_patch or None)
    ).body()


@router.post("/editData")
async def edit_data(
    request: Request,
    reconciler: ConversationReconciler = Depends(get_reconciler),
    resolver: InstructionResolver = Depends(get_instruction_resolver),
    executor: ActionExecutor = Depends(get_action_executor),
):
    try:
        body = await request.json()
        if not isinstance(body, dict):
            raise BadRequest("corpo do webhook deve ser um objeto JSON")
        payload = await asyncio.to_thread(run_edit, body, reconciler, resolver, executor)
        return JSONResponse(content=payload)
    except Exception as e:
        logger.error("[EDIT] editData failed: %s", e, exc_info=True)
        return JSONResponse(status_code=500, content=text_responses(INTERNAL_ERROR, context=INTERNAL_CONTEXT))
