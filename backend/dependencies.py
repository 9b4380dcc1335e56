# dependencies.py
# FastAPI providers: settings are read once per process and every adapter is built from them.
# Tests swap any of these through app.dependency_overrides.

from functools import lru_cache

from fastapi import Depends

from config import GOOGLE_SCOPES, Settings
from services.action_executor import ActionExecutor
from services.conversation import ConversationReconciler
from services.event_store import EventStore
from services.google_auth import GoogleServiceAuth
from services.google_calendar import GoogleCalendarClient
from services.google_sheets import SheetsValuesClient
from services.instruction_resolver import InstructionResolver
from services.moveo_history import MoveoHistoryClient
from services.openai_classifier import OpenAIClassifier
from services.row_store import RowStore


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache
def _google_auth(credentials_path) -> GoogleServiceAuth:
    # one credential object (and token) per key file for the whole process
    return GoogleServiceAuth(credentials_path, GOOGLE_SCOPES)


def get_row_store(settings: Settings = Depends(get_settings)) -> RowStore:
    client = SheetsValuesClient(settings.sheet_id, _google_auth(settings.google_credentials_path), settings.http_timeout)
    return RowStore(client, settings.sheet_id, settings.sheet_range)


def get_event_store(settings: Settings = Depends(get_settings)) -> EventStore:
    client = GoogleCalendarClient(_google_auth(settings.google_credentials_path), settings.http_timeout)
    return EventStore(client, settings.default_tz)


def get_reconciler(settings: Settings = Depends(get_settings)) -> ConversationReconciler:
    history = MoveoHistoryClient(
        settings.moveo_logs_url, settings.moveo_account_id, settings.moveo_api_key, settings.http_timeout
    )
    return ConversationReconciler(history)


def get_instruction_resolver(settings: Settings = Depends(get_settings)) -> InstructionResolver:
    classifier = OpenAIClassifier(
        settings.openai_api_key,
        settings.openai_base,
        settings.openai_model,
        settings.default_tz,
        timeout=max(settings.http_timeout, 45),
    )
    return InstructionResolver(classifier)


def get_action_executor(
    row_store: RowStore = Depends(get_row_store),
    event_store: EventStore = Depends(get_event_store),
) -> ActionExecutor:
    return ActionExecutor(row_store, event_store)
