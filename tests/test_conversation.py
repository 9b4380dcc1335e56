"""
Tests for transcript building and reconciliation with the live turn.
"""

from conftest import FakeHistory, agent_turn, user_turn

from services.conversation import (
    AGENT,
    USER,
    ConversationReconciler,
    Message,
    flatten,
    last_user_text,
    parse_messages,
)
from services.errors import IntegrationError


def test_parse_messages_keeps_user_and_agent_turns():
    raw = [
        user_turn("oi"),
        {"event": "session:start", "message": {}},
        agent_turn("Olá!", "Como posso ajudar?"),
        {"event": "message:brain_send", "message": {"responses": [{"type": "text", "text": "Certo."}]}},
        user_turn("   "),
    ]

    messages = parse_messages(raw)

    assert [(m.origin, m.text) for m in messages] == [
        (USER, "oi"),
        (AGENT, "Olá! Como posso ajudar?"),
        (AGENT, "Certo."),
    ]
    assert messages[0].emitted_at == "2025-01-31T12:00:00Z"


def test_flatten_and_last_user_text():
    messages = [Message(USER, "oi"), Message(AGENT, "olá"), Message(USER, "quero mudar meu email")]
    assert flatten(messages) == "U: oi\nA: olá\nU: quero mudar meu email"
    assert last_user_text(messages) == "quero mudar meu email"
    assert last_user_text([]) == ""


def test_live_text_is_appended_when_log_lags():
    messages = [Message(USER, "oi"), Message(AGENT, "olá")]
    assert ConversationReconciler.reconcile_messages(messages, "troca meu telefone") == (
        "U: oi\nA: olá\nU: troca meu telefone"
    )


def test_live_text_is_not_duplicated():
    messages = [Message(USER, "oi"), Message(AGENT, "olá"), Message(USER, "troca meu telefone")]
    transcript = ConversationReconciler.reconcile_messages(messages, " troca meu telefone ")
    assert transcript.count("troca meu telefone") == 1


def test_live_text_alone():
    assert ConversationReconciler.reconcile_messages([], "oi") == "U: oi"


def test_nothing_at_all():
    assert ConversationReconciler.reconcile_messages([], "") == ""


def test_fetch_without_session_id_skips_history():
    history = FakeHistory([user_turn("oi")])
    assert ConversationReconciler(history).fetch(None) == []
    assert history.calls == []


def test_fetch_failure_degrades_to_empty_log():
    history = FakeHistory(error=IntegrationError("Falha ao buscar o histórico da conversa."))
    reconciler = ConversationReconciler(history)
    assert reconciler.fetch("sess-1") == []
    assert reconciler.reconcile("sess-1", "oi") == "U: oi"


def test_reconcile_uses_durable_log():
    history = FakeHistory([user_turn("oi"), agent_turn("olá")])
    assert ConversationReconciler(history).reconcile("sess-1", "") == "U: oi\nA: olá"
    assert history.calls == ["sess-1"]


def test_parse_messages_skips_entries_without_message_object():
    raw = [{"event": "message:received", "message": "oi"}, user_turn("troca meu email")]
    assert [(m.origin, m.text) for m in parse_messages(raw)] == [(USER, "troca meu email")]


class _BrokenHistory:
    def fetch_messages(self, session_id):
        raise TypeError("unexpected log shape")


def test_fetch_degrades_on_unexpected_errors():
    reconciler = ConversationReconciler(_BrokenHistory())
    assert reconciler.fetch("sess-1") == []
    assert reconciler.reconcile("sess-1", "troca meu email") == "U: troca meu email"
