"""
Tests for instruction parsing and the classifier boundary.
"""

import json
from datetime import datetime

import pytest
from conftest import FakeClassifier

from schemas.instruction_schema import (
    EventInstruction,
    SheetUpdateInstruction,
    UnknownInstruction,
    parse_instruction,
    parse_instruction_text,
)
from services.errors import ClassifierUnavailable, EmptyTranscript, MalformedInstruction
from services.instruction_resolver import InstructionResolver
from services.openai_classifier import build_messages


class TestParseInstruction:
    def test_sheet_update(self):
        ins = parse_instruction(
            {"action": "update_phone", "new_value": 11977776666, "identifier": {"key": "telefone", "value": 5511}}
        )
        assert isinstance(ins, SheetUpdateInstruction)
        assert ins.new_value == "11977776666"
        assert ins.identifier.value == "5511"

    def test_event_fields_are_lifted(self):
        ins = parse_instruction({"action": "delete_event", "summary": "Dentista", "date": "2025-01-31"})
        assert isinstance(ins, EventInstruction)
        assert ins.event.summary == "Dentista"
        assert ins.event.date == "2025-01-31"

    def test_null_event_uses_flat_fields(self):
        ins = parse_instruction({"action": "create_event", "event": None, "summary": "Call"})
        assert ins.event.summary == "Call"

    def test_attendees_accept_strings_and_dicts(self):
        ins = parse_instruction(
            {"action": "create_event", "event": {"attendees": ["a@x.com", {"email": "b@x.com"}, ""]}}
        )
        assert ins.event.attendees == ["a@x.com", "b@x.com"]

    def test_unknown_action_is_not_an_error(self):
        ins = parse_instruction({"action": "drop_table", "table": "users"})
        assert isinstance(ins, UnknownInstruction)
        assert ins.action == "drop_table"
        assert ins.payload == {"table": "users"}

    def test_missing_action(self):
        assert parse_instruction({}).action == "unknown"

    def test_ill_typed_known_action(self):
        with pytest.raises(MalformedInstruction):
            parse_instruction({"action": "update_phone", "identifier": "telefone"})

    @pytest.mark.parametrize("raw", ["", "   ", "não é json", "[1, 2]", None])
    def test_malformed_text(self, raw):
        with pytest.raises(MalformedInstruction):
            parse_instruction_text(raw)


class TestInstructionResolver:
    def test_empty_transcript_never_reaches_classifier(self):
        classifier = FakeClassifier(json.dumps({"action": "update_name", "new_value": "Ana"}))
        with pytest.raises(EmptyTranscript):
            InstructionResolver(classifier).resolve("  ", "11988887777")
        assert classifier.calls == []

    def test_resolve(self):
        classifier = FakeClassifier(json.dumps({"action": "update_name", "new_value": "Ana Maria"}))
        ins = InstructionResolver(classifier).resolve("U: meu nome é Ana Maria", "11988887777")
        assert ins.action == "update_name"
        assert classifier.calls == [("U: meu nome é Ana Maria", "11988887777")]

    def test_malformed_answer(self):
        with pytest.raises(MalformedInstruction):
            InstructionResolver(FakeClassifier("```json oops")).resolve("U: oi", "")

    def test_classifier_failure_propagates(self):
        classifier = FakeClassifier(error=ClassifierUnavailable("Serviço de IA indisponível."))
        with pytest.raises(ClassifierUnavailable):
            InstructionResolver(classifier).resolve("U: oi", "")


def test_build_messages_embeds_phone_and_time():
    messages = build_messages("U: oi", "11988887777", "America/Sao_Paulo", now=datetime(2025, 1, 31, 9, 30))
    assert messages[0]["role"] == "system"
    assert '"value": "11988887777"' in messages[0]["content"]
    assert "2025-01-31T09:30" in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "U: oi"}
