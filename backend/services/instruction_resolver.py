# services/instruction_resolver.py
# transcript -> classifier -> validated Instruction

import logging
from typing import Protocol

from schemas.instruction_schema import Instruction, parse_instruction_text
from services.errors import EmptyTranscript

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    def classify(self, transcript: str, scoping_key: str) -> str:
        ...


class InstructionResolver:
    """
    :param classifier: any object with ``classify(transcript, scoping_key) -> str``
    :type classifier: Classifier
    """

    def __init__(self, classifier: Classifier):
        self.classifier = classifier

    def resolve(self, transcript: str, scoping_key: str) -> Instruction:
        """
        :param transcript: reconciled transcript (must not be empty)
        :type transcript: str
        :param scoping_key: user's current phone number
        :type scoping_key: str
        :return: parsed instruction
        :rtype: Instruction
        :raises EmptyTranscript: nothing to classify; the classifier is not called
        :raises ClassifierUnavailable: upstream failure
        :raises MalformedInstruction: the answer is not one structured instruction
        """

        if not transcript or not transcript.strip():
            raise EmptyTranscript("Conversa vazia.")
        raw = self.classifier.classify(transcript, scoping_key)
        instruction = parse_instruction_text(raw)
        logger.info("[EDIT] intent=%s", instruction.action)
        return instruction
