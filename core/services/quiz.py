"""
Quiz decoding for model output.

The model is asked for a bare JSON array but it is free text that merely
claims to be JSON, so decoding happens in two explicit stages:

1. ``normalize_response`` peels the Markdown code fence the model likes to
   wrap its answer in. Nothing else is cleaned up.
2. ``QuizDecoder.parse`` strictly decodes the normalized text and validates
   every item, returning either a ``QuizBatch`` or a ``ParseFailure``. It
   never raises.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Tuple, Union


logger = logging.getLogger(__name__)

QUIZ_SIZE = 5
OPTIONS_PER_QUESTION = 4

# "```" optionally followed by a language tag. Any tag followed by whitespace
# counts; "json" also counts when the payload starts right after it.
_OPENING_FENCE = re.compile(r"^```(?:[\w.+-]+(?=\s|$)|(?i:json)(?![\w.+-]))?")
_CLOSING_FENCE = "```"


def _strip_fence_pair(text: str) -> str:
    result = text
    match = _OPENING_FENCE.match(result)
    if match:
        result = result[match.end():].strip()
    if result.endswith(_CLOSING_FENCE):
        result = result[:-len(_CLOSING_FENCE)].strip()
    return result


def normalize_response(raw_text: str) -> str:
    """
    Strip surrounding whitespace and the code fence around a model answer.

    Removes one leading fence marker (with its optional language tag) and one
    trailing fence, re-trimming whitespace after each. The result is a fixed
    point, so normalizing an already-normalized string returns it unchanged.

    Args:
        raw_text: Text exactly as returned by the model.

    Returns:
        Candidate text for structured decoding.
    """
    if not raw_text:
        return ""

    text = raw_text.strip()
    # Peel until nothing changes; a single pass leaves nested fences behind
    # and normalizing its output again would strip more.
    while True:
        stripped = _strip_fence_pair(text)
        if stripped == text:
            return text
        text = stripped


@dataclass(frozen=True)
class QuizItem:
    question: str
    options: Tuple[str, ...]
    answer: str

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "options": list(self.options),
            "answer": self.answer,
        }


@dataclass(frozen=True)
class QuizBatch:
    """A fully validated set of quiz items."""

    items: Tuple[QuizItem, ...]
    ok = True

    def __len__(self):
        return len(self.items)

    def to_list(self) -> List[dict]:
        return [item.to_dict() for item in self.items]


@dataclass(frozen=True)
class ParseFailure:
    """
    Decoding failed. Carries the offending text for diagnostics.

    Attributes:
        text: The candidate text that was being decoded.
        errors: Every problem found, in document order.
    """

    text: str
    errors: List[str] = field(default_factory=list)
    ok = False


ParseResult = Union[QuizBatch, ParseFailure]


class QuizDecoder:
    """
    Strict decoder for a JSON array of multiple-choice items.

    Each item must be an object with a non-empty ``question`` string, an
    ``options`` array of exactly ``option_count`` strings and an ``answer``
    equal to one of the options. The array must hold exactly
    ``expected_items`` items. Invalid items are reported, never dropped.
    """

    def __init__(self, expected_items: int = QUIZ_SIZE, option_count: int = OPTIONS_PER_QUESTION):
        self.expected_items = expected_items
        self.option_count = option_count

    def decode(self, raw_text: str) -> ParseResult:
        """Normalize then parse raw model output."""
        return self.parse(normalize_response(raw_text))

    def parse(self, candidate_text: str) -> ParseResult:
        """
        Decode normalized text into a ``QuizBatch``.

        Args:
            candidate_text: Output of ``normalize_response``.

        Returns:
            ``QuizBatch`` when every check passes, otherwise ``ParseFailure``.
        """
        try:
            data = json.loads(candidate_text)
        except (ValueError, RecursionError) as e:
            return ParseFailure(text=candidate_text, errors=[f"Invalid JSON: {e}"])

        if not isinstance(data, list):
            return ParseFailure(
                text=candidate_text,
                errors=[f"Expected a JSON array, got {type(data).__name__}"],
            )

        errors = []
        if len(data) != self.expected_items:
            errors.append(f"Expected {self.expected_items} questions, got {len(data)}")

        items = []
        for index, raw_item in enumerate(data, start=1):
            item, item_errors = self._build_item(raw_item)
            errors.extend(f"Question {index}: {error}" for error in item_errors)
            if item is not None:
                items.append(item)

        if errors:
            return ParseFailure(text=candidate_text, errors=errors)

        return QuizBatch(items=tuple(items))

    def _build_item(self, raw_item):
        if not isinstance(raw_item, dict):
            return None, [f"expected an object, got {type(raw_item).__name__}"]

        errors = []
        question = raw_item.get("question")
        options = raw_item.get("options")
        answer = raw_item.get("answer")

        if not isinstance(question, str) or not question.strip():
            errors.append("missing question text")

        if not isinstance(options, list):
            errors.append("options must be an array")
            options = []
        else:
            if len(options) != self.option_count:
                errors.append(f"expected {self.option_count} options, got {len(options)}")
            if not all(isinstance(option, str) for option in options):
                errors.append("every option must be a string")

        if not isinstance(answer, str):
            errors.append("missing answer")
        elif answer not in options:
            errors.append(f"answer {answer!r} is not one of the options")

        if errors:
            return None, errors

        return QuizItem(question=question, options=tuple(options), answer=answer), []
