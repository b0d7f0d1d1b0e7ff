"""
Prompt assembly for the study assistant.

Pure functions only: they turn a chat's content, its recent history and the
user's new input into the ``contents`` payload Gemini expects. No I/O, no
database access.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from core.services.quiz import OPTIONS_PER_QUESTION, QUIZ_SIZE


HISTORY_WINDOW = 5

QUIZ_INSTRUCTION = f"""Generate {QUIZ_SIZE} MCQs with {OPTIONS_PER_QUESTION} options each based on the following content. Also include the correct answer. Format it as JSON array only like:
[
  {{
    "question": "What is ...?",
    "options": ["A", "B", "C", "D"],
    "answer": "B"
  }}, ...
]"""


@dataclass(frozen=True)
class HistoryTurn:
    """One prior message translated to the provider's role vocabulary."""

    role: str
    text: str

    def to_content(self) -> dict:
        return {"role": self.role, "parts": [self.text]}


def sender_to_role(sender: str) -> str:
    """Map a stored sender label ('user' / 'bot') to a Gemini role."""
    return "user" if sender == "user" else "model"


def window_history(messages: Sequence, size: int = HISTORY_WINDOW) -> List[HistoryTurn]:
    """
    Return the last ``size`` messages as provider turns, oldest first.

    Older messages are dropped outright; there is no summarization.

    Args:
        messages: Chat messages in chronological order. Each needs
            ``sender`` and ``text`` attributes.
        size: Maximum number of turns to keep.
    """
    if size <= 0:
        return []
    recent = list(messages)[-size:]
    return [HistoryTurn(role=sender_to_role(m.sender), text=m.text) for m in recent]


def build_ask_contents(content: str, history: Iterable[HistoryTurn], question: str) -> List[dict]:
    """
    Build the payload for a question about the chat's material.

    The accumulated content is re-sent on the final turn every time because
    the provider keeps no state between requests.

    Args:
        content: The chat's accumulated study material.
        history: Windowed prior turns (see ``window_history``).
        question: The user's new question.

    Returns:
        List of ``{"role", "parts"}`` dicts, history first.
    """
    contents = [turn.to_content() for turn in history]
    contents.append({
        "role": "user",
        "parts": [f"Context: {content}\n\nQuestion: {question}"],
    })
    return contents


def build_quiz_contents(content: str) -> List[dict]:
    """Build the one-shot quiz request. History is never included."""
    return [{
        "role": "user",
        "parts": [f"{QUIZ_INSTRUCTION}\nContent: {content}"],
    }]
