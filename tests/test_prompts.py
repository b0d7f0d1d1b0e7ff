"""Tests for history windowing and prompt assembly."""

from types import SimpleNamespace

import pytest

from core.services.prompts import (
    QUIZ_INSTRUCTION,
    HistoryTurn,
    build_ask_contents,
    build_quiz_contents,
    sender_to_role,
    window_history,
)


def _messages(count):
    senders = ["user", "bot"]
    return [SimpleNamespace(sender=senders[i % 2], text=f"msg {i}") for i in range(count)]


# ── window_history ───────────────────────────────────────────


class TestWindowHistory:
    def test_short_log_kept_whole_in_order(self):
        turns = window_history(_messages(3), size=5)
        assert [t.text for t in turns] == ["msg 0", "msg 1", "msg 2"]

    def test_exactly_window_size(self):
        turns = window_history(_messages(5), size=5)
        assert len(turns) == 5

    def test_long_log_keeps_last_k_in_order(self):
        turns = window_history(_messages(12), size=5)
        assert [t.text for t in turns] == ["msg 7", "msg 8", "msg 9", "msg 10", "msg 11"]

    def test_roles_translated(self):
        turns = window_history(_messages(2), size=5)
        assert [t.role for t in turns] == ["user", "model"]

    def test_empty_log(self):
        assert window_history([], size=5) == []

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_window(self, size):
        assert window_history(_messages(4), size=size) == []

    def test_unknown_sender_maps_to_model(self):
        assert sender_to_role("assistant") == "model"


# ── build_ask_contents ───────────────────────────────────────


class TestBuildAskContents:
    def test_final_turn_carries_context_and_question(self):
        contents = build_ask_contents("Cells divide.", [], "What do cells do?")
        assert contents == [{
            "role": "user",
            "parts": ["Context: Cells divide.\n\nQuestion: What do cells do?"],
        }]

    def test_history_precedes_question(self):
        history = [HistoryTurn("user", "hi"), HistoryTurn("model", "hello")]
        contents = build_ask_contents("notes", history, "q?")
        assert contents[0] == {"role": "user", "parts": ["hi"]}
        assert contents[1] == {"role": "model", "parts": ["hello"]}
        assert contents[2]["parts"][0].startswith("Context: notes")
        assert len(contents) == 3

    def test_does_not_mutate_history(self):
        history = [HistoryTurn("user", "hi")]
        build_ask_contents("notes", history, "q?")
        assert history == [HistoryTurn("user", "hi")]


# ── build_quiz_contents ──────────────────────────────────────


class TestBuildQuizContents:
    def test_single_instruction_turn(self):
        contents = build_quiz_contents("Mitochondria make ATP.")
        assert len(contents) == 1
        assert contents[0]["role"] == "user"
        text = contents[0]["parts"][0]
        assert text.startswith(QUIZ_INSTRUCTION)
        assert text.endswith("Content: Mitochondria make ATP.")

    def test_instruction_demands_five_items_as_json(self):
        assert "Generate 5 MCQs with 4 options" in QUIZ_INSTRUCTION
        assert "JSON array" in QUIZ_INSTRUCTION
