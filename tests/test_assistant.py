"""Tests for StudyAssistant ask / quiz flows with a fake generation client."""

import uuid

import pytest

from core.services.assistant import NO_ANSWER, NO_CONTENT_ANSWER
from core.services.conversations import CreateConversation
from core.services.exceptions import (
    InputInvalid,
    MalformedStructuredOutput,
    NotFoundOrUnauthorized,
    UpstreamEmpty,
    UpstreamUnavailable,
)
from core.services.quiz import QuizBatch
from tests.conftest import make_quiz_json


pytestmark = pytest.mark.django_db


@pytest.fixture
def stocked_chat(store, user):
    return store.create(CreateConversation(
        owner_id=user.id,
        content="Photosynthesis converts light to chemical energy.",
    ))


# ── ask ──────────────────────────────────────────────────────


class TestAsk:
    def test_answer_is_saved_as_turn(self, assistant, fake_client, stocked_chat, user):
        fake_client.queue("Light energy into chemical energy.")

        result = assistant.ask(stocked_chat.id, user.id, "What does photosynthesis convert?")

        assert result.answered
        assert result.answer == "Light energy into chemical energy."
        log = [(m.sender, m.text) for m in stocked_chat.messages.order_by('position')]
        assert log == [
            ("user", "What does photosynthesis convert?"),
            ("bot", "Light energy into chemical energy."),
        ]

    def test_request_is_self_contained(self, assistant, fake_client, stocked_chat, user):
        fake_client.queue("answer")
        assistant.ask(stocked_chat.id, user.id, "Why?")

        contents = fake_client.calls[0]["contents"]
        assert contents[-1] == {
            "role": "user",
            "parts": ["Context: Photosynthesis converts light to chemical energy.\n\nQuestion: Why?"],
        }
        assert fake_client.calls[0]["json_output"] is False

    def test_history_window_applied(self, assistant, fake_client, store, stocked_chat, user):
        store.replace_messages(stocked_chat.id, user.id, [
            {"sender": "user" if i % 2 == 0 else "bot", "text": f"m{i}"} for i in range(7)
        ])
        fake_client.queue("answer")

        assistant.ask(stocked_chat.id, user.id, "next")

        contents = fake_client.calls[0]["contents"]
        assert len(contents) == 6
        assert [c["parts"][0] for c in contents[:5]] == ["m2", "m3", "m4", "m5", "m6"]
        assert [c["role"] for c in contents[:5]] == ["user", "model", "user", "model", "user"]

    def test_no_content_short_circuits(self, assistant, fake_client, store, user):
        chat = store.create(CreateConversation(owner_id=user.id, messages=[{"sender": "user", "text": "hi"}]))

        result = assistant.ask(chat.id, user.id, "Anything?")

        assert not result.answered
        assert result.answer == NO_CONTENT_ANSWER
        assert fake_client.calls == []
        assert chat.messages.count() == 1

    def test_empty_model_answer_is_in_band(self, assistant, fake_client, stocked_chat, user):
        result = assistant.ask(stocked_chat.id, user.id, "Hello?")

        assert not result.answered
        assert result.answer == NO_ANSWER
        assert len(fake_client.calls) == 1
        assert stocked_chat.messages.count() == 0

    def test_upstream_failure_propagates_without_mutation(self, assistant, fake_client, stocked_chat, user):
        fake_client.queue(UpstreamUnavailable("connection reset"))

        with pytest.raises(UpstreamUnavailable):
            assistant.ask(stocked_chat.id, user.id, "Hello?")
        assert stocked_chat.messages.count() == 0

    def test_not_owned(self, assistant, fake_client, stocked_chat, other_user):
        with pytest.raises(NotFoundOrUnauthorized):
            assistant.ask(stocked_chat.id, other_user.id, "Let me in")
        assert fake_client.calls == []

    def test_missing_chat(self, assistant, user):
        with pytest.raises(NotFoundOrUnauthorized):
            assistant.ask(uuid.uuid4(), user.id, "Hello?")


# ── generate_quiz ────────────────────────────────────────────


class TestGenerateQuiz:
    def test_fenced_quiz_is_decoded(self, assistant, fake_client, stocked_chat, user):
        fake_client.queue(f"```json\n{make_quiz_json()}\n```")

        batch = assistant.generate_quiz(stocked_chat.id, user.id)

        assert isinstance(batch, QuizBatch)
        assert len(batch) == 5

    def test_quiz_request_has_no_history(self, assistant, fake_client, store, stocked_chat, user):
        store.append_turn(stocked_chat.id, user.id, "Q", "A")
        fake_client.queue(make_quiz_json())

        assistant.generate_quiz(stocked_chat.id, user.id)

        call = fake_client.calls[0]
        assert len(call["contents"]) == 1
        assert call["contents"][0]["parts"][0].endswith(
            "Content: Photosynthesis converts light to chemical energy."
        )
        assert call["json_output"] is True

    def test_quiz_does_not_touch_messages(self, assistant, fake_client, stocked_chat, user):
        fake_client.queue(make_quiz_json())
        assistant.generate_quiz(stocked_chat.id, user.id)
        assert stocked_chat.messages.count() == 0

    def test_no_content(self, assistant, fake_client, store, user):
        chat = store.create(CreateConversation(owner_id=user.id))
        with pytest.raises(InputInvalid):
            assistant.generate_quiz(chat.id, user.id)
        assert fake_client.calls == []

    def test_empty_model_output(self, assistant, stocked_chat, user):
        with pytest.raises(UpstreamEmpty):
            assistant.generate_quiz(stocked_chat.id, user.id)

    def test_malformed_output_carries_text(self, assistant, fake_client, stocked_chat, user):
        fake_client.queue(make_quiz_json() + "\nThese questions cover the key ideas.")

        with pytest.raises(MalformedStructuredOutput) as exc_info:
            assistant.generate_quiz(stocked_chat.id, user.id)

        assert exc_info.value.text.endswith("These questions cover the key ideas.")
        assert exc_info.value.errors

    def test_not_owned(self, assistant, stocked_chat, other_user):
        with pytest.raises(NotFoundOrUnauthorized):
            assistant.generate_quiz(stocked_chat.id, other_user.id)
