"""
Study assistant: question answering and quiz generation over a chat.

Orchestrates the pipeline

    Chat content + recent turns → Prompt → Gemini → (Normalize → Parse)

with all collaborators passed in at construction, so tests can swap the
generation client for a fake.
"""

import logging
from dataclasses import dataclass

from django.conf import settings

from core.services.ai import GeminiClient
from core.services.conversations import ConversationStore
from core.services.exceptions import (
    InputInvalid,
    MalformedStructuredOutput,
    UpstreamEmpty,
)
from core.services.prompts import (
    HISTORY_WINDOW,
    build_ask_contents,
    build_quiz_contents,
    window_history,
)
from core.services.quiz import QuizBatch, QuizDecoder


logger = logging.getLogger(__name__)

NO_CONTENT_ANSWER = "⚠️ Please upload content first before asking questions."
NO_ANSWER = "⚠️ Gemini did not return an answer."


@dataclass(frozen=True)
class AskResult:
    """
    Outcome of a question.

    ``answered`` is False when ``answer`` is one of the in-band warnings and
    nothing was saved to the chat.
    """

    answer: str
    answered: bool


class StudyAssistant:
    """
    Answers questions about a chat's material and builds quizzes from it.

    Args:
        store: Conversation store used for every read and write.
        client: Generation client exposing ``generate(contents, json_output=False)``.
        decoder: Quiz decoder; defaults to a 5-question, 4-option decoder.
        history_window: Number of prior messages sent along with a question.
    """

    def __init__(
        self,
        store: ConversationStore,
        client,
        decoder: QuizDecoder = None,
        history_window: int = HISTORY_WINDOW,
    ):
        self.store = store
        self.client = client
        self.decoder = decoder or QuizDecoder()
        self.history_window = history_window

    def ask(self, chat_id, owner_id, question: str) -> AskResult:
        """
        Answer ``question`` against the chat's content and record the turn.

        A chat without content, or a model that returns nothing, yields a
        warning answer instead of an error; in both cases the model output
        is not saved and the message log is left untouched.

        Raises:
            NotFoundOrUnauthorized: The chat is missing or not owned by the user.
            UpstreamUnavailable: Gemini could not be reached.
            StorageFailure: The turn could not be saved.
        """
        chat = self.store.get(chat_id, owner_id)

        if not chat.has_content:
            logger.info(f"Question on chat {chat_id} without content; skipping Gemini")
            return AskResult(answer=NO_CONTENT_ANSWER, answered=False)

        history = window_history(
            self.store.recent_messages(chat, self.history_window),
            self.history_window,
        )
        contents = build_ask_contents(chat.content, history, question)

        logger.info(
            f"Asking Gemini about chat {chat_id}: {question[:100]} "
            f"({len(history)} history turns, {len(chat.content)} chars of context)"
        )
        answer = self.client.generate(contents)

        if answer is None:
            logger.warning(f"No answer from Gemini for chat {chat_id}")
            return AskResult(answer=NO_ANSWER, answered=False)

        self.store.append_turn(chat_id, owner_id, question, answer)
        return AskResult(answer=answer, answered=True)

    def generate_quiz(self, chat_id, owner_id) -> QuizBatch:
        """
        Generate a quiz from the chat's full content.

        Raises:
            NotFoundOrUnauthorized: The chat is missing or not owned by the user.
            InputInvalid: The chat has no content yet.
            UpstreamUnavailable: Gemini could not be reached.
            UpstreamEmpty: Gemini returned no text.
            MalformedStructuredOutput: The text was not a valid quiz.
        """
        content = self.store.read_content(chat_id, owner_id)
        if not content:
            raise InputInvalid("No content found")

        raw_text = self.client.generate(build_quiz_contents(content), json_output=True)
        if raw_text is None:
            raise UpstreamEmpty("No text in model response")

        logger.debug(f"Raw quiz output for chat {chat_id}: {raw_text[:1000]}")

        result = self.decoder.decode(raw_text)
        if not result.ok:
            logger.error(f"Quiz output for chat {chat_id} rejected: {result.errors}")
            logger.error(f"Offending text (first 500 chars): {result.text[:500]}")
            raise MalformedStructuredOutput(result.text, result.errors)

        logger.info(f"Parsed {len(result)} quiz questions for chat {chat_id}")
        return result


def build_conversation_store() -> ConversationStore:
    return ConversationStore(summary_max_length=settings.CHAT_SUMMARY_MAX_LENGTH)


def build_study_assistant() -> StudyAssistant:
    """
    Wire a ``StudyAssistant`` from Django settings.

    Raises:
        UpstreamUnavailable: GOOGLE_API_KEY is not configured.
    """
    client = GeminiClient(
        api_key=settings.GOOGLE_API_KEY,
        model_name=settings.GEMINI_MODEL,
        timeout=settings.GEMINI_TIMEOUT_SECONDS,
    )
    return StudyAssistant(
        store=build_conversation_store(),
        client=client,
        history_window=settings.CHAT_HISTORY_WINDOW,
    )
