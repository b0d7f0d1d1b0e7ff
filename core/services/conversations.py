"""
Conversation state management.

``ConversationStore`` is the only code that writes ``Chat`` and
``ChatMessage`` rows. Every read and write is scoped by the owner's user id;
a chat that is missing or belongs to someone else raises
``NotFoundOrUnauthorized`` either way.

Callers say what they want with explicit request objects instead of passing
an optional chat id:

    CreateConversation   - new chat with initial content and/or messages
    AppendToConversation - add uploaded text to an existing chat
    ReplaceMessages      - overwrite an existing chat's message log

Writes that read-modify-write a chat (content appends, turn appends, log
replacement) lock the chat row for the duration of the transaction so that
concurrent requests never lose an append.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from django.db import DatabaseError, transaction
from django.db.models import Count, Max
from django.utils import timezone

from core.models import DEFAULT_SUMMARY, Chat, ChatMessage
from core.services.exceptions import NotFoundOrUnauthorized, StorageFailure


logger = logging.getLogger(__name__)

SUMMARY_MAX_LENGTH = 40
CONTENT_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class CreateConversation:
    owner_id: int
    content: str = ""
    messages: Sequence[dict] = field(default_factory=tuple)


@dataclass(frozen=True)
class AppendToConversation:
    chat_id: uuid.UUID
    owner_id: int
    text: str


@dataclass(frozen=True)
class ReplaceMessages:
    chat_id: uuid.UUID
    owner_id: int
    messages: Sequence[dict]


def join_content(existing: str, new_text: str) -> str:
    """
    Append ``new_text`` to ``existing`` with one blank line between them.

    No separator is added when there is no existing content.
    """
    if not existing:
        return new_text
    return f"{existing}{CONTENT_SEPARATOR}{new_text}"


def summarize_messages(messages: Sequence[dict], max_length: int = SUMMARY_MAX_LENGTH) -> str:
    """Label a chat with the start of its first user message."""
    for message in messages:
        if message.get("sender") == ChatMessage.SENDER_USER:
            return message.get("text", "")[:max_length] or DEFAULT_SUMMARY
    return DEFAULT_SUMMARY


@contextmanager
def _storage_errors(action: str):
    try:
        yield
    except DatabaseError as e:
        logger.error(f"Storage failure while trying to {action}: {e}")
        raise StorageFailure(f"Could not {action}") from e


class ConversationStore:
    """
    Persistence for chats, their content and their message logs.

    Args:
        summary_max_length: Character budget for summaries derived from
            the first user message. Clamped to the length of
            ``Chat.summary``.
    """

    def __init__(self, summary_max_length: int = SUMMARY_MAX_LENGTH):
        field_length = Chat._meta.get_field('summary').max_length
        self.summary_max_length = max(1, min(summary_max_length, field_length))

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    def get(self, chat_id, owner_id) -> Chat:
        with _storage_errors("load chat"):
            try:
                return Chat.objects.get(pk=chat_id, owner_id=owner_id)
            except Chat.DoesNotExist:
                logger.warning(f"Chat {chat_id} not found for user {owner_id}")
                raise NotFoundOrUnauthorized(f"Chat {chat_id} not found") from None

    def read_content(self, chat_id, owner_id) -> Optional[str]:
        """Return the chat's content, or None if it has none yet."""
        return self.get(chat_id, owner_id).content or None

    def messages(self, chat: Chat) -> List[ChatMessage]:
        with _storage_errors("load messages"):
            return list(chat.messages.order_by('position'))

    def recent_messages(self, chat: Chat, limit: int) -> List[ChatMessage]:
        """Return at most ``limit`` of the latest messages, oldest first."""
        if limit <= 0:
            return []
        with _storage_errors("load messages"):
            latest = list(chat.messages.order_by('-position')[:limit])
        latest.reverse()
        return latest

    def list_for_owner(self, owner_id):
        with _storage_errors("list chats"):
            return list(
                Chat.objects.filter(owner_id=owner_id)
                .annotate(message_count=Count('messages'))
                .order_by('-created_at')
            )

    # ─────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────

    def create(self, request: CreateConversation) -> Chat:
        """Create a chat with initial content and an optional message log."""
        summary = (
            summarize_messages(request.messages, self.summary_max_length)
            if request.messages else DEFAULT_SUMMARY
        )
        with _storage_errors("create chat"), transaction.atomic():
            chat = Chat.objects.create(
                owner_id=request.owner_id,
                summary=summary,
                content=request.content,
            )
            self._write_messages(chat, request.messages)

        logger.info(
            f"Chat created: {chat.id} for user {request.owner_id} "
            f"({len(request.content)} chars, {len(request.messages)} messages)"
        )
        return chat

    def append_content(self, chat_id, owner_id, text: str) -> str:
        """
        Append ``text`` to a chat's content.

        Returns:
            The chat's full content after the append.
        """
        with _storage_errors("append content"), transaction.atomic():
            chat = self._get_locked(chat_id, owner_id)
            chat.content = join_content(chat.content, text)
            chat.save(update_fields=['content', 'updated_at'])

        logger.info(f"Appended {len(text)} chars to chat {chat_id} (now {len(chat.content)} chars)")
        return chat.content

    def submit_content(self, request: Union[CreateConversation, AppendToConversation]) -> Chat:
        """Create a chat from uploaded text or add the text to an existing one."""
        if isinstance(request, CreateConversation):
            return self.create(request)
        self.append_content(request.chat_id, request.owner_id, request.text)
        return self.get(request.chat_id, request.owner_id)

    def append_turn(self, chat_id, owner_id, question: str, answer: str) -> None:
        """Append a user question and the bot's answer, in that order."""
        with _storage_errors("save messages"), transaction.atomic():
            chat = self._get_locked(chat_id, owner_id)
            last = chat.messages.aggregate(last=Max('position'))['last']
            start = 0 if last is None else last + 1
            ChatMessage.objects.bulk_create([
                ChatMessage(chat=chat, position=start, sender=ChatMessage.SENDER_USER, text=question),
                ChatMessage(chat=chat, position=start + 1, sender=ChatMessage.SENDER_BOT, text=answer),
            ])
            chat.save(update_fields=['updated_at'])

    def replace_messages(self, chat_id, owner_id, messages: Sequence[dict]) -> Chat:
        """Overwrite a chat's message log and recompute its summary."""
        with _storage_errors("save chat"), transaction.atomic():
            chat = self._get_locked(chat_id, owner_id)
            chat.messages.all().delete()
            self._write_messages(chat, messages)
            chat.summary = summarize_messages(messages, self.summary_max_length)
            chat.save(update_fields=['summary', 'updated_at'])

        logger.info(f"Replaced message log of chat {chat_id} ({len(messages)} messages)")
        return chat

    def save_messages(self, request: Union[CreateConversation, ReplaceMessages]) -> Chat:
        if isinstance(request, CreateConversation):
            return self.create(request)
        return self.replace_messages(request.chat_id, request.owner_id, request.messages)

    def rename(self, chat_id, owner_id, summary: str) -> None:
        with _storage_errors("rename chat"):
            updated = Chat.objects.filter(pk=chat_id, owner_id=owner_id).update(
                summary=summary,
                updated_at=timezone.now(),
            )
        if not updated:
            raise NotFoundOrUnauthorized(f"Chat {chat_id} not found")

    def delete(self, chat_id, owner_id) -> None:
        """Permanently delete a chat and its messages."""
        with _storage_errors("delete chat"):
            deleted, _ = Chat.objects.filter(pk=chat_id, owner_id=owner_id).delete()
        if not deleted:
            logger.warning(f"Delete refused: chat {chat_id} not found for user {owner_id}")
            raise NotFoundOrUnauthorized(f"Chat {chat_id} not found")
        logger.info(f"Chat deleted: {chat_id}")

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    def _get_locked(self, chat_id, owner_id) -> Chat:
        try:
            return Chat.objects.select_for_update().get(pk=chat_id, owner_id=owner_id)
        except Chat.DoesNotExist:
            raise NotFoundOrUnauthorized(f"Chat {chat_id} not found") from None

    @staticmethod
    def _write_messages(chat: Chat, messages: Sequence[dict]) -> None:
        ChatMessage.objects.bulk_create([
            ChatMessage(
                chat=chat,
                position=position,
                sender=message["sender"],
                text=message.get("text", ""),
            )
            for position, message in enumerate(messages)
        ])
