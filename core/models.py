"""
Core models for the StudyMate backend.

A ``Chat`` pairs the study material a user uploaded (``content``) with the
conversation held about it (``messages``). ``QuizAttempt`` records scores so
progress can be charted over time.
"""

import uuid

from django.conf import settings
from django.db import models


DEFAULT_SUMMARY = "Untitled"


class Chat(models.Model):
    """
    A conversation about a body of study material.

    ``content`` grows by appending each uploaded text or document; it is
    empty for chats that were created only to store message history.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='chats'
    )
    summary = models.CharField(
        max_length=255,
        default=DEFAULT_SUMMARY,
        help_text="Short display label shown in the chat list"
    )
    content = models.TextField(
        blank=True,
        default='',
        help_text="Accumulated plain-text study material"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', '-created_at'], name='core_chat_owner_i_6f1f0e_idx'),
        ]

    def __str__(self):
        return f"{self.summary} ({self.id})"

    @property
    def has_content(self) -> bool:
        return bool(self.content)


class ChatMessage(models.Model):
    """
    One turn of a chat.

    ``position`` is the 0-indexed place of the message in the chat's log and
    defines its order; timestamps are not reliable for bulk-saved logs.
    """

    SENDER_USER = 'user'
    SENDER_BOT = 'bot'
    SENDER_CHOICES = [
        (SENDER_USER, 'User'),
        (SENDER_BOT, 'Bot'),
    ]

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name='messages'
    )
    position = models.PositiveIntegerField()
    sender = models.CharField(max_length=10, choices=SENDER_CHOICES)
    text = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['chat', 'position']
        constraints = [
            models.UniqueConstraint(fields=['chat', 'position'], name='uniq_chat_message_position'),
        ]

    def __str__(self):
        preview = self.text[:50] + '...' if len(self.text) > 50 else self.text
        return f"[{self.sender}] {preview}"


class QuizAttempt(models.Model):
    """A finished quiz and its score."""

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='quiz_attempts'
    )
    chat = models.ForeignKey(
        Chat,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='quiz_attempts',
        help_text="Chat the quiz was generated from; kept as null once the chat is deleted"
    )
    score = models.PositiveIntegerField()
    total_questions = models.PositiveIntegerField(default=5)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='core_quizat_owner_i_3b9c2d_idx'),
        ]

    def __str__(self):
        return f"{self.owner} scored {self.score}/{self.total_questions}"
