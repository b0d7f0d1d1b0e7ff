"""
Serializers for the core app.

Provides Django REST Framework serializers for request validation and
response shaping.
"""

import io
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import serializers

from core.models import Chat, ChatMessage
from core.services.ingestion import SUPPORTED_EXTENSIONS


logger = logging.getLogger(__name__)

User = get_user_model()


# ─────────────────────────────────────────────────────────────────
# Accounts
# ─────────────────────────────────────────────────────────────────

class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(required=False, allow_blank=True, max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=1)

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("User already exists")
        return value

    def validate(self, attrs):
        # Django requires a unique username; fall back to the email address
        attrs["username"] = attrs.get("username") or attrs["email"]
        if User.objects.filter(username=attrs["username"]).exists():
            raise serializers.ValidationError({"username": "User already exists"})
        return attrs

    def create(self, validated_data):
        return User.objects.create_user(
            username=validated_data['username'],
            email=validated_data['email'],
            password=validated_data['password'],
        )


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class ProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email']
        read_only_fields = ['id', 'email']


# ─────────────────────────────────────────────────────────────────
# Chats
# ─────────────────────────────────────────────────────────────────

class ChatMessageSerializer(serializers.ModelSerializer):
    """
    A single turn, as stored and as accepted by the save endpoint.

    Only ``sender`` and ``text`` are part of the public shape; ``position``
    is implied by list order.
    """

    text = serializers.CharField(allow_blank=True, trim_whitespace=False)

    class Meta:
        model = ChatMessage
        fields = ['sender', 'text']


class ChatListSerializer(serializers.ModelSerializer):
    message_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Chat
        fields = ['id', 'summary', 'created_at', 'updated_at', 'message_count']


class ChatDetailSerializer(serializers.ModelSerializer):
    """Full chat including its content and ordered messages."""

    messages = serializers.SerializerMethodField()

    class Meta:
        model = Chat
        fields = ['id', 'summary', 'content', 'messages', 'created_at', 'updated_at']

    def get_messages(self, obj) -> list:
        messages = obj.messages.order_by('position')
        return ChatMessageSerializer(messages, many=True).data


class ContentUploadSerializer(serializers.Serializer):
    text = serializers.CharField(trim_whitespace=False)
    chat_id = serializers.UUIDField(required=False, allow_null=True)

    def validate_text(self, value):
        if not value.strip():
            raise serializers.ValidationError("Text must not be empty.")
        return value


class DocumentUploadSerializer(serializers.Serializer):
    """
    Validates an uploaded document.

    Enforces a maximum number of pages/slides per document to prevent
    system overload.
    """

    file = serializers.FileField()
    chat_id = serializers.UUIDField(required=False, allow_null=True)

    def validate_file(self, value):
        """
        Check the extension and page count of the uploaded file.

        Raises:
            serializers.ValidationError: If the format is unsupported or the
                file exceeds MAX_UPLOAD_PAGES pages/slides.
        """
        max_pages = settings.MAX_UPLOAD_PAGES
        file_name_lower = value.name.lower()

        if not file_name_lower.endswith(SUPPORTED_EXTENSIONS):
            raise serializers.ValidationError(
                "Only PDF, DOCX, PPTX and TXT files are allowed."
            )

        page_count = None
        try:
            if file_name_lower.endswith('.pdf'):
                from pypdf import PdfReader

                value.seek(0)
                page_count = len(PdfReader(value).pages)

            elif file_name_lower.endswith('.pptx'):
                from pptx import Presentation

                value.seek(0)
                page_count = len(Presentation(io.BytesIO(value.read())).slides)

        except Exception as e:
            # Unreadable files are rejected later by extraction with a clearer error
            logger.warning(f"Upload validation: could not count pages of {value.name} - {e}")

        value.seek(0)

        if page_count is not None and page_count > max_pages:
            raise serializers.ValidationError(
                f"Document too large. Max {max_pages} pages allowed. (Got {page_count})"
            )

        return value


class AskSerializer(serializers.Serializer):
    question = serializers.CharField(allow_blank=False)
    chat_id = serializers.UUIDField()


class SaveChatSerializer(serializers.Serializer):
    messages = ChatMessageSerializer(many=True)
    chat_id = serializers.UUIDField(required=False, allow_null=True)


class RenameChatSerializer(serializers.Serializer):
    summary = serializers.CharField(max_length=255)


# ─────────────────────────────────────────────────────────────────
# Quiz results
# ─────────────────────────────────────────────────────────────────

class QuizResultSerializer(serializers.Serializer):
    score = serializers.IntegerField(min_value=0)
    total_questions = serializers.IntegerField(min_value=1, default=5)
    chat_id = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['score'] > attrs['total_questions']:
            raise serializers.ValidationError("Score cannot exceed the number of questions.")
        return attrs

