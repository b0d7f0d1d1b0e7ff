"""
Core API Views for StudyMate.

This module provides the REST API endpoints around the study assistant:
    1. Content intake (typed text or uploaded documents)
    2. Question answering over a chat's content (Gemini)
    3. Quiz generation and score tracking
    4. Chat history management (list, fetch, save, rename, delete)

Every endpoint except registration, login and the health check requires
token authentication; the authenticated user owns everything it touches.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.http import HttpResponse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.serializers import (
    AskSerializer,
    ChatDetailSerializer,
    ChatListSerializer,
    ContentUploadSerializer,
    DocumentUploadSerializer,
    LoginSerializer,
    ProfileSerializer,
    QuizResultSerializer,
    RegisterSerializer,
    RenameChatSerializer,
    SaveChatSerializer,
)
from core.services import (
    AppendToConversation,
    CreateConversation,
    DocumentProcessingError,
    InputInvalid,
    MalformedStructuredOutput,
    NotFoundOrUnauthorized,
    ReplaceMessages,
    StorageFailure,
    UpstreamEmpty,
    UpstreamUnavailable,
    build_conversation_store,
    build_study_assistant,
    extract_document_text,
)
from core.services.progress import progress_summary, record_attempt


logger = logging.getLogger(__name__)

User = get_user_model()

# Service failure → (HTTP status, fallback message)
ERROR_STATUS = {
    NotFoundOrUnauthorized: (status.HTTP_404_NOT_FOUND, "Chat not found"),
    InputInvalid: (status.HTTP_400_BAD_REQUEST, "Invalid input"),
    DocumentProcessingError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "Failed to extract text"),
    UpstreamEmpty: (status.HTTP_502_BAD_GATEWAY, "No text in model response"),
    MalformedStructuredOutput: (status.HTTP_502_BAD_GATEWAY, "Failed to parse quiz JSON"),
    UpstreamUnavailable: (status.HTTP_503_SERVICE_UNAVAILABLE, "Gemini failed to respond"),
    StorageFailure: (status.HTTP_503_SERVICE_UNAVAILABLE, "Storage unavailable"),
}

HANDLED_ERRORS = tuple(ERROR_STATUS)


def error_response(exc: Exception) -> Response:
    """Translate a service exception into an ``{"error": ...}`` response."""
    http_status, fallback = next(
        ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS
    )
    body = {"error": str(exc) or fallback}
    if isinstance(exc, MalformedStructuredOutput):
        body = {"error": fallback, "details": exc.errors}
    return Response(body, status=http_status)


class HealthView(APIView):
    """GET / - plain-text liveness check."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return HttpResponse("✅ StudyMate backend is running", content_type="text/plain")


# ─────────────────────────────────────────────────────────────────
# Accounts
# ─────────────────────────────────────────────────────────────────

class RegisterView(APIView):
    """
    POST /api/auth/register/

    Request Body:
        {"email": str, "password": str, "username": str (optional)}

    Response (201 Created): {"success": true}
    Response (400 Bad Request): validation errors, e.g. user already exists
    """

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            with transaction.atomic():
                user = serializer.save()
        except IntegrityError:
            # A concurrent registration took the email after validation
            logger.warning(f"Registration race for {serializer.validated_data['email']}")
            return Response({"error": "User already exists"}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"User registered: {user.email} (ID: {user.id})")
        return Response({"success": True}, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    POST /api/auth/login/

    Request Body:
        {"email": str, "password": str}

    Response (200 OK): {"token": str}
    Response (404 Not Found): no account with that email
    Response (401 Unauthorized): wrong password
    """

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        email = serializer.validated_data['email']
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)

        if not user.check_password(serializer.validated_data['password']):
            return Response({"error": "Invalid password"}, status=status.HTTP_401_UNAUTHORIZED)

        token, _ = Token.objects.get_or_create(user=user)
        return Response({"token": token.key})


class ProfileView(APIView):
    """
    GET /api/profile/  - Current user's profile
    PUT /api/profile/  - Update the username
    """

    def get(self, request):
        return Response({"user": ProfileSerializer(request.user).data})

    def put(self, request):
        serializer = ProfileSerializer(request.user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response({"user": serializer.data})


# ─────────────────────────────────────────────────────────────────
# Content intake
# ─────────────────────────────────────────────────────────────────

def _content_request(owner_id, chat_id, text):
    if chat_id is None:
        return CreateConversation(owner_id=owner_id, content=text)
    return AppendToConversation(chat_id=chat_id, owner_id=owner_id, text=text)


class ContentUploadView(APIView):
    """
    POST /api/content/

    Adds typed study material to a chat. Without ``chat_id`` a new chat is
    created with the text as its content.

    Request Body:
        {"text": str, "chat_id": uuid (optional)}

    Response (201 Created / 200 OK):
        {"success": true, "chat_id": uuid}
    """

    def post(self, request):
        serializer = ContentUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        content_request = _content_request(request.user.id, data.get('chat_id'), data['text'])

        try:
            chat = build_conversation_store().submit_content(content_request)
        except HANDLED_ERRORS as e:
            return error_response(e)

        created = isinstance(content_request, CreateConversation)
        return Response(
            {"success": True, "chat_id": chat.id},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


class DocumentUploadView(APIView):
    """
    POST /api/upload-document/

    Extracts text from an uploaded document and adds it to a chat.

    Request:
        Content-Type: multipart/form-data
        - file: PDF, DOCX, PPTX or TXT file (required)
        - chat_id: uuid (optional; a new chat is created when absent)

    Response (201 Created / 200 OK):
        {"success": true, "chat_id": uuid}
    Response (422 Unprocessable Entity):
        {"error": "..."} when no text could be extracted
    """

    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        serializer = DocumentUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        uploaded_file = serializer.validated_data['file']
        chat_id = serializer.validated_data.get('chat_id')

        try:
            text = extract_document_text(uploaded_file.name, uploaded_file.read())
            content_request = _content_request(request.user.id, chat_id, text)
            chat = build_conversation_store().submit_content(content_request)
        except HANDLED_ERRORS as e:
            logger.warning(f"Document upload failed for {uploaded_file.name}: {e}")
            return error_response(e)

        created = isinstance(content_request, CreateConversation)
        return Response(
            {"success": True, "chat_id": chat.id},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


# ─────────────────────────────────────────────────────────────────
# Question answering and quizzes
# ─────────────────────────────────────────────────────────────────

class AskView(APIView):
    """
    POST /api/chat/

    Request Body:
        {"question": str, "chat_id": uuid}

    Response (200 OK):
        {"answer": str}

    The answer is a warning rather than an error when the chat has no
    content yet or Gemini returns nothing; the question is not saved then.
    """

    def post(self, request):
        serializer = AskSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data

        try:
            assistant = build_study_assistant()
            result = assistant.ask(data['chat_id'], request.user.id, data['question'])
        except HANDLED_ERRORS as e:
            return error_response(e)

        return Response({"answer": result.answer})


class QuizView(APIView):
    """
    GET /api/chats/<chat_id>/quiz/

    Response (200 OK):
        {
            "questions": [
                {
                    "question": "What is ...?",
                    "options": ["A", "B", "C", "D"],
                    "answer": "B"
                },
                ...
            ],
            "total_questions": 5
        }

    Response (400 Bad Request): chat has no content
    Response (502 Bad Gateway): Gemini returned nothing or an invalid quiz
    """

    def get(self, request, chat_id):
        try:
            assistant = build_study_assistant()
            batch = assistant.generate_quiz(chat_id, request.user.id)
        except HANDLED_ERRORS as e:
            return error_response(e)

        return Response({
            "questions": batch.to_list(),
            "total_questions": len(batch),
        })


class QuizResultView(APIView):
    """
    POST /api/quiz-results/

    Request Body:
        {"score": int, "total_questions": int (default 5), "chat_id": uuid (optional)}

    Response (201 Created): the updated progress summary (see ProgressView)
    """

    def post(self, request):
        serializer = QuizResultSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            record_attempt(
                request.user.id,
                score=data['score'],
                total_questions=data['total_questions'],
                chat_id=data.get('chat_id'),
            )
            summary = progress_summary(request.user.id)
        except HANDLED_ERRORS as e:
            return error_response(e)

        return Response(summary, status=status.HTTP_201_CREATED)


class ProgressView(APIView):
    """
    GET /api/progress/

    Response (200 OK):
        {
            "quizzes_taken": 3,
            "average_score": 3.67,
            "progress": [{"score": 4, "total_questions": 5, "chat_id": "...", "date": "..."}]
        }
    """

    def get(self, request):
        try:
            return Response(progress_summary(request.user.id))
        except HANDLED_ERRORS as e:
            return error_response(e)


# ─────────────────────────────────────────────────────────────────
# Chat history
# ─────────────────────────────────────────────────────────────────

class ChatListView(APIView):
    """GET /api/chats/ - The user's chats, newest first."""

    def get(self, request):
        try:
            chats = build_conversation_store().list_for_owner(request.user.id)
        except HANDLED_ERRORS as e:
            return error_response(e)
        return Response({"chats": ChatListSerializer(chats, many=True).data})


class ChatDetailView(APIView):
    """
    GET    /api/chats/<chat_id>/  - Chat with content and messages
    DELETE /api/chats/<chat_id>/  - Permanently delete the chat

    Both return 404 when the chat does not exist or belongs to someone else.
    """

    def get(self, request, chat_id):
        try:
            chat = build_conversation_store().get(chat_id, request.user.id)
        except HANDLED_ERRORS as e:
            return error_response(e)
        return Response({"chat": ChatDetailSerializer(chat).data})

    def delete(self, request, chat_id):
        try:
            build_conversation_store().delete(chat_id, request.user.id)
        except HANDLED_ERRORS as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class SaveChatView(APIView):
    """
    POST /api/chats/save/

    Replaces a chat's whole message log, or creates a content-less chat
    holding these messages when ``chat_id`` is absent. The summary is
    recomputed from the first user message.

    Request Body:
        {"messages": [{"sender": "user" | "bot", "text": str}, ...], "chat_id": uuid (optional)}

    Response (200 OK / 201 Created):
        {"success": true, "chat": {...}}
    """

    def post(self, request):
        serializer = SaveChatSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        messages = [dict(message) for message in serializer.validated_data['messages']]
        chat_id = serializer.validated_data.get('chat_id')

        if chat_id is None:
            save_request = CreateConversation(owner_id=request.user.id, messages=messages)
        else:
            save_request = ReplaceMessages(chat_id=chat_id, owner_id=request.user.id, messages=messages)

        try:
            chat = build_conversation_store().save_messages(save_request)
        except HANDLED_ERRORS as e:
            return error_response(e)

        return Response(
            {"success": True, "chat": ChatDetailSerializer(chat).data},
            status=status.HTTP_201_CREATED if chat_id is None else status.HTTP_200_OK
        )


class RenameChatView(APIView):
    """
    POST /api/chats/<chat_id>/rename/

    Request Body:
        {"summary": str}
    """

    def post(self, request, chat_id):
        serializer = RenameChatSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            build_conversation_store().rename(chat_id, request.user.id, serializer.validated_data['summary'])
        except HANDLED_ERRORS as e:
            return error_response(e)

        return Response({"success": True})
