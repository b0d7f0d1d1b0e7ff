"""
URL configuration for the core app.

API Endpoints:
    POST   /api/auth/register/             - Create an account
    POST   /api/auth/login/                - Exchange email + password for a token
    GET    /api/profile/                   - Current user's profile
    PUT    /api/profile/                   - Update the username
    POST   /api/content/                   - Add typed study material to a chat
    POST   /api/upload-document/           - Add a document's text to a chat
    POST   /api/chat/                      - Ask a question about a chat's material
    GET    /api/chats/                     - List chats (newest first)
    POST   /api/chats/save/                - Save a chat's message log
    GET    /api/chats/<id>/                - Fetch a chat with content and messages
    DELETE /api/chats/<id>/                - Delete a chat
    POST   /api/chats/<id>/rename/         - Rename a chat
    GET    /api/chats/<id>/quiz/           - Generate a 5-question quiz
    POST   /api/quiz-results/              - Record a quiz score
    GET    /api/progress/                  - Quiz score history
"""

from django.urls import path

from core.views import (
    AskView,
    ChatDetailView,
    ChatListView,
    ContentUploadView,
    DocumentUploadView,
    LoginView,
    ProfileView,
    ProgressView,
    QuizResultView,
    QuizView,
    RegisterView,
    RenameChatView,
    SaveChatView,
)


urlpatterns = [
    path('auth/register/', RegisterView.as_view(), name='register'),
    path('auth/login/', LoginView.as_view(), name='login'),
    path('profile/', ProfileView.as_view(), name='profile'),
    path('content/', ContentUploadView.as_view(), name='content-upload'),
    path('upload-document/', DocumentUploadView.as_view(), name='document-upload'),
    path('chat/', AskView.as_view(), name='chat-ask'),
    path('chats/', ChatListView.as_view(), name='chat-list'),
    path('chats/save/', SaveChatView.as_view(), name='chat-save'),
    path('chats/<uuid:chat_id>/', ChatDetailView.as_view(), name='chat-detail'),
    path('chats/<uuid:chat_id>/rename/', RenameChatView.as_view(), name='chat-rename'),
    path('chats/<uuid:chat_id>/quiz/', QuizView.as_view(), name='chat-quiz'),
    path('quiz-results/', QuizResultView.as_view(), name='quiz-results'),
    path('progress/', ProgressView.as_view(), name='progress'),
]
