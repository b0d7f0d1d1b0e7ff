# Core services package
from core.services.ingestion import extract_document_text, DocumentProcessingError
from core.services.exceptions import (
    StudyServiceError,
    NotFoundOrUnauthorized,
    InputInvalid,
    StorageFailure,
    UpstreamUnavailable,
    UpstreamEmpty,
    MalformedStructuredOutput,
)
from core.services.ai import GeminiClient
from core.services.quiz import QuizDecoder, QuizBatch, ParseFailure, normalize_response
from core.services.conversations import (
    ConversationStore,
    CreateConversation,
    AppendToConversation,
    ReplaceMessages,
)
from core.services.assistant import (
    StudyAssistant,
    AskResult,
    build_conversation_store,
    build_study_assistant,
)

__all__ = [
    'extract_document_text',
    'DocumentProcessingError',
    'StudyServiceError',
    'NotFoundOrUnauthorized',
    'InputInvalid',
    'StorageFailure',
    'UpstreamUnavailable',
    'UpstreamEmpty',
    'MalformedStructuredOutput',
    'GeminiClient',
    'QuizDecoder',
    'QuizBatch',
    'ParseFailure',
    'normalize_response',
    'ConversationStore',
    'CreateConversation',
    'AppendToConversation',
    'ReplaceMessages',
    'StudyAssistant',
    'AskResult',
    'build_conversation_store',
    'build_study_assistant',
]
