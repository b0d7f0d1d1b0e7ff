"""Quiz score tracking."""

import logging

from django.db import DatabaseError
from django.db.models import Avg

from core.models import Chat, QuizAttempt
from core.services.exceptions import NotFoundOrUnauthorized, StorageFailure


logger = logging.getLogger(__name__)


def record_attempt(owner_id, score: int, total_questions: int, chat_id=None) -> QuizAttempt:
    """
    Save a finished quiz.

    Raises:
        NotFoundOrUnauthorized: ``chat_id`` was given but is not the user's chat.
        StorageFailure: The attempt could not be saved.
    """
    try:
        chat = None
        if chat_id is not None:
            chat = Chat.objects.filter(pk=chat_id, owner_id=owner_id).first()
            if chat is None:
                raise NotFoundOrUnauthorized(f"Chat {chat_id} not found")

        attempt = QuizAttempt.objects.create(
            owner_id=owner_id,
            chat=chat,
            score=score,
            total_questions=total_questions,
        )
    except DatabaseError as e:
        logger.error(f"Could not save quiz attempt for user {owner_id}: {e}")
        raise StorageFailure("Could not save quiz result") from e

    logger.info(f"Quiz attempt recorded for user {owner_id}: {score}/{total_questions}")
    return attempt


def progress_summary(owner_id) -> dict:
    """
    Summarize a user's quiz history.

    Returns:
        Dictionary with structure:
        {
            "quizzes_taken": int,
            "average_score": float,   # rounded to 2 decimals, 0.0 if none
            "progress": [
                {"score": int, "total_questions": int, "chat_id": str | None, "date": datetime},
                ...
            ]                         # oldest first
        }
    """
    try:
        attempts = list(QuizAttempt.objects.filter(owner_id=owner_id).order_by('created_at'))
        average = QuizAttempt.objects.filter(owner_id=owner_id).aggregate(avg=Avg('score'))['avg']
    except DatabaseError as e:
        raise StorageFailure("Could not load quiz progress") from e

    return {
        "quizzes_taken": len(attempts),
        "average_score": round(average or 0.0, 2),
        "progress": [
            {
                "score": attempt.score,
                "total_questions": attempt.total_questions,
                "chat_id": str(attempt.chat_id) if attempt.chat_id else None,
                "date": attempt.created_at,
            }
            for attempt in attempts
        ],
    }
