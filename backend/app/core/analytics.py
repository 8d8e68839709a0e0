"""
Analytics for exam sessions.

This module provides:
1. Event tracking for exam lifecycle and API errors (structured log events)
2. The append-only TestAnalytics snapshot written after an evaluation
"""
import logging
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.datetime_utils import utc_now
from app.core.scoring import EvaluationResult
from app.models.models import ExamSession, TestAnalytics

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Analytics event types."""

    # Exam session events
    SESSION_STARTED = "exam.session_started"
    SESSION_RESUMED = "exam.session_resumed"
    SESSION_EVALUATED = "exam.session_evaluated"

    # Performance events
    API_ERROR = "api.error"


class AnalyticsTracker:
    """
    Analytics event tracker for exam sessions.

    Events are emitted as structured log records; the JSON log formatter
    carries ``event_data`` through to the log pipeline.
    """

    @staticmethod
    def track_event(
        event_type: EventType,
        user_id: Optional[str] = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit one event as an INFO record carrying ``event_data``."""
        logger.info(
            f"Analytics Event: {event_type.value}",
            extra={
                "user_id": user_id,
                "event_data": {
                    "event": event_type.value,
                    "timestamp": utc_now().isoformat(),
                    "user_id": user_id,
                    "environment": settings.ENV,
                    "properties": properties or {},
                },
            },
        )

    @staticmethod
    def track_session_started(
        user_id: str, session_id: int, test_id: str, question_count: int
    ) -> None:
        """Track creation of a new exam session."""
        AnalyticsTracker.track_event(
            EventType.SESSION_STARTED,
            user_id=user_id,
            properties={
                "session_id": session_id,
                "test_id": test_id,
                "question_count": question_count,
            },
        )

    @staticmethod
    def track_session_resumed(user_id: str, session_id: int, test_id: str) -> None:
        """Track a create call that returned the existing in-progress session."""
        AnalyticsTracker.track_event(
            EventType.SESSION_RESUMED,
            user_id=user_id,
            properties={"session_id": session_id, "test_id": test_id},
        )

    @staticmethod
    def track_session_evaluated(
        user_id: str,
        session_id: int,
        test_id: str,
        total_marks: float,
        accuracy: float,
        time_spent_seconds: Optional[int] = None,
    ) -> None:
        """Track a successful submit-and-evaluate."""
        AnalyticsTracker.track_event(
            EventType.SESSION_EVALUATED,
            user_id=user_id,
            properties={
                "session_id": session_id,
                "test_id": test_id,
                "total_marks": total_marks,
                "accuracy": accuracy,
                "time_spent_seconds": time_spent_seconds,
            },
        )

    @staticmethod
    def track_api_error(
        method: str,
        path: str,
        error_type: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> None:
        """Track API error."""
        AnalyticsTracker.track_event(
            EventType.API_ERROR,
            user_id=user_id,
            properties={
                "method": method,
                "path": path,
                "error_type": error_type,
                "error_message": error_message,
            },
        )


# =============================================================================
# Test analytics snapshot
# =============================================================================


def record_test_analytics(
    db: Session, exam_session: ExamSession, evaluation: EvaluationResult
) -> TestAnalytics:
    """
    Append the analytics row for an evaluated session.

    The caller owns the transaction; this only adds and flushes the row so a
    failure surfaces inside the caller's error handling.

    Args:
        db: Database session
        exam_session: The evaluated session
        evaluation: Result of the scoring pass

    Returns:
        The flushed TestAnalytics row
    """
    row = TestAnalytics(
        user_id=exam_session.user_id,
        test_id=exam_session.test_id,
        session_id=exam_session.id,
        total_marks=evaluation.total_marks,
        correct=evaluation.correct,
        wrong=evaluation.wrong,
        skipped=evaluation.skipped,
        accuracy=evaluation.accuracy,
        time_spent_seconds=exam_session.time_spent_seconds or 0,
        subject_breakdown={
            sid: stats.to_dict() for sid, stats in evaluation.subject_stats.items()
        },
    )
    db.add(row)
    db.flush()
    return row


def list_test_analytics(
    db: Session,
    user_id: str,
    test_id: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[TestAnalytics], int]:
    """A page of a user's analytics rows, newest first, plus the total count."""
    query = db.query(TestAnalytics).filter(TestAnalytics.user_id == user_id)
    if test_id is not None:
        query = query.filter(TestAnalytics.test_id == test_id)
    total_count = query.count()
    rows = (
        query.order_by(TestAnalytics.created_at.desc(), TestAnalytics.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total_count
