"""
Exam session lifecycle.

States: in_progress -> submitted -> evaluated, plus cancelled reachable from
in_progress. Sessions are never deleted.

Concurrency:
    Session creation uses a dual-check pattern. The application-level lookup
    returns an existing in-progress session for the (user, test) pair, and
    the partial unique index ix_exam_sessions_user_test_active catches two
    creates that both passed that lookup. The loser rolls back and receives
    the winner's session.

    Updates and submission are conditional UPDATEs filtered on
    ``status = in_progress``, so only one submit can move a session out of
    in_progress. Concurrent updates are last-write-wins on the whole
    response set; there is no version token.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.analytics import (
    AnalyticsTracker,
    list_test_analytics,
    record_test_analytics,
)
from app.core.catalog import find_missing_questions, resolve_questions
from app.core.config import settings
from app.core.datetime_utils import elapsed_seconds, utc_now
from app.core.db_error_handling import handle_db_error, handle_db_error_decorator
from app.core.error_responses import ErrorMessages
from app.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from app.core.graceful_failure import graceful_failure
from app.core.question_order import (
    generate_question_order,
    generate_random_seed,
    rng_for_seed,
)
from app.core.scoring import EvaluationResult, evaluate_responses
from app.models.models import ExamSession, ExamTest, SessionStatus, TestAnalytics
from app.services.exam_tests import find_test, get_test

logger = logging.getLogger(__name__)

# Statuses a client may set through update; evaluated is reserved for submit
CLIENT_SETTABLE_STATUSES = frozenset(
    {SessionStatus.IN_PROGRESS, SessionStatus.SUBMITTED, SessionStatus.CANCELLED}
)


def clamp_limit(limit: Optional[int]) -> int:
    """Apply the default page size and the hard cap."""
    if limit is None or limit < 1:
        return settings.SESSION_LIST_DEFAULT_LIMIT
    return min(limit, settings.SESSION_LIST_MAX_LIMIT)


def _find_active_session(
    db: Session, user_id: str, test_id: str
) -> Optional[ExamSession]:
    return (
        db.query(ExamSession)
        .filter(
            ExamSession.user_id == user_id,
            ExamSession.test_id == test_id,
            ExamSession.status == SessionStatus.IN_PROGRESS,
        )
        .first()
    )


def _next_attempt_number(db: Session, user_id: str, exam_test: ExamTest) -> int:
    """
    Attempt number for a new session.

    Always 1 unless ENFORCE_MAX_ATTEMPTS is on, in which case previous
    sessions are counted and the test's max_attempt is enforced.
    """
    if not settings.ENFORCE_MAX_ATTEMPTS:
        return 1

    previous = (
        db.query(ExamSession)
        .filter(
            ExamSession.user_id == user_id,
            ExamSession.test_id == exam_test.test_id,
        )
        .count()
    )
    if previous >= exam_test.max_attempt:
        logger.info(
            f"User {user_id} has used {previous}/{exam_test.max_attempt} "
            f"attempts for test {exam_test.test_id}"
        )
        raise ConflictError(
            ErrorMessages.max_attempts_reached(exam_test.test_id, exam_test.max_attempt)
        )
    return previous + 1


def create_session(
    db: Session,
    user_id: str,
    test_id: str,
    *,
    question_order: Optional[Sequence[str]] = None,
    random_seed: Optional[str] = None,
    series_id: Optional[str] = None,
    ip: Optional[str] = None,
    device: Optional[str] = None,
    platform: Optional[str] = None,
) -> Tuple[ExamSession, bool]:
    """
    Start a user's attempt at a test, or return the one already in progress.

    Args:
        db: Database session
        user_id: Authenticated user identifier
        test_id: Business key of the test
        question_order: Explicit order, used as-is when non-empty
        random_seed: Seed recorded on the session; also seeds the shuffle
        series_id: Optional grouping
        ip: Client IP address
        device: Client device description
        platform: Client platform

    Returns:
        Tuple of (session, created). created is False when an existing
        in-progress session was returned.

    Raises:
        NotFoundError: If the test does not exist
        ValidationFailedError: If question references do not resolve
        ConflictError: If the attempt cap is reached (ENFORCE_MAX_ATTEMPTS)
    """
    exam_test = get_test(db, test_id)

    existing = _find_active_session(db, user_id, test_id)
    if existing is not None:
        logger.info(
            f"Returning in-progress session {existing.id} for user {user_id} "
            f"on test {test_id}"
        )
        AnalyticsTracker.track_session_resumed(user_id, existing.id, test_id)
        return existing, False

    order = generate_question_order(
        exam_test.question_pool or [],
        exam_test.allow_randomize,
        explicit_order=question_order,
        rng=rng_for_seed(random_seed),
    )

    missing = find_missing_questions(db, order)
    if missing:
        loc = ("body", "question_order") if question_order else ("question_pool",)
        raise ValidationFailedError(ErrorMessages.unresolved_questions(missing), loc=loc)

    attempt_number = _next_attempt_number(db, user_id, exam_test)

    now = utc_now()
    exam_session = ExamSession(
        user_id=user_id,
        test_id=test_id,
        series_id=series_id,
        question_order=order,
        random_seed=random_seed or generate_random_seed(),
        responses=[],
        status=SessionStatus.IN_PROGRESS,
        attempt_number=attempt_number,
        started_at=now,
        last_seen_at=now,
        ip=ip,
        device=device,
        platform=platform,
    )

    with handle_db_error(db, "create exam session"):
        db.add(exam_session)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            logger.warning(
                f"Race condition detected: user {user_id} created concurrent "
                f"sessions for test {test_id}"
            )
            winner = _find_active_session(db, user_id, test_id)
            if winner is None:
                raise ConflictError(ErrorMessages.SESSION_CREATED_CONCURRENTLY)
            AnalyticsTracker.track_session_resumed(user_id, winner.id, test_id)
            return winner, False
        db.commit()

    db.refresh(exam_session)
    logger.info(
        f"Created exam session {exam_session.id} for user {user_id} on test "
        f"{test_id} (attempt {attempt_number}, {len(order)} questions)"
    )
    AnalyticsTracker.track_session_started(
        user_id=user_id,
        session_id=exam_session.id,
        test_id=test_id,
        question_count=len(order),
    )
    return exam_session, True


def get_session(
    db: Session, session_id: int, user_id: Optional[str] = None
) -> ExamSession:
    """
    Fetch a session by id, optionally restricted to its owner.

    Raises:
        NotFoundError: If the session does not exist or belongs to someone else
    """
    query = db.query(ExamSession).filter(ExamSession.id == session_id)
    if user_id is not None:
        query = query.filter(ExamSession.user_id == user_id)
    exam_session = query.first()
    if exam_session is None:
        raise NotFoundError(ErrorMessages.EXAM_SESSION_NOT_FOUND)
    return exam_session


@handle_db_error_decorator("list exam sessions")
def list_sessions(
    db: Session,
    user_id: str,
    status: Optional[SessionStatus] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[List[ExamSession], int]:
    """
    A page of the user's sessions, newest first.

    Returns:
        Tuple of (sessions, total_count)
    """
    query = db.query(ExamSession).filter(ExamSession.user_id == user_id)
    if status is not None:
        query = query.filter(ExamSession.status == status)

    total_count = query.count()
    sessions = (
        query.order_by(ExamSession.created_at.desc(), ExamSession.id.desc())
        .offset(max(offset, 0))
        .limit(clamp_limit(limit))
        .all()
    )
    return sessions, total_count


def _raise_for_unmodifiable(db: Session, session_id: int, user_id: str) -> None:
    """Explain why a conditional write on an in-progress session matched nothing."""
    current = get_session(db, session_id, user_id)
    db.refresh(current)
    logger.info(
        f"Rejected write to session {session_id} in status {current.status.value}"
    )
    raise InvalidStateError(
        ErrorMessages.session_not_modifiable(current.status.value),
        current_status=current.status.value,
    )


def update_session(
    db: Session,
    session_id: int,
    user_id: str,
    *,
    responses: Optional[Sequence[Mapping[str, Any]]] = None,
    time_spent_seconds: Optional[int] = None,
    last_seen_at: Optional[datetime] = None,
    status: Optional[SessionStatus] = None,
) -> ExamSession:
    """
    Record in-progress answers on a session.

    ``responses`` replaces the stored set wholesale. Answer content is not
    checked against the catalog here; grading happens on submit.
    ``last_seen_at`` defaults to now.

    Raises:
        NotFoundError: Unknown session, or not owned by user_id
        InvalidStateError: Session is no longer in progress
        ValidationFailedError: status is not one a client may set
    """
    if status is not None and status not in CLIENT_SETTABLE_STATUSES:
        raise ValidationFailedError(
            ErrorMessages.EVALUATED_STATUS_NOT_ALLOWED, loc=("body", "status")
        )

    now = utc_now()
    values: Dict[Any, Any] = {ExamSession.last_seen_at: last_seen_at or now}
    if responses is not None:
        values[ExamSession.responses] = [dict(r) for r in responses]
    if time_spent_seconds is not None:
        values[ExamSession.time_spent_seconds] = time_spent_seconds
    if status is not None:
        values[ExamSession.status] = status
        if status == SessionStatus.SUBMITTED:
            values[ExamSession.submitted_at] = now

    with handle_db_error(db, "update exam session"):
        updated = (
            db.query(ExamSession)
            .filter(
                ExamSession.id == session_id,
                ExamSession.user_id == user_id,
                ExamSession.status == SessionStatus.IN_PROGRESS,
            )
            .update(values, synchronize_session=False)
        )
        if updated == 0:
            _raise_for_unmodifiable(db, session_id, user_id)
        db.commit()

    exam_session = get_session(db, session_id, user_id)
    db.refresh(exam_session)
    if status is not None and status != SessionStatus.IN_PROGRESS:
        logger.info(f"Session {session_id} marked {status.value} by client")
    return exam_session


def _time_limit_exceeded(
    exam_session: ExamSession, exam_test: Optional[ExamTest], submitted_at: datetime
) -> bool:
    """Advisory flag only; never changes the score."""
    if exam_test is None or not exam_test.time_allotted_seconds:
        return False
    return (
        elapsed_seconds(exam_session.started_at, submitted_at)
        > exam_test.time_allotted_seconds
    )


def _apply_evaluation(
    exam_session: ExamSession, evaluation: EvaluationResult, submitted_at: datetime
) -> None:
    exam_session.responses = evaluation.scored_responses
    exam_session.correct_count = evaluation.correct
    exam_session.wrong_count = evaluation.wrong
    exam_session.skipped_count = evaluation.skipped
    exam_session.total_marks = evaluation.total_marks
    exam_session.negative_marks = evaluation.negative_marks
    exam_session.accuracy = evaluation.accuracy
    exam_session.subject_stats = {
        sid: stats.to_dict() for sid, stats in evaluation.subject_stats.items()
    }
    exam_session.evaluation_snapshot = evaluation.to_snapshot()
    exam_session.status = SessionStatus.EVALUATED
    exam_session.submitted_at = submitted_at
    exam_session.is_analysis_visible = True


def submit_session(db: Session, session_id: int, user_id: str) -> ExamSession:
    """
    Submit a session and evaluate it.

    Steps:
    1. Claim the session with a conditional UPDATE (in_progress -> submitted)
    2. Resolve every question in question_order in one batch
    3. Score the stored responses
    4. Write aggregates and the evaluation snapshot; status -> evaluated
    5. Append the analytics row (best-effort, separate transaction)

    Steps 1-4 commit together, so a failure while scoring leaves the session
    in progress.

    Raises:
        NotFoundError: Unknown session, or not owned by user_id
        InvalidStateError: Session already submitted, evaluated or cancelled
    """
    exam_session = get_session(db, session_id, user_id)

    with handle_db_error(db, "submit exam session"):
        now = utc_now()
        claimed = (
            db.query(ExamSession)
            .filter(
                ExamSession.id == session_id,
                ExamSession.user_id == user_id,
                ExamSession.status == SessionStatus.IN_PROGRESS,
            )
            .update(
                {ExamSession.status: SessionStatus.SUBMITTED},
                synchronize_session=False,
            )
        )
        if claimed == 0:
            db.refresh(exam_session)
            logger.info(
                f"Rejected submit of session {session_id} in status "
                f"{exam_session.status.value}"
            )
            raise InvalidStateError(
                ErrorMessages.SESSION_ALREADY_SUBMITTED,
                current_status=exam_session.status.value,
            )

        db.refresh(exam_session)
        order = list(exam_session.question_order or [])
        questions = resolve_questions(db, order)
        evaluation = evaluate_responses(
            exam_session.responses or [], order, questions, evaluated_at=now
        )

        _apply_evaluation(exam_session, evaluation, now)
        exam_session.time_limit_exceeded = _time_limit_exceeded(
            exam_session, find_test(db, exam_session.test_id), now
        )
        db.commit()

    db.refresh(exam_session)
    logger.info(
        f"Evaluated session {session_id}: total_marks={evaluation.total_marks}, "
        f"correct={evaluation.correct}, wrong={evaluation.wrong}, "
        f"skipped={evaluation.skipped}"
    )

    with graceful_failure(
        "write analytics snapshot",
        logger,
        log_level=logging.ERROR,
        exc_info=True,
        context={"session_id": session_id},
    ):
        try:
            record_test_analytics(db, exam_session, evaluation)
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(exam_session)
    AnalyticsTracker.track_session_evaluated(
        user_id=user_id,
        session_id=exam_session.id,
        test_id=exam_session.test_id,
        total_marks=evaluation.total_marks,
        accuracy=evaluation.accuracy,
        time_spent_seconds=exam_session.time_spent_seconds,
    )
    return exam_session


@handle_db_error_decorator("list test analytics")
def list_analytics(
    db: Session,
    user_id: str,
    test_id: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> Tuple[List[TestAnalytics], int]:
    """A page of the user's analytics rows, newest first."""
    return list_test_analytics(
        db, user_id, test_id=test_id, limit=clamp_limit(limit), offset=max(offset, 0)
    )
