"""
Exam session endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.config import settings
from app.core.error_responses import translate_engine_errors
from app.models import get_db
from app.models.models import SessionStatus
from app.schemas.exam_sessions import (
    ExamSessionCreate,
    ExamSessionResponse,
    ExamSessionUpdate,
    PaginatedExamSessionResponse,
    PaginatedTestAnalyticsResponse,
    TestAnalyticsResponse,
)
from app.schemas.questions import QuestionSummary
from app.services.exam_sessions import (
    clamp_limit,
    create_session,
    get_session,
    list_analytics,
    list_sessions,
    submit_session,
    update_session,
)
from app.services.exam_tests import get_pool_questions

router = APIRouter()
analytics_router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=ExamSessionResponse)
def create_exam_session(
    payload: ExamSessionCreate,
    request: Request,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Start an exam session, or return the one already in progress.

    Returns 201 when a session was created and 200 when the existing
    in-progress session for this test is returned.

    Raises:
        HTTPException: 404 if the test does not exist, 422 if question
            references do not resolve, 409 if the attempt cap is reached
    """
    with translate_engine_errors():
        exam_session, created = create_session(
            db,
            user_id=user_id,
            test_id=payload.test_id,
            question_order=payload.question_order,
            random_seed=payload.random_seed,
            series_id=payload.series_id,
            ip=request.client.host if request.client else None,
            device=payload.device,
            platform=payload.platform,
        )

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ExamSessionResponse.from_session(exam_session)


@router.get("", response_model=PaginatedExamSessionResponse)
def list_exam_sessions(
    status_filter: Optional[SessionStatus] = Query(
        default=None, alias="status", description="Only sessions in this status"
    ),
    limit: int = Query(
        default=settings.SESSION_LIST_DEFAULT_LIMIT,
        ge=1,
        le=settings.SESSION_LIST_MAX_LIMIT,
        description=f"Results per page (max {settings.SESSION_LIST_MAX_LIMIT})",
    ),
    offset: int = Query(default=0, ge=0, description="Results to skip"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    List the caller's sessions, newest first.
    """
    with translate_engine_errors():
        sessions, total_count = list_sessions(
            db, user_id, status=status_filter, limit=limit, offset=offset
        )

    page_size = clamp_limit(limit)
    return PaginatedExamSessionResponse(
        results=[ExamSessionResponse.from_session(s) for s in sessions],
        total_count=total_count,
        limit=page_size,
        offset=offset,
        has_more=offset + len(sessions) < total_count,
    )


@router.get("/{session_id}", response_model=ExamSessionResponse)
def get_exam_session(
    session_id: int,
    include_questions: bool = Query(
        default=False, description="Resolve questions in order (no answer keys)"
    ),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Fetch one of the caller's sessions.

    Raises:
        HTTPException: 404 if not found or owned by another user
    """
    with translate_engine_errors():
        exam_session = get_session(db, session_id, user_id)

    questions = None
    if include_questions:
        questions = [
            QuestionSummary.model_validate(q)
            for q in get_pool_questions(db, exam_session.question_order or [])
        ]
    return ExamSessionResponse.from_session(exam_session, questions=questions)


@router.put("/{session_id}", response_model=ExamSessionResponse)
def update_exam_session(
    session_id: int,
    payload: ExamSessionUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Save in-progress answers and heartbeat.

    Raises:
        HTTPException: 404 if not found or not owned, 400 if the session is
            no longer in progress
    """
    responses = None
    if payload.responses is not None:
        responses = [item.model_dump(mode="json") for item in payload.responses]

    with translate_engine_errors():
        exam_session = update_session(
            db,
            session_id,
            user_id,
            responses=responses,
            time_spent_seconds=payload.time_spent_seconds,
            last_seen_at=payload.last_seen_at,
            status=SessionStatus(payload.status) if payload.status else None,
        )
    return ExamSessionResponse.from_session(exam_session)


@router.post("/{session_id}/submit", response_model=ExamSessionResponse)
def submit_exam_session(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Submit a session and return it evaluated.

    Raises:
        HTTPException: 404 if not found or not owned, 400 if already
            submitted or evaluated
    """
    with translate_engine_errors():
        exam_session = submit_session(db, session_id, user_id)
    return ExamSessionResponse.from_session(exam_session)


@analytics_router.get("", response_model=PaginatedTestAnalyticsResponse)
def list_exam_analytics(
    test_id: Optional[str] = Query(default=None, description="Only this test"),
    limit: int = Query(
        default=settings.SESSION_LIST_DEFAULT_LIMIT,
        ge=1,
        le=settings.SESSION_LIST_MAX_LIMIT,
    ),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    List the caller's analytics records, newest first.
    """
    with translate_engine_errors():
        rows, total_count = list_analytics(
            db, user_id, test_id=test_id, limit=limit, offset=offset
        )

    return PaginatedTestAnalyticsResponse(
        results=[TestAnalyticsResponse.model_validate(r) for r in rows],
        total_count=total_count,
        limit=clamp_limit(limit),
        offset=offset,
        has_more=offset + len(rows) < total_count,
    )
