"""
Pydantic schemas for exam session and analytics endpoints.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from app.models.models import ExamSession, SessionStatus
from app.schemas.questions import QuestionSummary


class ResponseItem(BaseModel):
    """One answer within a session's response set."""

    question_id: str = Field(..., min_length=1, description="Question reference")
    chosen_identifiers: List[str] = Field(
        default_factory=list, description="Chosen option identifiers"
    )
    free_text_answer: Optional[str] = Field(
        None, description="Free-text or numeric answer"
    )
    marks_awarded: float = Field(0, description="Marks awarded (set on evaluation)")
    is_correct: bool = Field(False, description="Correctness (set on evaluation)")
    time_spent_seconds: int = Field(0, ge=0, description="Time spent on the question")
    order: Optional[int] = Field(
        None, ge=0, description="Position of the question in question_order"
    )
    flagged: bool = Field(False, description="Marked for review")
    meta: Dict[str, Any] = Field(
        default_factory=dict, description="Free-form client metadata"
    )

    @field_validator("free_text_answer", mode="before")
    @classmethod
    def coerce_numeric_answer(cls, v: Any) -> Any:
        # Clients send numeric answers as JSON numbers as well as strings
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class ExamSessionCreate(BaseModel):
    """Schema for starting an exam session."""

    test_id: str = Field(..., min_length=1, max_length=100, description="Test key")
    question_order: Optional[List[str]] = Field(
        None, description="Explicit question order, used as-is"
    )
    random_seed: Optional[str] = Field(
        None, max_length=64, description="Seed recorded on the session"
    )
    series_id: Optional[str] = Field(None, max_length=100, description="Series grouping")
    device: Optional[str] = Field(None, max_length=255, description="Client device")
    platform: Optional[str] = Field(None, max_length=64, description="Client platform")


class ExamSessionUpdate(BaseModel):
    """Schema for recording in-progress answers.

    ``responses`` replaces the stored set wholesale.
    """

    responses: Optional[List[ResponseItem]] = Field(
        None, description="Full replacement response set"
    )
    time_spent_seconds: Optional[int] = Field(
        None, ge=0, description="Total time spent in seconds"
    )
    last_seen_at: Optional[datetime] = Field(
        None, description="Heartbeat override (defaults to server time)"
    )
    status: Optional[Literal["in_progress", "submitted", "cancelled"]] = Field(
        None, description="Client-set status marker"
    )


class SubjectStatsSchema(BaseModel):
    """Per-subject totals."""

    marks: float = Field(..., description="Marks in this subject")
    correct: int = Field(..., description="Correct responses")
    wrong: int = Field(..., description="Wrong responses")
    skipped: int = Field(..., description="Skipped responses")


class EvaluationSummary(BaseModel):
    """Result block present only on evaluated sessions."""

    total_marks: float = Field(..., description="Sum of marks awarded")
    negative_marks: float = Field(..., description="Shortfall of total below zero")
    correct_count: int = Field(..., description="Correct responses")
    wrong_count: int = Field(..., description="Wrong responses")
    skipped_count: int = Field(..., description="Skipped responses")
    accuracy: float = Field(..., description="Percentage of questions correct")
    subject_stats: Dict[str, SubjectStatsSchema] = Field(
        default_factory=dict, description="Totals per subject"
    )
    evaluated_at: Optional[datetime] = Field(None, description="Evaluation timestamp")


class ExamSessionResponse(BaseModel):
    """Schema for an exam session."""

    id: int = Field(..., description="Session ID")
    user_id: str = Field(..., description="Owner")
    test_id: str = Field(..., description="Test key")
    series_id: Optional[str] = Field(None, description="Series grouping")
    status: SessionStatus = Field(
        ..., description="Session status (in_progress, submitted, evaluated, cancelled)"
    )
    attempt_number: int = Field(..., description="Attempt number")
    question_order: List[str] = Field(..., description="Fixed question order")
    random_seed: Optional[str] = Field(None, description="Recorded seed")
    responses: List[ResponseItem] = Field(..., description="Recorded responses")
    time_spent_seconds: int = Field(..., description="Time spent in seconds")
    started_at: datetime = Field(..., description="Start timestamp")
    last_seen_at: datetime = Field(..., description="Last heartbeat")
    submitted_at: Optional[datetime] = Field(None, description="Submission timestamp")
    time_limit_exceeded: bool = Field(
        False, description="Submitted after the allotted time (advisory)"
    )
    is_analysis_visible: bool = Field(False, description="Client may show analysis")
    evaluation: Optional[EvaluationSummary] = Field(
        None, description="Scoring result (evaluated sessions only)"
    )
    questions: Optional[List[QuestionSummary]] = Field(
        None, description="Resolved questions in order (when requested)"
    )

    @classmethod
    def from_session(
        cls,
        exam_session: ExamSession,
        questions: Optional[List[QuestionSummary]] = None,
    ) -> "ExamSessionResponse":
        """Build the response, attaching the evaluation block when evaluated."""
        evaluation = None
        if exam_session.status == SessionStatus.EVALUATED:
            snapshot = exam_session.evaluation_snapshot or {}
            evaluation = EvaluationSummary(
                total_marks=exam_session.total_marks,
                negative_marks=exam_session.negative_marks,
                correct_count=exam_session.correct_count,
                wrong_count=exam_session.wrong_count,
                skipped_count=exam_session.skipped_count,
                accuracy=exam_session.accuracy,
                subject_stats=exam_session.subject_stats or {},
                evaluated_at=snapshot.get("evaluated_at"),
            )

        return cls(
            id=exam_session.id,
            user_id=exam_session.user_id,
            test_id=exam_session.test_id,
            series_id=exam_session.series_id,
            status=exam_session.status,
            attempt_number=exam_session.attempt_number,
            question_order=exam_session.question_order or [],
            random_seed=exam_session.random_seed,
            responses=exam_session.responses or [],
            time_spent_seconds=exam_session.time_spent_seconds or 0,
            started_at=exam_session.started_at,
            last_seen_at=exam_session.last_seen_at,
            submitted_at=exam_session.submitted_at,
            time_limit_exceeded=exam_session.time_limit_exceeded,
            is_analysis_visible=exam_session.is_analysis_visible,
            evaluation=evaluation,
            questions=questions,
        )


class PaginatedExamSessionResponse(BaseModel):
    """
    Schema for a page of exam sessions, newest first.

    Includes pagination metadata to support UI pagination controls.
    """

    results: List[ExamSessionResponse] = Field(
        ..., description="Sessions for the current page"
    )
    total_count: int = Field(..., ge=0, description="Total matching sessions")
    limit: int = Field(..., ge=1, description="Results per page")
    offset: int = Field(..., ge=0, description="Offset from the start of the results")
    has_more: bool = Field(..., description="Whether more results exist")


class TestAnalyticsResponse(BaseModel):
    """Schema for one analytics record."""

    id: int = Field(..., description="Record ID")
    session_id: int = Field(..., description="Evaluated session")
    test_id: str = Field(..., description="Test key")
    total_marks: float = Field(..., description="Total marks")
    correct: int = Field(..., description="Correct responses")
    wrong: int = Field(..., description="Wrong responses")
    skipped: int = Field(..., description="Skipped responses")
    accuracy: float = Field(..., description="Accuracy percentage")
    time_spent_seconds: int = Field(..., description="Time spent in seconds")
    subject_breakdown: Optional[Dict[str, SubjectStatsSchema]] = Field(
        None, description="Totals per subject"
    )
    created_at: datetime = Field(..., description="Record timestamp")

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class PaginatedTestAnalyticsResponse(BaseModel):
    """Schema for a page of analytics records, newest first."""

    results: List[TestAnalyticsResponse] = Field(
        ..., description="Records for the current page"
    )
    total_count: int = Field(..., ge=0, description="Total matching records")
    limit: int = Field(..., ge=1, description="Results per page")
    offset: int = Field(..., ge=0, description="Offset from the start of the results")
    has_more: bool = Field(..., description="Whether more results exist")
