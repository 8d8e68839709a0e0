"""
Database models for the exam-preparation backend.

The ``questions`` table is the local rendition of the content catalog and is
only ever read by the exam engine. ``exam_tests``, ``exam_sessions`` and
``test_analytics`` are owned by the engine.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    Enum,
    Float,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSON
from datetime import datetime, timezone
import enum
import uuid

from .base import Base


class QuestionKind(str, enum.Enum):
    """Question kind enumeration."""

    MCQ = "MCQ"
    MSQ = "MSQ"
    TRUE_FALSE = "TRUE_FALSE"
    INTEGER = "INTEGER"
    FILL_BLANK = "FILL_BLANK"
    COMPREHENSION_PASSAGE = "COMPREHENSION_PASSAGE"


class DifficultyLevel(str, enum.Enum):
    """Difficulty level enumeration."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionStatus(str, enum.Enum):
    """Exam session status enumeration."""

    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    EVALUATED = "evaluated"
    CANCELLED = "cancelled"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Question(Base):
    """Catalog question as seen by the exam engine (read-only)."""

    __tablename__ = "questions"

    id = Column(String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    kind = Column(Enum(QuestionKind), nullable=False, index=True)
    marks = Column(Float, default=4, nullable=False)
    neg_marks = Column(Float, default=1, nullable=False)
    correct = Column(JSON, nullable=True)
    # Format depends on kind:
    # MCQ/MSQ/TRUE_FALSE: {"identifiers": ["A", "C"]}
    # INTEGER: {"integer": 42}
    # FILL_BLANK: {"fills": ["..."], "integer": 42}
    subject_id = Column(String(64), nullable=True, index=True)
    chapter_id = Column(String(64), nullable=True)
    topic_id = Column(String(64), nullable=True)
    difficulty = Column(
        Enum(DifficultyLevel), default=DifficultyLevel.EASY, nullable=False
    )
    prompt = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)


class ExamTest(Base):
    """Test definition: the reusable template a session is created from."""

    __tablename__ = "exam_tests"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(String(100), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    exam_key = Column(String(100), nullable=True, index=True)
    syllabus = Column(Text, nullable=True)
    total_questions = Column(Integer, default=0, nullable=False)
    marks = Column(Float, default=0, nullable=False)
    max_neg_marks = Column(Float, default=0, nullable=False)
    time_allotted_seconds = Column(Integer, default=0, nullable=False)
    layout = Column(String(50), nullable=True)
    allow_randomize = Column(Boolean, default=True, nullable=False)
    question_pool = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=lambda: ["en"])
    is_premium = Column(Boolean, default=False, nullable=False)
    max_attempt = Column(Integer, default=1, nullable=False)
    percentile_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )


class ExamSession(Base):
    """One user's attempt at an exam test."""

    __tablename__ = "exam_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    test_id = Column(String(100), nullable=False, index=True)
    series_id = Column(String(100), nullable=True)

    # Fixed at creation; defines what `order` in a response refers to
    question_order = Column(JSON, nullable=False, default=list)
    random_seed = Column(String(64), nullable=True)

    # Whole-set replacement on every update (last write wins)
    responses = Column(JSON, nullable=False, default=list)

    # Aggregates, written only by evaluation
    correct_count = Column(Integer, default=0, nullable=False)
    wrong_count = Column(Integer, default=0, nullable=False)
    skipped_count = Column(Integer, default=0, nullable=False)
    total_marks = Column(Float, default=0, nullable=False)
    negative_marks = Column(Float, default=0, nullable=False)
    accuracy = Column(Float, default=0, nullable=False)
    subject_stats = Column(JSON, nullable=False, default=dict)

    time_spent_seconds = Column(Integer, default=0, nullable=False)
    started_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    last_seen_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    time_limit_exceeded = Column(Boolean, default=False, nullable=False)
    # Advisory only: set at submit when the allotted time was overrun

    status = Column(
        Enum(SessionStatus),
        default=SessionStatus.IN_PROGRESS,
        nullable=False,
        index=True,
    )
    attempt_number = Column(Integer, default=1, nullable=False)

    ip = Column(String(64), nullable=True)
    device = Column(String(255), nullable=True)
    platform = Column(String(64), nullable=True)

    is_analysis_visible = Column(Boolean, default=False, nullable=False)
    evaluation_snapshot = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    analytics = relationship("TestAnalytics", back_populates="session", uselist=False)

    __table_args__ = (
        Index("ix_exam_sessions_user_status", "user_id", "status"),
        # Only one in_progress session per (user, test). Enum columns store
        # member names, hence the upper-case literal.
        Index(
            "ix_exam_sessions_user_test_active",
            "user_id",
            "test_id",
            unique=True,
            postgresql_where=text("status = 'IN_PROGRESS'"),
            sqlite_where=text("status = 'IN_PROGRESS'"),
        ),
    )


class TestAnalytics(Base):
    """Append-only snapshot of one evaluated session."""

    __tablename__ = "test_analytics"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    test_id = Column(String(100), nullable=False, index=True)
    session_id = Column(
        Integer,
        ForeignKey("exam_sessions.id"),
        unique=True,
        nullable=False,
    )
    total_marks = Column(Float, default=0, nullable=False)
    correct = Column(Integer, default=0, nullable=False)
    wrong = Column(Integer, default=0, nullable=False)
    skipped = Column(Integer, default=0, nullable=False)
    accuracy = Column(Float, default=0, nullable=False)
    time_spent_seconds = Column(Integer, default=0, nullable=False)
    subject_breakdown = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)

    session = relationship("ExamSession", back_populates="analytics")
