"""Create exam engine tables

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2026-10-18

Creates the read-only question catalog table and the engine-owned tables:
exam_tests, exam_sessions and test_analytics.

exam_sessions carries a partial unique index on (user_id, test_id)
WHERE status = 'IN_PROGRESS'. Two concurrent session creates for the same
user and test both pass the application-level lookup; the index makes the
second insert fail with an IntegrityError so the loser can return the
winner's session instead of creating a duplicate.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

question_kind = sa.Enum(
    "MCQ",
    "MSQ",
    "TRUE_FALSE",
    "INTEGER",
    "FILL_BLANK",
    "COMPREHENSION_PASSAGE",
    name="questionkind",
)
difficulty_level = sa.Enum("EASY", "MEDIUM", "HARD", name="difficultylevel")
session_status = sa.Enum(
    "IN_PROGRESS", "SUBMITTED", "EVALUATED", "CANCELLED", name="sessionstatus"
)


def upgrade() -> None:
    op.create_table(
        "questions",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("kind", question_kind, nullable=False),
        sa.Column("marks", sa.Float(), nullable=False, server_default="4"),
        sa.Column("neg_marks", sa.Float(), nullable=False, server_default="1"),
        sa.Column("correct", postgresql.JSON(), nullable=True),
        sa.Column("subject_id", sa.String(length=64), nullable=True),
        sa.Column("chapter_id", sa.String(length=64), nullable=True),
        sa.Column("topic_id", sa.String(length=64), nullable=True),
        sa.Column("difficulty", difficulty_level, nullable=False),
        sa.Column("prompt", sa.Text(), nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_questions_kind", "questions", ["kind"])
    op.create_index("ix_questions_subject_id", "questions", ["subject_id"])
    op.create_index("ix_questions_is_active", "questions", ["is_active"])

    op.create_table(
        "exam_tests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("test_id", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("exam_key", sa.String(length=100), nullable=True),
        sa.Column("syllabus", sa.Text(), nullable=True),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("marks", sa.Float(), nullable=False),
        sa.Column("max_neg_marks", sa.Float(), nullable=False),
        sa.Column("time_allotted_seconds", sa.Integer(), nullable=False),
        sa.Column("layout", sa.String(length=50), nullable=True),
        sa.Column("allow_randomize", sa.Boolean(), nullable=False),
        sa.Column("question_pool", postgresql.JSON(), nullable=False),
        sa.Column("languages", postgresql.JSON(), nullable=False),
        sa.Column("is_premium", sa.Boolean(), nullable=False),
        sa.Column("max_attempt", sa.Integer(), nullable=False),
        sa.Column("percentile_id", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_exam_tests_id", "exam_tests", ["id"])
    op.create_index("ix_exam_tests_test_id", "exam_tests", ["test_id"], unique=True)
    op.create_index("ix_exam_tests_exam_key", "exam_tests", ["exam_key"])

    op.create_table(
        "exam_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("test_id", sa.String(length=100), nullable=False),
        sa.Column("series_id", sa.String(length=100), nullable=True),
        sa.Column("question_order", postgresql.JSON(), nullable=False),
        sa.Column("random_seed", sa.String(length=64), nullable=True),
        sa.Column("responses", postgresql.JSON(), nullable=False),
        sa.Column("correct_count", sa.Integer(), nullable=False),
        sa.Column("wrong_count", sa.Integer(), nullable=False),
        sa.Column("skipped_count", sa.Integer(), nullable=False),
        sa.Column("total_marks", sa.Float(), nullable=False),
        sa.Column("negative_marks", sa.Float(), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=False),
        sa.Column("subject_stats", postgresql.JSON(), nullable=False),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_limit_exceeded", sa.Boolean(), nullable=False),
        sa.Column("status", session_status, nullable=False),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("ip", sa.String(length=64), nullable=True),
        sa.Column("device", sa.String(length=255), nullable=True),
        sa.Column("platform", sa.String(length=64), nullable=True),
        sa.Column("is_analysis_visible", sa.Boolean(), nullable=False),
        sa.Column("evaluation_snapshot", postgresql.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_exam_sessions_id", "exam_sessions", ["id"])
    op.create_index("ix_exam_sessions_user_id", "exam_sessions", ["user_id"])
    op.create_index("ix_exam_sessions_test_id", "exam_sessions", ["test_id"])
    op.create_index("ix_exam_sessions_status", "exam_sessions", ["status"])
    op.create_index(
        "ix_exam_sessions_user_status", "exam_sessions", ["user_id", "status"]
    )
    # status is a PostgreSQL enum storing member names (IN_PROGRESS)
    op.execute(
        """
        CREATE UNIQUE INDEX ix_exam_sessions_user_test_active
        ON exam_sessions (user_id, test_id)
        WHERE status = 'IN_PROGRESS'
        """
    )

    op.create_table(
        "test_analytics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("test_id", sa.String(length=100), nullable=False),
        sa.Column(
            "session_id",
            sa.Integer(),
            sa.ForeignKey("exam_sessions.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("total_marks", sa.Float(), nullable=False),
        sa.Column("correct", sa.Integer(), nullable=False),
        sa.Column("wrong", sa.Integer(), nullable=False),
        sa.Column("skipped", sa.Integer(), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=False),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=False),
        sa.Column("subject_breakdown", postgresql.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_test_analytics_id", "test_analytics", ["id"])
    op.create_index("ix_test_analytics_user_id", "test_analytics", ["user_id"])
    op.create_index("ix_test_analytics_test_id", "test_analytics", ["test_id"])


def downgrade() -> None:
    op.drop_table("test_analytics")
    op.drop_index("ix_exam_sessions_user_test_active", table_name="exam_sessions")
    op.drop_table("exam_sessions")
    op.drop_table("exam_tests")
    op.drop_table("questions")
    session_status.drop(op.get_bind(), checkfirst=True)
    difficulty_level.drop(op.get_bind(), checkfirst=True)
    question_kind.drop(op.get_bind(), checkfirst=True)
