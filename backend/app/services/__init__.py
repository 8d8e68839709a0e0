"""
Services package for exam engine business logic.

Transport-agnostic: functions take a SQLAlchemy session and raise the
exceptions in ``app.core.exceptions``.
"""

from .exam_tests import create_test, get_test, get_pool_questions
from .exam_sessions import (
    create_session,
    get_session,
    list_sessions,
    update_session,
    submit_session,
    list_analytics,
)

__all__ = [
    "create_test",
    "get_test",
    "get_pool_questions",
    "create_session",
    "get_session",
    "list_sessions",
    "update_session",
    "submit_session",
    "list_analytics",
]
