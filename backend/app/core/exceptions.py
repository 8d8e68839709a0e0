"""
Exception hierarchy raised by the exam engine service layer.

These are transport-agnostic; the HTTP adapter maps them to status codes in
``app.core.error_responses.translate_engine_errors``. Durable-store failures
use ``app.core.db_error_handling.DatabaseOperationError``.
"""

from typing import Any, Dict, List, Optional, Sequence


class ExamEngineError(Exception):
    """Base class for errors raised by exam engine operations.

    Attributes:
        message: User-facing error message
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConflictError(ExamEngineError):
    """A business key already exists, or a rule forbids creating a new record."""


class NotFoundError(ExamEngineError):
    """Unknown test or session, or a session not owned by the caller."""


class InvalidStateError(ExamEngineError):
    """The requested transition is illegal for the session's current status."""

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status


class ValidationFailedError(ExamEngineError):
    """Malformed input, reported with the offending field path."""

    def __init__(self, message: str, loc: Sequence[Any] = ()):
        super().__init__(message)
        self.loc = list(loc)

    def to_detail(self) -> List[Dict[str, Any]]:
        """Render in the same shape FastAPI uses for request validation errors."""
        return [{"loc": self.loc, "msg": self.message, "type": "value_error"}]
