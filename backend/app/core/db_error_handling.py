"""
Database error handling utilities.

This module provides a reusable context manager for handling durable-store
errors consistently in the service layer. It centralizes the pattern of:
1. Rolling back the database session on error
2. Logging the error with context
3. Raising a DatabaseOperationError (the "Internal" error category)

Engine exceptions (ConflictError, NotFoundError, ...) raised inside the
block still roll the session back but propagate unchanged, so callers see
the business error rather than a generic failure.

Usage:
    from app.core.db_error_handling import handle_db_error

    with handle_db_error(db, "create exam test"):
        db.add(exam_test)
        db.commit()
"""

import logging
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Generator, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session


logger = logging.getLogger(__name__)

# Type variable for decorator return type preservation
T = TypeVar("T")


class DatabaseOperationError(Exception):
    """Exception raised when a database operation fails.

    This exception wraps database errors with additional context about
    the operation that failed. The HTTP adapter converts it to a 500
    response with a generic message.

    Attributes:
        operation_name: Human-readable name of the operation that failed
        original_error: The underlying exception that caused the failure
        message: The formatted error message
    """

    def __init__(
        self,
        operation_name: str,
        original_error: Exception,
        message: Optional[str] = None,
    ):
        """Initialize the database operation error.

        Args:
            operation_name: Human-readable name of the failed operation
            original_error: The underlying exception that caused the failure
            message: Optional custom error message. If not provided, a default
                message is generated from the operation name and error.
        """
        self.operation_name = operation_name
        self.original_error = original_error
        self.message = message or f"Failed to {operation_name}: {str(original_error)}"
        super().__init__(self.message)


@contextmanager
def handle_db_error(
    db: Session,
    operation_name: str,
    *,
    log_level: int = logging.ERROR,
) -> Generator[None, None, None]:
    """Context manager for handling database errors consistently.

    Args:
        db: The SQLAlchemy database session to rollback on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "submit exam session").
        log_level: Logging level for error messages. Defaults to logging.ERROR.

    Yields:
        None - the context manager is used for its side effects only.

    Raises:
        ExamEngineError: Re-raised unchanged after rollback.
        Exception: Any other error is re-raised unchanged after rollback.
        DatabaseOperationError: On SQLAlchemyError, with the session rolled back.

    Example:
        >>> with handle_db_error(db, "update exam session"):
        ...     exam_session.responses = responses
        ...     db.commit()
    """
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()

        logger.log(
            log_level,
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )

        raise DatabaseOperationError(operation_name, e) from e
    except Exception:
        # Engine errors and anything else keep their type
        db.rollback()
        raise


def _find_session(args: tuple, kwargs: dict) -> Optional[Session]:
    db = kwargs.get("db")
    if isinstance(db, Session):
        return db
    return next((arg for arg in args if isinstance(arg, Session)), None)


def handle_db_error_decorator(
    operation_name: str, *, log_level: int = logging.ERROR
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Wrap a whole service function in ``handle_db_error``.

    The function must receive its SQLAlchemy ``Session`` either as a
    positional argument or as the ``db`` keyword.

    Usage:
        @handle_db_error_decorator("list exam sessions")
        def list_sessions(db: Session, user_id: str):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            db = _find_session(args, kwargs)
            if db is None:
                raise ValueError(
                    f"Could not find 'db' Session parameter in {func.__name__}."
                )
            with handle_db_error(db, operation_name, log_level=log_level):
                return func(*args, **kwargs)

        return wrapper

    return decorator
