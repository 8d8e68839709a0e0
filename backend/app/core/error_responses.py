"""
Standardized error response messages and builders.

This module provides consistent error messages and HTTPException builders
for the HTTP adapter. The service layer never raises HTTPException itself;
it raises the exceptions in ``app.core.exceptions`` and the endpoints
translate them with ``translate_engine_errors``.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include relevant IDs in parentheses when helpful for debugging: "(ID: 123)"
- Use "Please try again later." for transient server errors

Usage:
    from app.core.error_responses import ErrorMessages, raise_not_found

    if not exam_test:
        raise_not_found(ErrorMessages.EXAM_TEST_NOT_FOUND)

    with translate_engine_errors():
        exam_session = submit_session(db, session_id, user_id)
"""

from contextlib import contextmanager
from typing import Any, Generator, NoReturn

from fastapi import HTTPException, status

from app.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from app.core.db_error_handling import DatabaseOperationError


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Identity Errors (401)
    # ==========================================================================
    MISSING_USER_ID = "Missing authenticated user identifier."

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    EXAM_TEST_NOT_FOUND = "Exam test not found."
    EXAM_SESSION_NOT_FOUND = "Exam session not found."

    # ==========================================================================
    # Conflict Errors (409)
    # ==========================================================================
    EXAM_TEST_ALREADY_EXISTS = "Test with this testId already exists."
    SESSION_CREATED_CONCURRENTLY = (
        "Another exam session for this test was created concurrently. "
        "Please retry."
    )

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    SESSION_ALREADY_SUBMITTED = "Session is already submitted or evaluated."
    SESSION_NOT_IN_PROGRESS = "Only in-progress sessions can be modified."
    EVALUATED_STATUS_NOT_ALLOWED = (
        "Status 'evaluated' can only be reached by submitting the session."
    )

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    INTERNAL_ERROR = "Internal server error."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def exam_test_exists(test_id: str) -> str:
        """Message for a duplicate test business key."""
        return f"Test with this testId already exists (ID: {test_id})."

    @staticmethod
    def session_not_modifiable(status: str) -> str:
        """Message for when trying to modify a non-in-progress session."""
        return (
            f"Exam session is already {status}. "
            "Only in-progress sessions can be modified."
        )

    @staticmethod
    def unresolved_questions(question_ids: list) -> str:
        """Message when question references are missing from the catalog."""
        ids_str = ", ".join(str(qid) for qid in sorted(question_ids))
        return f"Unknown question references: {ids_str}."

    @staticmethod
    def max_attempts_reached(test_id: str, max_attempt: int) -> str:
        """Message when a user has used every allowed attempt."""
        return (
            f"Maximum attempts reached for test {test_id} "
            f"({max_attempt} allowed)."
        )

    @staticmethod
    def database_operation_failed(operation: str) -> str:
        """Generic message for database operation failures."""
        return f"Failed to {operation}. Please try again later."


# ==============================================================================
# HTTPException Builders
# ==============================================================================


def _raise(status_code: int, detail: Any) -> NoReturn:
    raise HTTPException(status_code=status_code, detail=detail)


def raise_bad_request(detail: str) -> NoReturn:
    """400: illegal state transition (e.g. submitting an evaluated session)."""
    _raise(status.HTTP_400_BAD_REQUEST, detail)


def raise_unauthorized(detail: str) -> NoReturn:
    """401: the upstream identity header is missing."""
    _raise(status.HTTP_401_UNAUTHORIZED, detail)


def raise_not_found(detail: str) -> NoReturn:
    """404: unknown test or session, or a session owned by someone else."""
    _raise(status.HTTP_404_NOT_FOUND, detail)


def raise_conflict(detail: str) -> NoReturn:
    """409: duplicate business key or attempt cap reached."""
    _raise(status.HTTP_409_CONFLICT, detail)


def raise_unprocessable(detail: Any) -> NoReturn:
    """422: detail is passed through so field paths (``loc``) reach the caller."""
    _raise(status.HTTP_422_UNPROCESSABLE_ENTITY, detail)


def raise_server_error(detail: str) -> NoReturn:
    """500: keep the message generic; technical details belong in the logs."""
    _raise(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)


@contextmanager
def translate_engine_errors() -> Generator[None, None, None]:
    """Map exam engine exceptions raised inside the block to HTTP errors.

    ConflictError -> 409, NotFoundError -> 404, InvalidStateError -> 400,
    ValidationFailedError -> 422, DatabaseOperationError -> 500.
    """
    try:
        yield
    except ConflictError as e:
        raise_conflict(e.message)
    except NotFoundError as e:
        raise_not_found(e.message)
    except InvalidStateError as e:
        raise_bad_request(e.message)
    except ValidationFailedError as e:
        raise_unprocessable(e.to_detail())
    except DatabaseOperationError as e:
        raise_server_error(ErrorMessages.database_operation_failed(e.operation_name))
