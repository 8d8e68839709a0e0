"""
FastAPI identity dependencies.

Authentication happens upstream; the gateway forwards the authenticated
user's identifier in the ``X-User-ID`` header.
"""
from typing import Optional

from fastapi import Header, Request

from .error_responses import ErrorMessages, raise_unauthorized

USER_ID_HEADER = "X-User-ID"


def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """
    Return the caller's user identifier.

    The identifier is also stored on ``request.state.user_id`` so exception
    handlers can attribute errors.

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if x_user_id is None or not x_user_id.strip():
        raise_unauthorized(ErrorMessages.MISSING_USER_ID)
    user_id = x_user_id.strip()
    request.state.user_id = user_id
    return user_id
