"""
Access logging with request-id correlation.
"""
import logging
import time
import uuid
from typing import Callable, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.auth import USER_ID_HEADER
from app.core.logging_config import request_id_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log each request on arrival and on completion.

    The inbound ``X-Request-ID`` (or a fresh UUID) is placed in
    ``request_id_context`` so every log line written while handling the
    request carries it, and is echoed on the response. The caller is
    identified by the raw ``X-User-ID`` header, "anonymous" when absent.
    """

    def __init__(self, app, slow_request_threshold: float = 1.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    def _outcome(self, status_code: int, duration: float) -> Tuple[int, str]:
        if status_code >= 500:
            return logging.ERROR, "Server error response"
        if status_code >= 400:
            return logging.WARNING, "Client error response"
        if duration > self.slow_request_threshold:
            return logging.WARNING, "Slow request"
        return logging.INFO, "Request completed"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request_id_context.set(request_id)

        fields = {
            "method": request.method,
            "path": str(request.url.path),
            "client_host": request.client.host if request.client else "unknown",
            "user_identifier": request.headers.get(USER_ID_HEADER) or "anonymous",
        }
        logger.info("Incoming request", extra=fields)

        started = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - started

        response.headers[REQUEST_ID_HEADER] = request_id

        level, message = self._outcome(response.status_code, duration)
        fields.update(
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        logger.log(level, message, extra=fields)
        return response
