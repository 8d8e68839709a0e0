"""
ExamPrep API application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.api import api_router
from app.core.analytics import AnalyticsTracker
from app.core.config import settings
from app.core.error_tracking import capture_error, init_error_tracking
from app.core.logging_config import setup_logging
from app.middleware import RequestLoggingMiddleware

setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start error tracking on startup; release the connection pool on shutdown."""
    init_error_tracking()
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} starting ({settings.ENV})")

    yield

    from app.models import engine

    engine.dispose()
    logger.info("Database pool disposed, shutting down")


tags_metadata = [
    {"name": "health", "description": "Liveness and session store reachability"},
    {
        "name": "exam-tests",
        "description": "Test definitions: question pool, marking scheme, time allotment",
    },
    {
        "name": "exam-sessions",
        "description": "Exam attempts: start, save answers, submit and evaluate",
    },
    {
        "name": "exam-analytics",
        "description": "Historical results of evaluated sessions",
    },
]

API_DESCRIPTION = """\
**ExamPrep API** - timed tests with negative marking.

* Test definitions built from the question catalog
* Exam sessions with randomized question order
* In-progress answer saving and heartbeat
* Submission with per-subject scoring and analytics

## Identity

Requests are authenticated upstream. The caller's user identifier must be
forwarded in the `X-User-ID` header.
"""


def _caller(request: Request) -> Optional[str]:
    # Set by get_current_user_id once the identity header has been read
    return getattr(request.state, "user_id", None)


def _track_error(request: Request, error_type: str, message: str) -> None:
    AnalyticsTracker.track_api_error(
        method=request.method,
        path=str(request.url.path),
        error_type=error_type,
        error_message=message,
        user_id=_caller(request),
    )


def _error_context(request: Request, **extra: Any) -> Dict[str, Any]:
    return {"path": str(request.url.path), "method": request.method, **extra}


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers that track, log and shape error responses."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 400:
            _track_error(request, "HTTPException", str(exc.detail))
        if exc.status_code >= 500:
            capture_error(
                exc,
                context=_error_context(request, status_code=exc.status_code),
                user_id=_caller(request),
                tags={"error_type": "HTTPException"},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """Report schema violations with the field path of each error."""
        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]
        _track_error(request, "ValidationError", str(errors))
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """
        Last-resort handler.

        The response carries only a generic message and an error_id; the
        same id is logged with the traceback and attached to the Sentry event.
        """
        error_id = str(uuid.uuid4())
        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={"error_id": error_id},
        )
        error_type = exc.__class__.__name__
        _track_error(request, error_type, str(exc))
        capture_error(
            exc,
            context=_error_context(request, error_id=error_id),
            user_id=_caller(request),
            tags={"error_type": error_type},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "error_id": error_id},
        )


def create_application() -> FastAPI:
    """Build the FastAPI application with middleware, routes and handlers."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=API_DESCRIPTION,
        lifespan=lifespan,
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "X-User-ID", "X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware, slow_request_threshold=1.0)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)
    register_exception_handlers(app)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": f"{settings.API_V1_PREFIX}/docs",
        }

    return app


app = create_application()
