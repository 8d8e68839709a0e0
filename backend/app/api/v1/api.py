"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter
from app.api.v1 import health, exam_tests, exam_sessions

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(exam_tests.router, prefix="/exam/tests", tags=["exam-tests"])
api_router.include_router(
    exam_sessions.router, prefix="/exam/sessions", tags=["exam-sessions"]
)
api_router.include_router(
    exam_sessions.analytics_router, prefix="/exam/analytics", tags=["exam-analytics"]
)
