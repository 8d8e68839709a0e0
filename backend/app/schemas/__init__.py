"""
Pydantic schemas for request/response validation.
"""
from .questions import QuestionSummary
from .exam_tests import ExamTestCreate, ExamTestResponse
from .exam_sessions import (
    ResponseItem,
    ExamSessionCreate,
    ExamSessionUpdate,
    ExamSessionResponse,
    EvaluationSummary,
    SubjectStatsSchema,
    PaginatedExamSessionResponse,
    TestAnalyticsResponse,
    PaginatedTestAnalyticsResponse,
)

__all__ = [
    "QuestionSummary",
    "ExamTestCreate",
    "ExamTestResponse",
    "ResponseItem",
    "ExamSessionCreate",
    "ExamSessionUpdate",
    "ExamSessionResponse",
    "EvaluationSummary",
    "SubjectStatsSchema",
    "PaginatedExamSessionResponse",
    "TestAnalyticsResponse",
    "PaginatedTestAnalyticsResponse",
]
