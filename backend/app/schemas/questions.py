"""
Pydantic schemas for catalog question summaries.
"""
from pydantic import BaseModel, Field
from typing import Optional

from app.models.models import DifficultyLevel, QuestionKind


class QuestionSummary(BaseModel):
    """Question as shown alongside a test or session.

    Never carries the answer key.
    """

    id: str = Field(..., description="Question reference")
    kind: QuestionKind = Field(..., description="Question kind")
    marks: float = Field(..., description="Marks for a correct answer")
    neg_marks: float = Field(..., description="Marks deducted for a wrong answer")
    subject_id: Optional[str] = Field(None, description="Subject grouping")
    chapter_id: Optional[str] = Field(None, description="Chapter grouping")
    topic_id: Optional[str] = Field(None, description="Topic grouping")
    difficulty: DifficultyLevel = Field(..., description="Difficulty level")

    class Config:
        """Pydantic configuration."""

        from_attributes = True
