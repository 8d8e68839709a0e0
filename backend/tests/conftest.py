"""
Shared fixtures: a throwaway SQLite store, an API client bound to it, and a
small catalog of scored questions.
"""
import os
from pathlib import Path

# Use SQLite for tests. The path is relative to this file so the .db lands
# inside tests/ regardless of the working directory. Must be set before
# app.models.base builds its engine at import time.
_TEST_DB = Path(__file__).parent / "test.db"
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"
os.environ["DATABASE_URL"] = SQLALCHEMY_DATABASE_URL
os.environ.setdefault("SENTRY_DSN", "")

from contextlib import asynccontextmanager  # noqa: E402
from typing import Dict, List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.main import app  # noqa: E402
from app.models import Base, Question, get_db  # noqa: E402
from app.models.models import DifficultyLevel, ExamTest, QuestionKind  # noqa: E402


@asynccontextmanager
async def _test_lifespan(app):
    """Replaces the app lifespan.

    Skips Sentry initialization and pool disposal.
    """
    yield


app.router.lifespan_context = _test_lifespan

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture(scope="function")
def db_session():
    """
    Session on freshly created tables; everything is dropped afterwards.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client whose requests share the test's database session.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers() -> Dict[str, str]:
    """Identity headers for the primary test user."""
    return {"X-User-ID": USER_ID}


@pytest.fixture
def other_user_headers() -> Dict[str, str]:
    """Identity headers for a second user."""
    return {"X-User-ID": OTHER_USER_ID}


def make_question(
    question_id: str,
    kind: QuestionKind = QuestionKind.MCQ,
    correct=None,
    marks: float = 4,
    neg_marks: float = 1,
    subject_id: str = "physics",
    is_active: bool = True,
) -> Question:
    """Build a catalog question (not yet added to a session)."""
    if correct is None and kind in (QuestionKind.MCQ, QuestionKind.MSQ):
        correct = {"identifiers": ["B"]}
    return Question(
        id=question_id,
        kind=kind,
        marks=marks,
        neg_marks=neg_marks,
        correct=correct,
        subject_id=subject_id,
        difficulty=DifficultyLevel.MEDIUM,
        is_active=is_active,
    )


@pytest.fixture
def question_factory(db_session):
    """
    Persist catalog questions built with make_question.
    """

    def _create(question_id: str, **kwargs) -> Question:
        question = make_question(question_id, **kwargs)
        db_session.add(question)
        db_session.commit()
        return question

    return _create


@pytest.fixture
def mcq_questions(db_session) -> List[Question]:
    """
    Three MCQs worth 4/-1 each, correct answer "B".
    """
    questions = [
        make_question("q1", subject_id="physics"),
        make_question("q2", subject_id="physics"),
        make_question("q3", subject_id="chemistry"),
    ]
    db_session.add_all(questions)
    db_session.commit()
    return questions


@pytest.fixture
def exam_test(db_session, mcq_questions) -> ExamTest:
    """
    Test "T1" over the three MCQs, shuffling disabled for predictable order.
    """
    exam_test = ExamTest(
        test_id="T1",
        title="Physics & Chemistry Mock 1",
        question_pool=[q.id for q in mcq_questions],
        total_questions=len(mcq_questions),
        marks=12,
        max_neg_marks=3,
        time_allotted_seconds=3600,
        allow_randomize=False,
        max_attempt=2,
    )
    db_session.add(exam_test)
    db_session.commit()
    db_session.refresh(exam_test)
    return exam_test
