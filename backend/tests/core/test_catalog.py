"""
Tests for catalog lookups used by session creation and scoring.
"""
from app.core.catalog import find_missing_questions, resolve_questions
from app.core.scoring import IdentifierAnswer, IntegerAnswer, NoAnswerKey
from app.models.models import QuestionKind


class TestFindMissingQuestions:
    """Tests for find_missing_questions."""

    def test_all_present(self, db_session, mcq_questions):
        assert find_missing_questions(db_session, ["q1", "q2", "q3"]) == []

    def test_missing_in_order_without_duplicates(self, db_session, mcq_questions):
        missing = find_missing_questions(
            db_session, ["zz", "q1", "aa", "zz", "q2"]
        )

        assert missing == ["zz", "aa"]

    def test_inactive_counts_as_missing(self, db_session, question_factory):
        question_factory("old", is_active=False)

        assert find_missing_questions(db_session, ["old"]) == ["old"]

    def test_empty(self, db_session):
        assert find_missing_questions(db_session, []) == []


class TestResolveQuestions:
    """Tests for resolve_questions."""

    def test_definitions_carry_answer_keys(self, db_session, question_factory):
        question_factory("m1", kind=QuestionKind.MCQ, correct={"identifiers": ["C"]})
        question_factory(
            "n1",
            kind=QuestionKind.INTEGER,
            correct={"integer": 12},
            marks=3,
            neg_marks=0,
            subject_id="maths",
        )
        question_factory("p1", kind=QuestionKind.COMPREHENSION_PASSAGE, correct=None)

        by_id = {
            d.id: d for d in resolve_questions(db_session, ["m1", "n1", "p1", "x"])
        }

        assert set(by_id) == {"m1", "n1", "p1"}
        assert by_id["m1"].answer_key == IdentifierAnswer(identifiers=("C",))
        assert by_id["n1"].answer_key == IntegerAnswer(integer=12.0)
        assert (by_id["n1"].marks, by_id["n1"].neg_marks) == (3, 0)
        assert by_id["n1"].subject_id == "maths"
        assert isinstance(by_id["p1"].answer_key, NoAnswerKey)

    def test_inactive_questions_still_resolve(self, db_session, question_factory):
        """Retiring a question does not change the score of sessions using it."""
        question_factory("old", is_active=False)

        assert [d.id for d in resolve_questions(db_session, ["old"])] == ["old"]
