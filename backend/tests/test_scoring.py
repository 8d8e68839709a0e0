"""
Tests for the exam scoring module.
"""
from datetime import datetime, timezone

import pytest

from app.core.scoring import (
    FillBlankAnswer,
    IdentifierAnswer,
    IntegerAnswer,
    NoAnswerKey,
    QuestionDefinition,
    calculate_accuracy,
    derive_negative_marks,
    evaluate_responses,
    grade_response,
    is_answered,
    parse_answer_key,
)
from app.models.models import QuestionKind


def mcq(qid="q1", identifiers=("B",), marks=4, neg_marks=1, subject_id="physics"):
    return QuestionDefinition(
        id=qid,
        kind=QuestionKind.MCQ,
        marks=marks,
        neg_marks=neg_marks,
        answer_key=IdentifierAnswer(identifiers=tuple(identifiers)),
        subject_id=subject_id,
    )


def integer_question(qid="n1", value=42.0, subject_id="maths"):
    return QuestionDefinition(
        id=qid,
        kind=QuestionKind.INTEGER,
        marks=4,
        neg_marks=1,
        answer_key=IntegerAnswer(integer=value),
        subject_id=subject_id,
    )


def chosen(qid, *identifiers):
    return {"question_id": qid, "chosen_identifiers": list(identifiers)}


def typed(qid, answer):
    return {"question_id": qid, "chosen_identifiers": [], "free_text_answer": answer}


class TestParseAnswerKey:
    """Tests for turning stored payloads into answer key variants."""

    def test_identifier_kinds(self):
        for kind in (QuestionKind.MCQ, QuestionKind.MSQ, QuestionKind.TRUE_FALSE):
            key = parse_answer_key(kind, {"identifiers": ["A", "C"]})
            assert key == IdentifierAnswer(identifiers=("A", "C"))

    def test_integer(self):
        assert parse_answer_key(QuestionKind.INTEGER, {"integer": 42}) == IntegerAnswer(
            integer=42.0
        )

    def test_integer_given_as_string(self):
        key = parse_answer_key(QuestionKind.INTEGER, {"integer": " 7 "})
        assert key.integer == 7.0

    def test_fill_blank_keeps_fills_and_integer(self):
        key = parse_answer_key(
            QuestionKind.FILL_BLANK, {"fills": ["seven"], "integer": 7}
        )
        assert key == FillBlankAnswer(fills=("seven",), integer=7.0)

    def test_null_integer_is_zero_key(self):
        key = parse_answer_key(QuestionKind.INTEGER, {"integer": None})
        assert key == IntegerAnswer(integer=0.0)

    def test_absent_integer_is_no_key(self):
        assert parse_answer_key(QuestionKind.INTEGER, {}).integer is None

    def test_unparseable_integer_key_never_matches(self):
        key = parse_answer_key(QuestionKind.FILL_BLANK, {"integer": "seven"})
        question = QuestionDefinition(
            id="f1", kind=QuestionKind.FILL_BLANK, marks=3, neg_marks=1, answer_key=key
        )

        assert grade_response(typed("f1", "7"), question) == (-1.0, False)

    def test_missing_payload(self):
        assert parse_answer_key(QuestionKind.MCQ, None) == IdentifierAnswer()
        assert parse_answer_key(QuestionKind.INTEGER, None) == IntegerAnswer()

    def test_passage_has_no_key(self):
        key = parse_answer_key(
            QuestionKind.COMPREHENSION_PASSAGE, {"identifiers": ["A"]}
        )
        assert isinstance(key, NoAnswerKey)


class TestIsAnswered:
    """Tests for the answered/skipped distinction."""

    def test_chosen_identifiers(self):
        assert is_answered(chosen("q1", "A"))

    def test_free_text(self):
        assert is_answered(typed("q1", "42"))

    def test_empty_response(self):
        assert not is_answered(chosen("q1"))
        assert not is_answered(typed("q1", ""))
        assert not is_answered({"question_id": "q1"})


class TestMcqScoring:
    """MCQ: marks=4, neg_marks=1, correct ["B"]."""

    def test_correct_choice(self):
        assert grade_response(chosen("q1", "B"), mcq()) == (4.0, True)

    def test_wrong_choice(self):
        assert grade_response(chosen("q1", "A"), mcq()) == (-1.0, False)

    def test_empty_response_is_skipped(self):
        result = evaluate_responses([chosen("q1")], ["q1"], [mcq()])

        assert result.scored_responses[0]["marks_awarded"] == 0
        assert result.scored_responses[0]["is_correct"] is False
        assert result.skipped == 1
        assert result.correct == 0
        assert result.wrong == 0

    def test_extra_choice_is_wrong(self):
        assert grade_response(chosen("q1", "A", "B"), mcq()) == (-1.0, False)

    def test_zero_negative_marks(self):
        question = mcq(neg_marks=0)
        marks, is_correct = grade_response(chosen("q1", "A"), question)

        assert marks == 0
        assert is_correct is False


class TestMsqScoring:
    """MSQ grading is order-independent set equality."""

    def test_reordered_choice_gets_full_marks(self):
        question = QuestionDefinition(
            id="m1",
            kind=QuestionKind.MSQ,
            marks=4,
            neg_marks=2,
            answer_key=IdentifierAnswer(identifiers=("A", "C")),
        )

        assert grade_response(chosen("m1", "C", "A"), question) == (4.0, True)

    def test_partial_choice_is_wrong(self):
        question = QuestionDefinition(
            id="m1",
            kind=QuestionKind.MSQ,
            marks=4,
            neg_marks=2,
            answer_key=IdentifierAnswer(identifiers=("A", "C")),
        )

        assert grade_response(chosen("m1", "A"), question) == (-2.0, False)

    def test_true_false(self):
        question = QuestionDefinition(
            id="tf",
            kind=QuestionKind.TRUE_FALSE,
            marks=1,
            neg_marks=0,
            answer_key=IdentifierAnswer(identifiers=("true",)),
        )

        assert grade_response(chosen("tf", "true"), question) == (1.0, True)


class TestNumericScoring:
    """INTEGER / FILL_BLANK compare numerically."""

    @pytest.mark.parametrize("answer", ["42", "42.0", " 42 ", "4.2e1"])
    def test_numeric_match(self, answer):
        assert grade_response(typed("n1", answer), integer_question()) == (4.0, True)

    @pytest.mark.parametrize("answer", ["0x2A", "0X2a", "0b101010", "0o52"])
    def test_prefixed_integer_literals_match(self, answer):
        assert grade_response(typed("n1", answer), integer_question()) == (4.0, True)

    @pytest.mark.parametrize("answer", ["4_2", "42_0", "nan", "inf", "-0x2A", "0x"])
    def test_non_decimal_text_is_wrong(self, answer):
        assert grade_response(typed("n1", answer), integer_question()) == (-1.0, False)

    def test_null_key_grades_against_zero(self):
        question = QuestionDefinition(
            id="n1",
            kind=QuestionKind.INTEGER,
            marks=4,
            neg_marks=1,
            answer_key=parse_answer_key(QuestionKind.INTEGER, {"integer": None}),
        )

        assert grade_response(typed("n1", "0"), question) == (4.0, True)
        assert grade_response(typed("n1", "1"), question) == (-1.0, False)

    def test_numeric_mismatch(self):
        assert grade_response(typed("n1", "43"), integer_question()) == (-1.0, False)

    def test_unparseable_answer_is_wrong(self):
        assert grade_response(typed("n1", "forty-two"), integer_question()) == (
            -1.0,
            False,
        )

    def test_fill_blank_uses_integer(self):
        question = QuestionDefinition(
            id="f1",
            kind=QuestionKind.FILL_BLANK,
            marks=3,
            neg_marks=1,
            answer_key=FillBlankAnswer(fills=("seven",), integer=7.0),
        )

        assert grade_response(typed("f1", "7"), question) == (3.0, True)
        assert grade_response(typed("f1", "seven"), question) == (-1.0, False)

    def test_no_integer_defined_falls_through(self):
        question = integer_question(value=None)

        result = evaluate_responses([typed("n1", "42")], ["n1"], [question])

        assert result.scored_responses[0]["marks_awarded"] == 0
        assert result.scored_responses[0]["is_correct"] is False
        assert result.correct == 0
        assert result.wrong == 0
        assert result.skipped == 0
        assert result.total_marks == 0

    def test_no_integer_defined_not_skipped_in_subject(self):
        question = integer_question(value=None)

        result = evaluate_responses([typed("n1", "42")], ["n1"], [question])

        stats = result.subject_stats["maths"]
        assert stats.skipped == 0
        assert stats.correct == 0
        assert stats.wrong == 0


class TestEvaluateResponses:
    """Tests for the full scoring pass."""

    def test_missing_question_counts_as_skipped(self):
        result = evaluate_responses(
            [chosen("ghost", "B"), chosen("q1", "B")], ["q1", "ghost"], [mcq()]
        )

        assert result.skipped == 1
        assert result.correct == 1
        assert result.total_marks == 4
        assert result.scored_responses[0]["marks_awarded"] == 0
        # No subject bucket for an unresolved question
        assert set(result.subject_stats) == {"physics"}

    def test_totals_and_subject_buckets(self):
        questions = [
            mcq("p1", subject_id="physics"),
            mcq("p2", subject_id="physics"),
            mcq("c1", subject_id="chemistry"),
            mcq("c2", subject_id="chemistry"),
        ]
        responses = [
            chosen("p1", "B"),
            chosen("p2", "C"),
            chosen("c1", "B"),
            chosen("c2"),
        ]

        result = evaluate_responses(
            responses, ["p1", "p2", "c1", "c2"], questions
        )

        assert result.total_marks == 7
        assert (result.correct, result.wrong, result.skipped) == (2, 1, 1)
        physics = result.subject_stats["physics"]
        chemistry = result.subject_stats["chemistry"]
        assert (physics.marks, physics.correct, physics.wrong, physics.skipped) == (
            3,
            1,
            1,
            0,
        )
        assert (
            chemistry.marks,
            chemistry.correct,
            chemistry.wrong,
            chemistry.skipped,
        ) == (4, 1, 0, 1)

    def test_question_without_subject_has_no_bucket(self):
        result = evaluate_responses(
            [chosen("q1", "B")], ["q1"], [mcq(subject_id=None)]
        )

        assert result.subject_stats == {}
        assert result.correct == 1

    def test_input_responses_not_mutated(self):
        responses = [chosen("q1", "B")]

        result = evaluate_responses(responses, ["q1"], [mcq()])

        assert "marks_awarded" not in responses[0]
        assert result.scored_responses[0]["marks_awarded"] == 4
        assert result.scored_responses[0]["is_correct"] is True

    def test_accuracy_uses_question_order_length(self):
        questions = [mcq(f"q{i}") for i in range(10)]
        responses = [chosen(f"q{i}", "B") for i in range(4)]

        result = evaluate_responses(responses, [q.id for q in questions], questions)

        assert result.accuracy == 40
        # Ordered questions without a response are not counted anywhere
        assert (result.correct, result.wrong, result.skipped) == (4, 0, 0)

    def test_empty_question_order_has_zero_accuracy(self):
        result = evaluate_responses([chosen("q1", "B")], [], [mcq()])

        assert result.accuracy == 0
        assert result.correct == 1

    def test_no_responses(self):
        result = evaluate_responses([], ["q1"], [mcq()])

        assert result.total_marks == 0
        assert (result.correct, result.wrong, result.skipped) == (0, 0, 0)
        assert result.accuracy == 0

    def test_snapshot(self):
        evaluated_at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        result = evaluate_responses(
            [chosen("q1", "A")], ["q1"], [mcq()], evaluated_at=evaluated_at
        )
        snapshot = result.to_snapshot()

        assert snapshot == {
            "total_marks": -1.0,
            "correct": 0,
            "wrong": 1,
            "skipped": 0,
            "accuracy": 0.0,
            "subject_stats": {
                "physics": {"marks": -1.0, "correct": 0, "wrong": 1, "skipped": 0}
            },
            "evaluated_at": "2026-01-02T03:04:05+00:00",
        }
        assert result.negative_marks == 1


class TestDerivedFigures:
    """Tests for accuracy and negative marks derivation."""

    def test_negative_marks_below_zero(self):
        assert derive_negative_marks(-3) == 3

    def test_negative_marks_above_zero(self):
        assert derive_negative_marks(5) == 0

    def test_negative_marks_at_zero(self):
        assert derive_negative_marks(0.0) == 0

    def test_accuracy(self):
        assert calculate_accuracy(4, 10) == 40.0
        assert calculate_accuracy(0, 0) == 0.0
        assert calculate_accuracy(2, 3) == pytest.approx(66.67, abs=0.01)
