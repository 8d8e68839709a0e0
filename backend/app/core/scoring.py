"""
Exam Scoring Module.

Pure scoring of a session's responses against resolved question definitions.
Nothing here touches the database: the service layer resolves questions from
the content catalog, calls ``evaluate_responses`` and persists the result.

Marking Rules
=============
For each response (in the order the client sent them):

1. A response whose question cannot be resolved counts as **skipped**.
2. A response with no chosen identifiers and an empty free-text answer is
   **skipped** and scores zero.
3. MCQ / MSQ / TRUE_FALSE: the chosen identifier set must equal the answer
   key's identifier set, ignoring order. Match scores ``marks``; any
   mismatch scores ``-neg_marks``.
4. INTEGER / FILL_BLANK: the free-text answer is compared numerically with
   the key's ``integer`` ("42.0" matches 42). Match scores ``marks``,
   mismatch ``-neg_marks``. Without an ``integer`` in the key the response
   scores zero and is neither correct nor wrong. An explicit
   ``"integer": null`` is a key of 0 and is graded.
5. A response counts as wrong only when it scored below zero.

Accuracy is ``correct / len(question_order) * 100`` (0 for an empty order),
so unanswered questions that never produced a response still dilute it.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from app.core.datetime_utils import utc_now
from app.models.models import QuestionKind

logger = logging.getLogger(__name__)

IDENTIFIER_KINDS = frozenset(
    {QuestionKind.MCQ, QuestionKind.MSQ, QuestionKind.TRUE_FALSE}
)
NUMERIC_KINDS = frozenset({QuestionKind.INTEGER, QuestionKind.FILL_BLANK})


# =============================================================================
# Answer keys: one payload shape per question kind
# =============================================================================


@dataclass(frozen=True)
class IdentifierAnswer:
    """Answer key for MCQ, MSQ and TRUE_FALSE questions."""

    identifiers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IntegerAnswer:
    """Answer key for INTEGER questions."""

    integer: Optional[float] = None


@dataclass(frozen=True)
class FillBlankAnswer:
    """Answer key for FILL_BLANK questions.

    ``fills`` is kept for display; grading uses ``integer``.
    """

    fills: Tuple[str, ...] = ()
    integer: Optional[float] = None


@dataclass(frozen=True)
class NoAnswerKey:
    """Kinds that are never graded (comprehension passages)."""


AnswerKey = Union[IdentifierAnswer, IntegerAnswer, FillBlankAnswer, NoAnswerKey]


# Decimal text (optional sign, "Infinity", exponent) and unsigned 0x/0b/0o
# integer literals. Digit separators are not numbers.
_DECIMAL_TEXT = re.compile(r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_PREFIXED_TEXT = re.compile(r"0[xX][0-9a-fA-F]+|0[bB][01]+|0[oO][0-7]+")


def _to_number(value: Any) -> Optional[float]:
    """
    Coerce an answer or key value to a float for numeric comparison.

    Strings are stripped; a blank string is 0, matching how loosely-typed
    clients submit an empty numeric field. Hex, binary and octal literals
    ("0x2A") are read as integers. Anything else that is not plain decimal
    text, including "4_2", "nan" and "inf", returns None, which never
    equals anything.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return 0.0
    if _PREFIXED_TEXT.fullmatch(text):
        return float(int(text, 0))
    if _DECIMAL_TEXT.fullmatch(text):
        return float(text)
    return None


def _key_number(payload: Mapping[str, Any]) -> Optional[float]:
    # Absent means no key; an explicit null grades as 0 and an unparseable
    # value as NaN, so answers are still marked wrong against it.
    if "integer" not in payload:
        return None
    value = payload["integer"]
    if value is None:
        return 0.0
    number = _to_number(value)
    return math.nan if number is None else number


def parse_answer_key(kind: QuestionKind, payload: Optional[Mapping[str, Any]]) -> AnswerKey:
    """
    Build the typed answer key for a question from its stored ``correct`` payload.

    Args:
        kind: The question kind
        payload: Stored JSON, e.g. ``{"identifiers": ["B"]}`` or ``{"integer": 42}``

    Returns:
        The AnswerKey variant matching the kind
    """
    payload = payload or {}

    if kind in IDENTIFIER_KINDS:
        return IdentifierAnswer(
            identifiers=tuple(str(i) for i in payload.get("identifiers") or [])
        )
    if kind == QuestionKind.INTEGER:
        return IntegerAnswer(integer=_key_number(payload))
    if kind == QuestionKind.FILL_BLANK:
        return FillBlankAnswer(
            fills=tuple(str(f) for f in payload.get("fills") or []),
            integer=_key_number(payload),
        )
    return NoAnswerKey()


@dataclass(frozen=True)
class QuestionDefinition:
    """What the scoring engine needs to know about one catalog question."""

    id: str
    kind: QuestionKind
    marks: float
    neg_marks: float
    answer_key: AnswerKey
    subject_id: Optional[str] = None


# =============================================================================
# Evaluation result
# =============================================================================


@dataclass
class SubjectStats:
    """Per-subject accumulator."""

    marks: float = 0.0
    correct: int = 0
    wrong: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "marks": self.marks,
            "correct": self.correct,
            "wrong": self.wrong,
            "skipped": self.skipped,
        }


@dataclass
class EvaluationResult:
    """Output of a scoring pass.

    ``scored_responses`` are copies of the input responses with
    ``marks_awarded`` and ``is_correct`` filled in; the input is not mutated.
    """

    total_marks: float
    correct: int
    wrong: int
    skipped: int
    accuracy: float
    subject_stats: Dict[str, SubjectStats]
    evaluated_at: datetime
    scored_responses: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def negative_marks(self) -> float:
        """Shortfall below zero of the total, not the sum of deductions."""
        return derive_negative_marks(self.total_marks)

    def to_snapshot(self) -> Dict[str, Any]:
        """JSON-serializable snapshot stored verbatim on the session."""
        return {
            "total_marks": self.total_marks,
            "correct": self.correct,
            "wrong": self.wrong,
            "skipped": self.skipped,
            "accuracy": self.accuracy,
            "subject_stats": {
                sid: stats.to_dict() for sid, stats in self.subject_stats.items()
            },
            "evaluated_at": self.evaluated_at.isoformat(),
        }


def derive_negative_marks(total_marks: float) -> float:
    """
    Negative marks reported on a session: ``abs(min(0, total_marks))``.

    Example:
        >>> derive_negative_marks(-3)
        3
        >>> derive_negative_marks(5)
        0
    """
    return abs(min(0, total_marks))


def calculate_accuracy(correct: int, total_questions: int) -> float:
    """Percentage of questions in the order answered correctly (0 when empty)."""
    if total_questions <= 0:
        return 0.0
    return (correct / total_questions) * 100.0


# =============================================================================
# Grading
# =============================================================================


def is_answered(response: Mapping[str, Any]) -> bool:
    """A response is answered if it has chosen identifiers or free text."""
    chosen = response.get("chosen_identifiers") or []
    free_text = response.get("free_text_answer")
    return bool(chosen) or bool(free_text)


def _award(question: QuestionDefinition, correct: bool) -> Tuple[float, bool]:
    if correct:
        return float(question.marks or 0), True
    neg = float(question.neg_marks or 0)
    return (-neg if neg else 0.0), False


def grade_response(
    response: Mapping[str, Any], question: QuestionDefinition
) -> Tuple[float, bool]:
    """
    Grade one answered response against its question.

    Args:
        response: Response item with chosen_identifiers / free_text_answer
        question: Resolved question definition

    Returns:
        Tuple of (marks_awarded, is_correct). Kinds without a gradable key
        return (0.0, False).
    """
    key = question.answer_key

    if isinstance(key, IdentifierAnswer):
        given = sorted(str(i) for i in response.get("chosen_identifiers") or [])
        expected = sorted(key.identifiers)
        return _award(question, given == expected)

    if isinstance(key, (IntegerAnswer, FillBlankAnswer)):
        if key.integer is None:
            return 0.0, False
        given_number = _to_number(response.get("free_text_answer"))
        matched = (
            given_number is not None
            and not math.isnan(given_number)
            and given_number == key.integer
        )
        return _award(question, matched)

    return 0.0, False


def evaluate_responses(
    responses: Sequence[Mapping[str, Any]],
    question_order: Sequence[str],
    questions: Iterable[QuestionDefinition],
    evaluated_at: Optional[datetime] = None,
) -> EvaluationResult:
    """
    Score every response of a session.

    Args:
        responses: The session's response items
        question_order: The session's fixed question order (accuracy denominator)
        questions: Resolved question definitions; missing ids are tolerated
        evaluated_at: Timestamp to record; defaults to now

    Returns:
        EvaluationResult with totals, per-subject stats and scored responses
    """
    by_id = {str(q.id): q for q in questions}

    total_marks = 0.0
    correct = 0
    wrong = 0
    skipped = 0
    subject_stats: Dict[str, SubjectStats] = {}
    scored: List[Dict[str, Any]] = []

    for response in responses:
        question = by_id.get(str(response.get("question_id")))
        answered = is_answered(response)

        marks_awarded = 0.0
        is_correct = False

        if question is None:
            skipped += 1
        elif answered:
            marks_awarded, is_correct = grade_response(response, question)
        else:
            skipped += 1

        scored_item = dict(response)
        scored_item["marks_awarded"] = marks_awarded
        scored_item["is_correct"] = is_correct
        scored.append(scored_item)

        total_marks += marks_awarded
        if is_correct:
            correct += 1
        elif marks_awarded < 0:
            wrong += 1

        if question is not None and question.subject_id:
            bucket = subject_stats.setdefault(str(question.subject_id), SubjectStats())
            bucket.marks += marks_awarded
            if is_correct:
                bucket.correct += 1
            elif marks_awarded < 0:
                bucket.wrong += 1
            elif not answered:
                # Answered-but-ungraded responses do not count as skipped
                bucket.skipped += 1

    missing = [
        r.get("question_id") for r in responses if str(r.get("question_id")) not in by_id
    ]
    if missing:
        logger.warning(
            f"Scored {len(missing)} responses with unresolved questions as skipped"
        )

    return EvaluationResult(
        total_marks=total_marks,
        correct=correct,
        wrong=wrong,
        skipped=skipped,
        accuracy=calculate_accuracy(correct, len(question_order)),
        subject_stats=subject_stats,
        evaluated_at=evaluated_at or utc_now(),
        scored_responses=scored,
    )
