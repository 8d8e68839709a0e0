"""
Read access to the content catalog.

The exam engine never writes questions. It needs two things from the catalog:
validating that question references exist when a session is created, and
resolving definitions (kind, marks, answer key, subject) for scoring.
"""
import logging
from typing import Iterable, List, Sequence, Set

from sqlalchemy.orm import Session

from app.core.scoring import QuestionDefinition, parse_answer_key
from app.models.models import Question

logger = logging.getLogger(__name__)


def _unique_ids(question_ids: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    unique = []
    for qid in question_ids:
        key = str(qid)
        if key not in seen:
            seen.add(key)
            unique.append(key)
    return unique


def fetch_questions(db: Session, question_ids: Iterable[str]) -> List[Question]:
    """Load catalog rows for the given references in one query."""
    ids = _unique_ids(question_ids)
    if not ids:
        return []
    return db.query(Question).filter(Question.id.in_(ids)).all()


def to_definition(question: Question) -> QuestionDefinition:
    """Project a catalog row onto what the scoring engine needs."""
    return QuestionDefinition(
        id=str(question.id),
        kind=question.kind,
        marks=question.marks if question.marks is not None else 0,
        neg_marks=question.neg_marks if question.neg_marks is not None else 0,
        answer_key=parse_answer_key(question.kind, question.correct),
        subject_id=question.subject_id,
    )


def resolve_questions(
    db: Session, question_ids: Iterable[str]
) -> List[QuestionDefinition]:
    """
    Resolve question definitions for scoring.

    Missing references are simply absent from the result; the scorer counts
    their responses as skipped.
    """
    return [to_definition(q) for q in fetch_questions(db, question_ids)]


def find_missing_questions(db: Session, question_ids: Sequence[str]) -> List[str]:
    """
    Return the references that do not exist as active catalog questions.

    Args:
        db: Database session
        question_ids: References to validate

    Returns:
        Missing references in their original order (deduplicated)
    """
    ids = _unique_ids(question_ids)
    if not ids:
        return []
    found = {
        str(row[0])
        for row in db.query(Question.id)
        .filter(Question.id.in_(ids), Question.is_active.is_(True))
        .all()
    }
    missing = [qid for qid in ids if qid not in found]
    if missing:
        logger.info(f"{len(missing)} of {len(ids)} question references not in catalog")
    return missing
