"""
Question order generation for new exam sessions.

The order is computed once, when a session is created, and is never
recomputed. It is always a permutation of the test's question pool unless
the caller supplies an explicit order, which is used as-is.
"""
import logging
import random
import uuid
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

# Length of the opaque audit seed stored when the caller doesn't supply one
RANDOM_SEED_LENGTH = 12


def generate_random_seed() -> str:
    """Return an opaque seed string recorded on the session for auditing."""
    return uuid.uuid4().hex[:RANDOM_SEED_LENGTH]


def generate_question_order(
    question_pool: Sequence[str],
    allow_randomize: bool,
    explicit_order: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """
    Derive the ordered question references for a new session.

    Precedence:
    1. A non-empty explicit_order is returned unchanged (deterministic replays).
    2. allow_randomize=True applies a uniform Fisher-Yates shuffle to the pool.
    3. Otherwise the pool order is kept.

    Args:
        question_pool: The test's pool of question references.
        allow_randomize: Whether the test permits shuffling.
        explicit_order: Optional caller-supplied order.
        rng: Optional Random instance; pass a seeded one for reproducible
            shuffles. Defaults to the module-level generator.

    Returns:
        A new list; the input pool is never mutated.
    """
    if explicit_order:
        return list(explicit_order)

    order = list(question_pool)
    if allow_randomize and len(order) > 1:
        (rng or random).shuffle(order)
        logger.debug(f"Shuffled question pool of {len(order)} items")

    return order


def rng_for_seed(seed: Optional[str]) -> Optional[random.Random]:
    """A seeded generator when the caller supplied a seed, else None."""
    if seed is None:
        return None
    return random.Random(seed)
