"""
Best-effort execution for secondary work.

Some writes must never undo or block the primary operation: the analytics
row appended after an evaluation is the main example. ``graceful_failure``
logs whatever such a block raises and lets the caller carry on.

Compare ``db_error_handling.handle_db_error``, which rolls back and
re-raises because the surrounding operation cannot succeed without it.

Usage:
    with graceful_failure("write analytics snapshot", logger,
                          log_level=logging.ERROR, exc_info=True,
                          context={"session_id": exam_session.id}):
        record_test_analytics(db, exam_session, evaluation)
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Optional


@contextmanager
def graceful_failure(
    operation_name: str,
    logger: logging.Logger,
    *,
    log_level: int = logging.WARNING,
    exc_info: bool = False,
    context: Optional[dict[str, Any]] = None,
) -> Generator[None, None, None]:
    """Run the block, logging and swallowing any ``Exception`` it raises.

    The block is responsible for its own cleanup (e.g. rolling back a
    separate transaction) before the exception reaches this manager.
    ``BaseException`` subclasses such as ``KeyboardInterrupt`` propagate.

    Args:
        operation_name: Short description used as "Failed to <operation_name>".
        logger: Logger that receives the failure record.
        log_level: Level of the failure record (default WARNING).
        exc_info: Attach the traceback to the record.
        context: Key/value pairs rendered into the message.
    """
    try:
        yield
    except Exception as e:
        detail = ""
        if context:
            detail = " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"
        logger.log(log_level, f"Failed to {operation_name}{detail}: {e}", exc_info=exc_info)
