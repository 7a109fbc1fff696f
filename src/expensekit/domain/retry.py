"""Bounded retry of atomic units that lose a concurrency race."""

import logging
from typing import Callable, TypeVar

from tenacity import (
    Retrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expensekit.database.base import Database
from expensekit.domain.errors import ConcurrencyConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    logger.debug(
        "Concurrency conflict, retrying unit of work",
        extra={"attempt": retry_state.attempt_number},
    )


def run_atomic(db: Database, work: Callable[[], T], attempts: int = 3) -> T:
    """Run ``work`` inside ``db.atomic()``, retrying concurrency conflicts.

    Each attempt starts a fresh unit, so ``work`` must re-read whatever it
    checks. Business errors propagate on the first attempt.

    Args:
        db: Database instance
        work: Callable doing the reads and writes of one unit
        attempts: Maximum number of attempts

    Returns:
        Whatever ``work`` returns

    Raises:
        ConcurrencyConflictError: If every attempt hit a conflict
    """
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.01, max=0.2),
        retry=retry_if_exception_type(ConcurrencyConflictError),
        before_sleep=_log_retry,
        reraise=True,
    )
    try:
        for attempt in retrying:
            with attempt:
                with db.atomic():
                    return work()
    except ConcurrencyConflictError:
        logger.warning("Concurrency conflict persisted after %d attempts", attempts)
        raise
