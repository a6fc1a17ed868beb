"""
Transaction Runner
==================

Runs a unit of work in its own session and transaction with a bounded
wait for a connection and a bounded total execution time.

States a unit of work can end in:
- committed
- rolled back, error propagated (semantic errors, constraint errors)
- rolled back, TransactionConflictError (serialization failure / deadlock / lock busy)
- rolled back, TransactionTimeoutError (max wait or timeout exceeded)

Conflicts are infrastructure failures and are safe to retry with backoff;
see `retrying_conflicts`.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SERIALIZABLE = "SERIALIZABLE"

# SQLSTATE serialization_failure and deadlock_detected
CONFLICT_SQLSTATES = {"40001", "40P01"}
CONFLICT_MESSAGES = ("database is locked", "could not serialize access", "deadlock detected")

UNIQUE_VIOLATION_SQLSTATE = "23505"
UNIQUE_VIOLATION_MESSAGES = ("unique constraint", "duplicate key value")


class TransactionError(Exception):
    """Infrastructure failure of a unit of work; never a semantic outcome."""

    code = "TRANSACTION_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TransactionConflictError(TransactionError):
    """The store aborted the transaction because of a concurrent one. Retryable."""

    code = "TRANSACTION_CONFLICT"


class TransactionTimeoutError(TransactionError):
    """The transaction waited or ran longer than allowed and was rolled back."""

    code = "TRANSACTION_TIMEOUT"


def is_transaction_conflict(exc: BaseException) -> bool:
    """True when a driver error signals a serialization conflict."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in CONFLICT_SQLSTATES:
        return True
    text = str(orig).lower()
    return any(marker in text for marker in CONFLICT_MESSAGES)


def is_unique_violation(exc: BaseException) -> bool:
    """True when a driver error signals a duplicate key."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return True
    text = str(orig).lower()
    return any(marker in text for marker in UNIQUE_VIOLATION_MESSAGES)


async def run_in_transaction(
    session_factory: async_sessionmaker,
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    isolation_level: Optional[str] = None,
    max_wait: float,
    timeout: float,
) -> T:
    """
    Execute `work(session)` and commit, all-or-nothing.

    Args:
        session_factory: Session factory bound to the target engine
        work: Coroutine function doing the statements of the unit of work
        isolation_level: e.g. SERIALIZABLE; None keeps the engine default
        max_wait: Seconds allowed to acquire a connection
        timeout: Seconds allowed for the statements plus the commit

    Returns:
        Whatever `work` returned
    """
    async with session_factory() as session:
        execution_options = {"isolation_level": isolation_level} if isolation_level else {}
        try:
            try:
                await asyncio.wait_for(
                    session.connection(execution_options=execution_options),
                    timeout=max_wait,
                )
            except asyncio.TimeoutError as exc:
                raise TransactionTimeoutError(
                    f"Could not acquire a database connection within {max_wait}s"
                ) from exc

            async def _work_and_commit() -> T:
                result = await work(session)
                await session.commit()
                return result

            try:
                return await asyncio.wait_for(_work_and_commit(), timeout=timeout)
            except asyncio.TimeoutError as exc:
                raise TransactionTimeoutError(
                    f"Transaction exceeded {timeout}s and was rolled back"
                ) from exc

        except DBAPIError as exc:
            await session.rollback()
            if is_transaction_conflict(exc):
                raise TransactionConflictError(f"Transaction conflict: {exc.orig}") from exc
            raise
        except Exception:
            await session.rollback()
            raise


def retrying_conflicts(attempts: int, wait_min: float, wait_max: float) -> AsyncRetrying:
    """Bounded exponential backoff over TransactionConflictError only."""
    return AsyncRetrying(
        retry=retry_if_exception_type(TransactionConflictError),
        wait=wait_exponential(multiplier=wait_min, min=wait_min, max=wait_max),
        stop=stop_after_attempt(attempts),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
