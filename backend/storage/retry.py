# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Retry combinator for storage calls.

``retry`` re-executes a closure while it fails with a *transient* error
(dropped connection, pool hiccup), waiting
``initial_delay + attempt_index * delay_increment`` seconds between
attempts.  Any other error, or the last transient one, propagates as-is.

Cancellation of the surrounding task (client disconnect, shutdown) aborts
the pending wait immediately with ``asyncio.CancelledError``.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar, Union

from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError

from core.logger import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 4          # total attempts, first call included
    initial_delay: float = 0.005   # seconds
    delay_increment: float = 0.003  # seconds added per further attempt

    def delay(self, attempt_index: int) -> float:
        return self.initial_delay + attempt_index * self.delay_increment

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            initial_delay=settings.retry_initial_delay_ms / 1000,
            delay_increment=settings.retry_delay_increment_ms / 1000,
        )


def is_transient(exc: BaseException) -> bool:
    """Default predicate: connection-class failures reported by SQLAlchemy."""
    if isinstance(exc, DisconnectionError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, OperationalError)


async def retry(
    policy: RetryPolicy,
    fn: Callable[[], Union[T, Awaitable[T]]],
    *,
    is_transient: Callable[[BaseException], bool] = is_transient,
) -> T:
    """
    Call *fn* until it succeeds, fails with a non-transient error, or the
    policy runs out of attempts.  *fn* may be a plain or a coroutine
    function; closures returning ``None`` work the same way.
    """
    attempt = 0
    while True:
        try:
            result = fn()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as exc:
            attempt += 1
            if attempt >= policy.max_attempts or not is_transient(exc):
                raise
            delay = policy.delay(attempt - 1)
            logger.warning("transient storage error (attempt %d/%d), retrying in %.3fs: %s",
                           attempt, policy.max_attempts, delay, exc)

        await asyncio.sleep(delay)
