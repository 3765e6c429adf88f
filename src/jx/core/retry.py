"""Bounded exponential backoff for network operations.

Only ``NetworkError`` with ``transient=True`` is retried. ``NotFoundError``
and ``IntegrityError`` are permanent and propagate on the first attempt.
When the budget is spent the last error is re-raised with ``attempts`` set
to the number of tries made.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from jx.exceptions import NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS: int = 3
DEFAULT_BASE_DELAY: float = 0.5
DEFAULT_MAX_DELAY: float = 8.0


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for transient network failures.

    Attributes:
        attempts: Total tries, including the first one (>= 1).
        base_delay: Delay before the second try, in seconds; doubles after
            every further failure.
        max_delay: Upper bound for a single delay.
    """

    attempts: int = DEFAULT_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY

    def delay(self, failed_attempts: int) -> float:
        """Delay after *failed_attempts* consecutive failures."""
        return min(self.base_delay * (2 ** (failed_attempts - 1)), self.max_delay)


async def with_retries(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy = RetryPolicy(),
    describe: str = "",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run *operation*, retrying transient ``NetworkError`` failures.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        policy: Attempt budget and backoff schedule.
        describe: Label for log messages (usually a URL or coordinate).
        sleep: Injected for tests.

    Raises:
        NetworkError: The last transient error after the budget is spent,
            with ``attempts`` updated, or a non-transient one immediately.
    """
    attempts = max(1, policy.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except NetworkError as exc:
            if not exc.transient:
                raise
            if attempt == attempts:
                exc.attempts = attempt
                exc.message = f"{exc.message} (gave up after {attempt} attempts)"
                raise
            delay = policy.delay(attempt)
            logger.warning(
                "Attempt %d/%d failed for %s: %s; retrying in %.1fs",
                attempt, attempts, describe or "request", exc.message, delay,
            )
            await sleep(delay)
    raise AssertionError("unreachable")  # pragma: no cover
