"""
Exponential backoff with jitter for calls that can be rate limited.

Only failures recognised by the classifier are retried; anything else
propagates on the first attempt.
"""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from authentik.services.errors import RateLimitedError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_MARKERS = ("RESOURCE_EXHAUSTED", "429", "Too Many Requests")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    initial_delay: float = 2.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    jitter: float = 1.0

    def delay_for(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        base = self.initial_delay * (self.multiplier ** (attempt - 1))
        return min(base + rand() * self.jitter, self.max_delay)


def is_rate_limited_error(error: BaseException) -> bool:
    if isinstance(error, RateLimitedError):
        return True

    status_code = getattr(error, "status_code", None) or getattr(error, "code", None)
    response = getattr(error, "response", None)
    if status_code is None and response is not None:
        status_code = getattr(response, "status_code", None)
    if status_code == 429:
        return True

    message = str(error)
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    operation_name: str,
    is_rate_limited: Callable[[BaseException], bool] = is_rate_limited_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    last_error: BaseException | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except Exception as error:
            if not is_rate_limited(error):
                raise
            last_error = error

        if attempt == policy.max_attempts:
            break

        wait = policy.delay_for(attempt, rand)
        logger.warning(
            "%s rate limited (attempt %d/%d), retrying in %.1fs",
            operation_name,
            attempt,
            policy.max_attempts,
            wait,
        )
        await sleep(wait)

    raise RetryExhaustedError(operation_name, policy.max_attempts) from last_error
