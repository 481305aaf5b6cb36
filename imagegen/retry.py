# imagegen/retry.py

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from .errors import PlatformTimeout, TransportFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """
    Transport failures are retried. Timeouts against the execution ceiling are
    not: a second attempt would only burn the remaining budget. Refusals are
    returned as values and never reach this predicate.
    """
    return isinstance(exc, TransportFailure) and not isinstance(exc, PlatformTimeout)


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    backoff: float = 2.0  # seconds, multiplied by the failed attempt number
    retry_on: Callable[[BaseException], bool] = is_retryable
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def delay_for(self, attempt: int) -> float:
        return attempt * self.backoff

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "call") -> T:
        attempt = 1
        while True:
            try:
                return await operation()
            except Exception as e:
                if attempt >= self.max_attempts or not self.retry_on(e):
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "[Retry] %s failed (attempt %d/%d): %s; retrying in %.1fs",
                    label, attempt, self.max_attempts, e, delay,
                )
                await self.sleep(delay)
                attempt += 1
