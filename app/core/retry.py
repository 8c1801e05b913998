from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from app.core.errors import ChatError
from app.core.metrics import metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    backoff_ms: int = 1000

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def should_retry(self, exc: BaseException) -> bool:
        return isinstance(exc, ChatError) and exc.retryable

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after the given 1-based failed attempt."""
        return self.backoff_ms * attempt / 1000.0


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    attempt = 0
    while True:
        attempt += 1
        metrics.inc("chat_upstream_attempts_total")
        try:
            return await fn()
        except Exception as exc:
            if attempt >= policy.max_attempts or not policy.should_retry(exc):
                raise
            delay = policy.backoff(attempt)
            logger.warning(
                "upstream attempt %s/%s failed (%s); retrying in %.1fs",
                attempt,
                policy.max_attempts,
                exc,
                delay,
            )
            metrics.inc("chat_upstream_retry_total")
            await sleep(delay)
