"""Retry scheduling for HTTP 429 responses.

A call that fails with status 429 is retried after the delay announced by the
server's ``Ratelimit-Reset`` header. Calls to the same endpoint are
serialized so a retried call never races a freshly issued one; calls to
different endpoints proceed independently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

from ..constants import RATE_LIMIT_FALLBACK_DELAY, RATE_LIMIT_MAX_RETRIES
from ..errors.internal import QueryError, RateLimitContext, RateLimitError
from ..logs.logger import logger
from .rate_limit_headers import parse_reset_epoch

T = TypeVar("T")


@dataclass
class RateLimitState:
    endpoint: str
    reset_epoch: float | None = None
    retries: int = 0
    max_retries: int = RATE_LIMIT_MAX_RETRIES


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, QueryError) and exc.status == 429


class RetryScheduler:
    def __init__(
        self,
        max_retries: int = RATE_LIMIT_MAX_RETRIES,
        *,
        fallback_delay: float = RATE_LIMIT_FALLBACK_DELAY,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.max_retries = max_retries
        self.fallback_delay = fallback_delay
        self._clock = clock
        self._sleep = sleep
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, endpoint: str) -> asyncio.Lock:
        lock = self._locks.get(endpoint)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[endpoint] = lock
        return lock

    def compute_delay(self, reset_epoch: float | None) -> float:
        """Seconds to wait until ``reset_epoch``, clamped to zero."""
        if reset_epoch is None:
            return self.fallback_delay
        return max(0.0, reset_epoch - self._clock())

    async def run(self, operation: Callable[[], Awaitable[T]], *, endpoint: str) -> T:
        """Run ``operation``, retrying it after each HTTP 429 until it resolves.

        Raises:
            RateLimitError: When 429 responses outlast ``max_retries`` retries.
        """
        state = RateLimitState(endpoint=endpoint, max_retries=self.max_retries)

        def _wait(retry_state: RetryCallState) -> float:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            if isinstance(exc, QueryError):
                state.reset_epoch = parse_reset_epoch(exc.headers)
            return self.compute_delay(state.reset_epoch)

        def _before_sleep(retry_state: RetryCallState) -> None:
            state.retries += 1
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.log_event(
                "helix",
                "rate_limited",
                level=logging.WARNING,
                endpoint=endpoint,
                wait_time=round(delay, 3),
                attempt=state.retries,
                max_retries=state.max_retries,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=_wait,
            retry=retry_if_exception(_is_rate_limited),
            before_sleep=_before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        async with self._lock_for(endpoint):
            try:
                return await retrying(operation)
            except QueryError as e:
                if not _is_rate_limited(e):
                    raise
                state.reset_epoch = parse_reset_epoch(e.headers)
                logger.log_event(
                    "helix",
                    "rate_limit_exhausted",
                    level=logging.ERROR,
                    endpoint=endpoint,
                    retries=state.retries,
                )
                raise RateLimitError(
                    f"Rate limit retries exhausted for {endpoint}",
                    context=RateLimitContext(
                        endpoint=endpoint,
                        retries=state.retries,
                        reset_epoch=state.reset_epoch,
                    ),
                ) from e


__all__ = ["RateLimitState", "RetryScheduler"]
