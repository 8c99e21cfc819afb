"""Retry-with-backoff decorator for a review oracle."""

from __future__ import annotations

import asyncio
import logging

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from diffsage.application.run_review import ReviewOracle
from diffsage.domain.review.entities import Finding, ReviewFile
from diffsage.domain.review.value_objects import ReviewSummary
from diffsage.shared.constants import (
    DEFAULT_RETRY_BACKOFF_MULTIPLIER,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    DEFAULT_RETRY_LIMIT,
    DEFAULT_RETRY_MAX_DELAY_SECONDS,
)
from diffsage.shared.exceptions import (
    OracleExhaustedError,
    OracleOverloadedError,
    StreamTerminatedEarlyError,
    TransientOracleError,
)

logger = logging.getLogger(__name__)

type Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff settings."""

    max_retries: int = DEFAULT_RETRY_LIMIT
    base_delay: float = DEFAULT_RETRY_BASE_DELAY_SECONDS
    max_delay: float = DEFAULT_RETRY_MAX_DELAY_SECONDS
    multiplier: float = DEFAULT_RETRY_BACKOFF_MULTIPLIER

    def delay_for(self, retry: int) -> float:
        """Delay before the given retry (0-based), capped at ``max_delay``."""
        return min(self.base_delay * self.multiplier**retry, self.max_delay)


@dataclass
class RetryingOracle:
    """Retries retryable ``TransientOracleError`` failures of a wrapped oracle.

    Request/response calls are retried with exponential backoff and end in
    ``OracleExhaustedError`` (``OracleOverloadedError`` when the model was
    overloaded on the last attempt). Streams cannot be restarted: a failure
    at any point is raised as ``StreamTerminatedEarlyError``.
    """

    inner: ReviewOracle
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Sleeper = asyncio.sleep

    async def title(self, files: Sequence[ReviewFile]) -> str:
        return await self._call("title", lambda: self.inner.title(files))

    async def objective(self, files: Sequence[ReviewFile]) -> str:
        return await self._call("objective", lambda: self.inner.objective(files))

    async def walkthrough(self, files: Sequence[ReviewFile]) -> str:
        return await self._call("walkthrough", lambda: self.inner.walkthrough(files))

    async def findings_batch(self, files: Sequence[ReviewFile]) -> list[Finding]:
        return await self._call(
            "findings_batch", lambda: self.inner.findings_batch(files)
        )

    async def findings_stream(self, files: Sequence[ReviewFile]) -> AsyncIterator[Finding]:
        received = 0
        try:
            async for finding in self.inner.findings_stream(files):
                received += 1
                yield finding
        except StreamTerminatedEarlyError:
            raise
        except Exception as e:
            raise StreamTerminatedEarlyError(received, str(e)) from e

    async def summary(self, findings: Sequence[Finding]) -> ReviewSummary:
        return await self._call("summary", lambda: self.inner.summary(findings))

    async def _call[T](self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        attempts = self.policy.max_retries + 1
        attempt = 1
        while True:
            try:
                return await call()
            except TransientOracleError as e:
                if not e.retryable or attempt >= attempts:
                    raise _exhausted(operation, attempt, e) from e
                delay = self.policy.delay_for(attempt - 1)
                logger.warning(
                    "Oracle %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    operation,
                    attempt,
                    attempts,
                    delay,
                    e.reason,
                )
                await self.sleep(delay)
                attempt += 1


def _exhausted(
    operation: str, attempts: int, error: TransientOracleError
) -> OracleExhaustedError:
    if error.overloaded:
        return OracleOverloadedError(operation, attempts, error.reason)
    return OracleExhaustedError(operation, attempts, error.reason)
