"""Content-addressed caching decorator for a review oracle."""

from __future__ import annotations

import hashlib
import json
import logging

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from diffsage.application.run_review import ReviewOracle
from diffsage.domain.review.entities import Finding, ReviewFile
from diffsage.domain.review.value_objects import ReviewSummary
from diffsage.infrastructure.cache.lru_cache import LRUCache

logger = logging.getLogger(__name__)

_FINDINGS = "findings"


def files_fingerprint(operation: str, files: Sequence[ReviewFile]) -> str:
    """SHA-256 over the operation name and every file's path, content and diff."""
    digest = hashlib.sha256(operation.encode())
    for f in files:
        for part in (f.path, f.full_content, f.unified_diff):
            digest.update(b"\0")
            digest.update(part.encode())
    return f"{operation}:{digest.hexdigest()}"


def findings_fingerprint(findings: Sequence[Finding]) -> str:
    """SHA-256 over the canonical JSON of the findings."""
    canonical = json.dumps([f.to_payload() for f in findings], sort_keys=True)
    return f"summary:{hashlib.sha256(canonical.encode()).hexdigest()}"


@dataclass
class CachingOracle:
    """Serves repeated requests for identical input from an LRU cache.

    Only successful results are stored. A stream that runs to completion
    stores its findings under the same key as the batch call, so either one
    can answer the other later.
    """

    inner: ReviewOracle
    cache: LRUCache[Any] = field(default_factory=LRUCache)

    async def title(self, files: Sequence[ReviewFile]) -> str:
        return await self._cached(
            files_fingerprint("title", files), lambda: self.inner.title(files)
        )

    async def objective(self, files: Sequence[ReviewFile]) -> str:
        return await self._cached(
            files_fingerprint("objective", files), lambda: self.inner.objective(files)
        )

    async def walkthrough(self, files: Sequence[ReviewFile]) -> str:
        return await self._cached(
            files_fingerprint("walkthrough", files),
            lambda: self.inner.walkthrough(files),
        )

    async def findings_batch(self, files: Sequence[ReviewFile]) -> list[Finding]:
        key = files_fingerprint(_FINDINGS, files)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return list(cached)
        findings = await self.inner.findings_batch(files)
        self.cache.set(key, tuple(findings))
        return findings

    async def findings_stream(self, files: Sequence[ReviewFile]) -> AsyncIterator[Finding]:
        key = files_fingerprint(_FINDINGS, files)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            for finding in cached:
                yield finding
            return

        collected: list[Finding] = []
        async for finding in self.inner.findings_stream(files):
            collected.append(finding)
            yield finding
        self.cache.set(key, tuple(collected))

    async def summary(self, findings: Sequence[Finding]) -> ReviewSummary:
        return await self._cached(
            findings_fingerprint(findings), lambda: self.inner.summary(findings)
        )

    async def _cached[T](self, key: str, call: Callable[[], Awaitable[T]]) -> T:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached
        value = await call()
        self.cache.set(key, value)
        return value
