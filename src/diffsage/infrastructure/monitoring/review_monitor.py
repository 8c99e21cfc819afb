"""In-memory review lifecycle metrics."""

from __future__ import annotations

import logging
import time

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from diffsage.domain.review.entities import ReviewSession
from diffsage.shared.types import ClientId, ReviewId, TerminalStatus

logger = logging.getLogger(__name__)


@dataclass
class _ActiveReview:
    client_id: ClientId
    file_count: int
    started_at: float


@dataclass
class ReviewMonitor:
    """Tracks active reviews and running totals per terminal status."""

    clock: Callable[[], float] = time.monotonic
    _active: dict[ReviewId, _ActiveReview] = field(default_factory=dict, init=False)
    _totals: Counter[TerminalStatus] = field(default_factory=Counter, init=False)
    _failure_reasons: Counter[str] = field(default_factory=Counter, init=False)
    _started: int = field(default=0, init=False)
    _total_duration: float = field(default=0.0, init=False)
    _total_files: int = field(default=0, init=False)
    _total_findings: int = field(default=0, init=False)
    _rejected: Counter[str] = field(default_factory=Counter, init=False)

    def review_started(self, session: ReviewSession) -> None:
        self._active[session.review_id] = _ActiveReview(
            client_id=session.client_id,
            file_count=len(session.files),
            started_at=self.clock(),
        )
        self._started += 1

    def review_finished(
        self,
        review_id: ReviewId,
        status: TerminalStatus,
        finding_count: int,
        reason: str | None = None,
    ) -> None:
        review = self._active.pop(review_id, None)
        if review is None:
            logger.debug("Monitor: review %s finished without being started", review_id)
            return
        self._totals[status] += 1
        self._total_duration += self.clock() - review.started_at
        self._total_files += review.file_count
        self._total_findings += finding_count
        if reason is not None:
            self._failure_reasons[reason] += 1

    def review_rejected(self, client_id: ClientId, code: str) -> None:
        """Count a request that failed admission, keyed by rejection code."""
        self._rejected[code] += 1
        logger.debug("Monitor: rejected request from %s (%s)", client_id, code)

    @property
    def active_count(self) -> int:
        return len(self._active)

    def snapshot(self) -> dict[str, Any]:
        finished = sum(self._totals.values())
        return {
            "started": self._started,
            "rejected": dict(self._rejected),
            "active": len(self._active),
            "completed": self._totals[TerminalStatus.COMPLETED],
            "failed": self._totals[TerminalStatus.FAILED],
            "cancelled": self._totals[TerminalStatus.CANCELLED],
            "average_duration_seconds": (
                self._total_duration / finished if finished else 0.0
            ),
            "average_file_count": self._total_files / finished if finished else 0.0,
            "average_finding_count": (
                self._total_findings / finished if finished else 0.0
            ),
            "failure_reasons": dict(self._failure_reasons),
        }
