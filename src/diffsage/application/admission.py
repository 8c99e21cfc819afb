"""Admission use case: accept, schedule, and stop reviews."""

from __future__ import annotations

import asyncio
import logging

from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Protocol

from diffsage.application.dto import (
    RateLimitDecision,
    StartReviewCommand,
    StartReviewResult,
    StopReviewCommand,
    StopReviewResult,
)
from diffsage.application.run_review import (
    EventPublisher,
    ReviewMetricsPort,
    ReviewOracle,
    ReviewOrchestrator,
)
from diffsage.domain.review.entities import ReviewFile, ReviewSession
from diffsage.domain.review.services import DiffHunkIndexer
from diffsage.shared.exceptions import (
    AdmissionError,
    DuplicateReviewError,
    FileValidationError,
    RateLimitExceededError,
)
from diffsage.shared.types import ReviewId, TerminalStatus

logger = logging.getLogger(__name__)

# =============================================================================
# PROTOCOLS
# =============================================================================


class RateLimiterPort(Protocol):
    """Port for per-client request throttling."""

    def check(self, client_id: str) -> RateLimitDecision: ...


class FileValidatorPort(Protocol):
    """Port for validating submitted files before a review starts."""

    def validate(self, files: Sequence[ReviewFile]) -> None: ...


@dataclass
class _ActiveReview:
    orchestrator: ReviewOrchestrator
    task: asyncio.Task[TerminalStatus]


# =============================================================================
# USE CASE
# =============================================================================


@dataclass
class ReviewGateway:
    """Admits review requests and runs each as a detached background task.

    ``start_review`` returns as soon as the task is scheduled; callers never
    await the review itself. Must be called from inside a running event loop.
    """

    oracle: ReviewOracle
    publisher: EventPublisher
    rate_limiter: RateLimiterPort | None = None
    file_validator: FileValidatorPort | None = None
    metrics: ReviewMetricsPort | None = None
    strict_diff_parsing: bool = False
    _active: dict[ReviewId, _ActiveReview] = field(default_factory=dict, init=False)

    @property
    def active_review_ids(self) -> list[ReviewId]:
        return list(self._active)

    def start_review(self, cmd: StartReviewCommand) -> StartReviewResult:
        """Validate and schedule a review.

        Raises:
            DuplicateReviewError: A review with this id is still running.
            RateLimitExceededError: The client is over its quota.
            FileValidationError: The submitted files were rejected.
        """
        try:
            decision = self._admit(cmd)
        except AdmissionError as e:
            if self.metrics is not None:
                self.metrics.review_rejected(cmd.client_id, _rejection_code(e))
            raise

        session = ReviewSession(
            review_id=cmd.review_id,
            client_id=cmd.client_id,
            files=cmd.files,
        )
        orchestrator = ReviewOrchestrator(
            session=session,
            oracle=self.oracle,
            publisher=self.publisher,
            indexer=DiffHunkIndexer(strict=self.strict_diff_parsing),
            metrics=self.metrics,
        )
        task = asyncio.get_running_loop().create_task(
            orchestrator.run(), name=f"review-{cmd.review_id}"
        )
        self._active[cmd.review_id] = _ActiveReview(orchestrator=orchestrator, task=task)
        task.add_done_callback(partial(self._on_done, cmd.review_id))

        logger.info(
            "Accepted review %s for client %s (%d files)",
            cmd.review_id,
            cmd.client_id,
            len(cmd.files),
        )
        return StartReviewResult(
            review_id=cmd.review_id,
            message="Review request received and is being processed.",
            remaining_requests=decision.remaining if decision else None,
            reset_in_seconds=decision.reset_in_seconds if decision else None,
        )

    def stop_review(self, cmd: StopReviewCommand) -> StopReviewResult:
        """Stop a running review; its client receives a Cancelled terminal event."""
        active = self._active.get(cmd.review_id)
        if active is None or not active.orchestrator.request_stop():
            return StopReviewResult(
                review_id=cmd.review_id,
                stopped=False,
                message=f"No active review {cmd.review_id}.",
            )
        return StopReviewResult(
            review_id=cmd.review_id,
            stopped=True,
            message=f"Review process stopped for {cmd.review_id}.",
        )

    async def join(self, review_id: ReviewId) -> TerminalStatus | None:
        """Wait for a review's task to finish; None if it is not active."""
        active = self._active.get(review_id)
        if active is None:
            return None
        return await asyncio.shield(active.task)

    async def shutdown(self) -> None:
        """Cancel every active review and wait for their terminal events."""
        actives = list(self._active.values())
        for active in actives:
            # A task that never ran cannot publish its own terminal event.
            active.orchestrator.request_stop()
            active.task.cancel()
        tasks = [active.task for active in actives]
        if tasks:
            logger.info("Cancelling %d active review(s)", len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)

    def _admit(self, cmd: StartReviewCommand) -> RateLimitDecision | None:
        if cmd.review_id in self._active:
            raise DuplicateReviewError(cmd.review_id)

        decision: RateLimitDecision | None = None
        if self.rate_limiter is not None:
            decision = self.rate_limiter.check(cmd.client_id)
            if not decision.allowed:
                logger.warning(
                    "Rate limit hit for client %s (retry in %.0fs)",
                    cmd.client_id,
                    decision.retry_after,
                )
                raise RateLimitExceededError(cmd.client_id, decision.retry_after)

        if self.file_validator is not None:
            self.file_validator.validate(cmd.files)
        return decision

    def _on_done(self, review_id: ReviewId, task: asyncio.Task[TerminalStatus]) -> None:
        active = self._active.get(review_id)
        if active is not None and active.task is task:
            del self._active[review_id]
            if task.cancelled():
                active.orchestrator.request_stop()
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Review %s task crashed", review_id, exc_info=error)


def _rejection_code(error: AdmissionError) -> str:
    if isinstance(error, FileValidationError):
        return error.code
    if isinstance(error, RateLimitExceededError):
        return "RATE_LIMITED"
    if isinstance(error, DuplicateReviewError):
        return "DUPLICATE_REVIEW"
    return "REJECTED"
