"""Run Review use case: the per-session state machine."""

from __future__ import annotations

import asyncio
import logging
import time

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from diffsage.domain.review.entities import Finding, ReviewFile, ReviewSession
from diffsage.domain.review.events import EventKind, ReviewEvent
from diffsage.domain.review.services import (
    CommentClassifier,
    DiffHunkIndexer,
    SuggestionPatcher,
)
from diffsage.domain.review.value_objects import AnnotatedFinding, ReviewSummary
from diffsage.shared.constants import (
    DEFAULT_FAILURE_MESSAGE,
    OVERLOADED_FAILURE_MESSAGE,
)
from diffsage.shared.exceptions import DiffsageError, OracleOverloadedError
from diffsage.shared.types import (
    ClientId,
    FindingSource,
    ReviewId,
    SessionStage,
    TerminalStatus,
)

logger = logging.getLogger(__name__)

# =============================================================================
# PROTOCOLS
# =============================================================================


class ReviewOracle(Protocol):
    """Port for the model integration that produces review content.

    Every call may fail independently. Callers see only success or a final
    failure; retries happen behind this port.
    """

    async def title(self, files: Sequence[ReviewFile]) -> str: ...

    async def objective(self, files: Sequence[ReviewFile]) -> str: ...

    async def walkthrough(self, files: Sequence[ReviewFile]) -> str: ...

    async def findings_batch(self, files: Sequence[ReviewFile]) -> list[Finding]: ...

    def findings_stream(self, files: Sequence[ReviewFile]) -> AsyncIterator[Finding]:
        """Finite, non-restartable sequence that may fail mid-way."""
        ...

    async def summary(self, findings: Sequence[Finding]) -> ReviewSummary: ...


class EventPublisher(Protocol):
    """Port for delivering review events to subscribers."""

    def publish(self, event: ReviewEvent) -> int:
        """Deliver the event; returns how many subscribers received it."""
        ...


class ReviewMetricsPort(Protocol):
    """Port for recording review lifecycle metrics."""

    def review_started(self, session: ReviewSession) -> None: ...

    def review_finished(
        self,
        review_id: ReviewId,
        status: TerminalStatus,
        finding_count: int,
        reason: str | None = None,
    ) -> None: ...

    def review_rejected(self, client_id: ClientId, code: str) -> None: ...


# =============================================================================
# PROGRESS MESSAGES
# =============================================================================

PROGRESS_TITLE = "Generating a title for your review..."
PROGRESS_OBJECTIVE = "Formulating the objective..."
PROGRESS_WALKTHROUGH = "Preparing a walkthrough..."
PROGRESS_REVIEW = "Reviewing the changes..."
PROGRESS_SUMMARY = "Generating a summary of the review..."


class _StopObserved(Exception):
    """Raised at a suspension point once the session is no longer running."""


def describe_failure(error: BaseException) -> str:
    """Client-facing message for a failed review."""
    if isinstance(error, OracleOverloadedError):
        return OVERLOADED_FAILURE_MESSAGE
    return DEFAULT_FAILURE_MESSAGE


# =============================================================================
# USE CASE
# =============================================================================


@dataclass
class ReviewOrchestrator:
    """Drives one review session from Initializing to a terminal stage.

    Stages:
    1. Initializing: announce the session
    2. Summarizing: title, objective, walkthrough (each best-effort)
    3. Reviewing: stream findings, falling back once to the batch call
    4. Finalizing: classify findings, then summarize them
    5. Completed / Failed / Cancelled: exactly one terminal event

    A stop request ends the session immediately with a Cancelled terminal
    event; the running coroutine notices at its next suspension point and
    exits without emitting anything else.
    """

    session: ReviewSession
    oracle: ReviewOracle
    publisher: EventPublisher
    indexer: DiffHunkIndexer = field(default_factory=DiffHunkIndexer)
    classifier: CommentClassifier = field(default_factory=CommentClassifier)
    patcher: SuggestionPatcher = field(default_factory=SuggestionPatcher)
    metrics: ReviewMetricsPort | None = None
    _stop_requested: bool = field(default=False, init=False)
    _finding_count: int = field(default=0, init=False)
    _started: float = field(default_factory=time.monotonic, init=False)
    _metrics_started: bool = field(default=False, init=False)

    @property
    def review_id(self) -> ReviewId:
        return self.session.review_id

    def request_stop(self) -> bool:
        """Cancel the session. Returns False if it had already finished."""
        if self.session.is_terminal:
            return False
        self._stop_requested = True
        logger.info("Review %s: stop requested", self.review_id)
        self._finish(TerminalStatus.CANCELLED)
        return True

    async def run(self) -> TerminalStatus:
        """Execute the session; never raises except on task cancellation."""
        if self.session.is_terminal:
            logger.info(
                "Review %s: already %s, not starting", self.review_id, self.session.stage
            )
            return TerminalStatus(self.session.stage.value)
        self._started = time.monotonic()
        files = self.session.files
        logger.info(
            "Review %s: starting for client %s (%d files, %d chars)",
            self.review_id,
            self.session.client_id,
            len(files),
            self.session.total_size,
        )
        self._record_started()

        try:
            self._checkpoint()
            self._emit(
                EventKind.SESSION_STATE_CHANGED,
                {"stage": SessionStage.INITIALIZING.value, "file_count": len(files)},
            )

            self._advance(SessionStage.SUMMARIZING)
            await self._summarize()

            self._advance(SessionStage.REVIEWING)
            findings = await self._review()

            self._advance(SessionStage.FINALIZING)
            await self._finalize(findings)

            self._checkpoint()
            self._finish(TerminalStatus.COMPLETED)
        except _StopObserved:
            logger.info("Review %s: exiting after stop", self.review_id)
        except asyncio.CancelledError:
            self._finish(TerminalStatus.CANCELLED)
            raise
        except DiffsageError as e:
            logger.error("Review %s failed: %s", self.review_id, e)
            self._finish(TerminalStatus.FAILED, reason=describe_failure(e))
        except Exception as e:
            logger.exception("Review %s: unexpected error", self.review_id)
            self._finish(TerminalStatus.FAILED, reason=describe_failure(e))

        return TerminalStatus(self.session.stage.value)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def _summarize(self) -> None:
        """Title, objective and walkthrough; a failed call is skipped."""
        files = self.session.files
        steps = (
            (PROGRESS_TITLE, EventKind.TITLE_READY, "title", self.oracle.title),
            (
                PROGRESS_OBJECTIVE,
                EventKind.OBJECTIVE_READY,
                "objective",
                self.oracle.objective,
            ),
            (
                PROGRESS_WALKTHROUGH,
                EventKind.WALKTHROUGH_READY,
                "walkthrough",
                self.oracle.walkthrough,
            ),
        )
        for message, kind, key, call in steps:
            self._checkpoint()
            self._emit(EventKind.THINKING_PROGRESS, {"message": message})
            try:
                text = await call(files)
            except Exception as e:
                self._checkpoint()
                logger.warning(
                    "Review %s: could not generate %s, continuing without it: %s",
                    self.review_id,
                    key,
                    e,
                )
                continue
            self._checkpoint()
            self._emit(kind, {key: text})

    async def _review(self) -> list[AnnotatedFinding]:
        """Consume the findings stream, or fall back to the batch call."""
        self._emit(EventKind.THINKING_PROGRESS, {"message": PROGRESS_REVIEW})
        streamed: list[AnnotatedFinding] = []
        stream = self.oracle.findings_stream(self.session.files)
        while True:
            # Only failures of the stream itself trigger the fallback.
            try:
                finding = await anext(stream)
            except StopAsyncIteration:
                break
            except Exception as e:
                self._checkpoint()
                logger.warning(
                    "Review %s: findings stream failed after %d item(s), "
                    "falling back to batch: %s",
                    self.review_id,
                    len(streamed),
                    e,
                )
                return await self._fallback(len(streamed), e)

            self._checkpoint()
            item = self._annotate(finding, FindingSource.STREAM)
            streamed.append(item)
            self._emit(EventKind.FINDING_READY, item.to_payload())

        logger.info(
            "Review %s: stream produced %d finding(s)", self.review_id, len(streamed)
        )
        return streamed

    async def _fallback(
        self, streamed_count: int, error: Exception
    ) -> list[AnnotatedFinding]:
        """Replace whatever the stream produced with the batch result."""
        batch = await self.oracle.findings_batch(self.session.files)
        self._checkpoint()

        if streamed_count:
            self._emit(
                EventKind.FINDINGS_RETRACTED,
                {"count": streamed_count, "reason": str(error)},
            )

        items = [self._annotate(f, FindingSource.BATCH) for f in batch]
        for item in items:
            self._emit(EventKind.FINDING_READY, item.to_payload())

        logger.info(
            "Review %s: batch fallback produced %d finding(s), "
            "discarded %d streamed",
            self.review_id,
            len(items),
            streamed_count,
        )
        return items

    async def _finalize(self, findings: list[AnnotatedFinding]) -> None:
        """Classify the accumulated findings, then summarize them."""
        # Bottom-to-top so suggestions can be applied one after another.
        ordered = sorted(findings, key=lambda item: item.finding.start_line, reverse=True)
        self._finding_count = len(ordered)

        changed_lines = self.indexer.index_files(self.session.files)
        categorized = self.classifier.categorize(ordered, changed_lines)
        self._emit(EventKind.CATEGORIZED_RESULT, categorized.to_payload())

        if ordered:
            self._emit(EventKind.THINKING_PROGRESS, {"message": PROGRESS_SUMMARY})
            summary = await self.oracle.summary([item.finding for item in ordered])
            self._checkpoint()
        else:
            summary = ReviewSummary.no_issues()

        self._emit(EventKind.SUMMARY_READY, summary.to_payload())

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _annotate(self, finding: Finding, source: FindingSource) -> AnnotatedFinding:
        patch = self.patcher.patch_finding(finding, self.session.file(finding.path))
        return AnnotatedFinding(finding=finding, patch=patch, source=source)

    def _checkpoint(self) -> None:
        if self._stop_requested or self.session.is_terminal:
            raise _StopObserved

    def _advance(self, stage: SessionStage) -> None:
        self._checkpoint()
        self.session.advance(stage)
        self._emit(EventKind.SESSION_STATE_CHANGED, {"stage": stage.value})

    def _emit(self, kind: EventKind, payload: dict[str, Any]) -> None:
        if self.session.is_terminal:
            logger.debug(
                "Review %s: dropping %s after terminal event", self.review_id, kind
            )
            return
        self._publish(kind, payload)

    def _publish(self, kind: EventKind, payload: dict[str, Any]) -> None:
        logger.debug("Review %s: emitting %s", self.review_id, kind)
        self.publisher.publish(
            ReviewEvent(
                kind=kind,
                payload=payload,
                review_id=self.session.review_id,
                client_id=self.session.client_id,
            )
        )

    def _finish(self, status: TerminalStatus, reason: str | None = None) -> None:
        """Emit the single terminal event; later calls are no-ops."""
        if self.session.is_terminal:
            return
        self.session.advance(SessionStage(status.value))
        ended_at = self.session.ended_at or self.session.started_at

        self._publish(EventKind.SESSION_STATE_CHANGED, {"stage": status.value})
        payload: dict[str, Any] = {"status": status.value, "ended_at": ended_at.isoformat()}
        if reason is not None:
            payload["reason"] = reason
        self._publish(EventKind.SESSION_TERMINAL, payload)

        logger.info(
            "Review %s: %s in %.1fs with %d finding(s)",
            self.review_id,
            status,
            time.monotonic() - self._started,
            self._finding_count,
        )
        self._record_started()
        if self.metrics is not None:
            self.metrics.review_finished(
                self.review_id, status, self._finding_count, reason
            )

    def _record_started(self) -> None:
        """Report the start once, before any finish is reported."""
        if self.metrics is None or self._metrics_started:
            return
        self._metrics_started = True
        self.metrics.review_started(self.session)
