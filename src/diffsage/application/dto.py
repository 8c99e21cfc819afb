"""Application-layer command and result DTOs."""

from __future__ import annotations

from dataclasses import dataclass

from diffsage.domain.review.entities import ReviewFile
from diffsage.shared.types import ClientId, ReviewId

# =============================================================================
# ADMISSION
# =============================================================================


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate-limit check for one request."""

    allowed: bool
    remaining: int
    reset_in_seconds: float
    retry_after: float = 0.0


# =============================================================================
# START REVIEW
# =============================================================================


@dataclass(frozen=True)
class StartReviewCommand:
    """Command to start reviewing a set of changed files."""

    review_id: ReviewId
    client_id: ClientId
    files: tuple[ReviewFile, ...]


@dataclass(frozen=True)
class StartReviewResult:
    """Acknowledgment returned as soon as the review is scheduled."""

    review_id: ReviewId
    message: str
    remaining_requests: int | None = None
    reset_in_seconds: float | None = None


# =============================================================================
# STOP REVIEW
# =============================================================================


@dataclass(frozen=True)
class StopReviewCommand:
    """Command to stop a running review."""

    review_id: ReviewId


@dataclass(frozen=True)
class StopReviewResult:
    """Whether a running review was found and stopped."""

    review_id: ReviewId
    stopped: bool
    message: str
