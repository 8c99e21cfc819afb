"""Typed exception hierarchy for diffsage."""

from __future__ import annotations

from diffsage.shared.types import FilePath, ReviewId, SessionStage

# =============================================================================
# BASE
# =============================================================================


class DiffsageError(Exception):
    """Base exception for all diffsage errors."""


# =============================================================================
# ORACLE
# =============================================================================


class OracleError(DiffsageError):
    """An oracle call did not produce a usable result."""


class TransientOracleError(OracleError):
    """A single oracle attempt failed; may succeed on retry."""

    def __init__(
        self,
        operation: str,
        reason: str,
        *,
        retryable: bool = True,
        overloaded: bool = False,
    ) -> None:
        self.operation = operation
        self.reason = reason
        self.retryable = retryable
        self.overloaded = overloaded
        super().__init__(f"Oracle '{operation}' failed: {reason}")


class OracleExhaustedError(OracleError):
    """Retries for an oracle call were exhausted."""

    def __init__(self, operation: str, attempts: int, reason: str) -> None:
        self.operation = operation
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Oracle '{operation}' failed after {attempts} attempt(s): {reason}"
        )


class OracleOverloadedError(OracleExhaustedError):
    """Retries were exhausted while the model reported itself overloaded."""


class StreamTerminatedEarlyError(OracleError):
    """A findings stream failed before it completed."""

    def __init__(self, items_received: int, reason: str) -> None:
        self.items_received = items_received
        self.reason = reason
        super().__init__(
            f"Findings stream terminated after {items_received} item(s): {reason}"
        )


# =============================================================================
# REVIEW
# =============================================================================


class MalformedDiffHunkError(DiffsageError):
    """A hunk header in a file's diff could not be parsed."""

    def __init__(self, path: FilePath, header: str) -> None:
        self.path = path
        self.header = header
        super().__init__(f"Malformed hunk header in {path}: {header!r}")


class InvalidTransitionError(DiffsageError):
    """A review session was asked to move to a stage it cannot reach."""

    def __init__(self, review_id: ReviewId, current: SessionStage, target: SessionStage) -> None:
        self.review_id = review_id
        self.current = current
        self.target = target
        super().__init__(
            f"Review {review_id}: illegal transition {current} -> {target}"
        )


# =============================================================================
# ADMISSION
# =============================================================================


class AdmissionError(DiffsageError):
    """A review request was rejected before a session was created."""


class RateLimitExceededError(AdmissionError):
    """Client exceeded its request quota."""

    def __init__(self, client_id: str, retry_after: float) -> None:
        self.client_id = client_id
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for '{client_id}'. "
            f"Try again in {retry_after:.0f} seconds."
        )


class FileValidationError(AdmissionError):
    """Submitted files failed validation."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)


class DuplicateReviewError(AdmissionError):
    """A review with the same id is already running."""

    def __init__(self, review_id: ReviewId) -> None:
        self.review_id = review_id
        super().__init__(f"Review {review_id} is already in progress")


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigurationError(DiffsageError):
    """Invalid or missing configuration."""


class InvalidRequestError(AdmissionError):
    """A review request payload could not be parsed or validated."""
