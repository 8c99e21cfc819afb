"""Domain-specific types that prevent primitive obsession."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

# =============================================================================
# NEWTYPES
# =============================================================================


class FilePath(str):
    """A path to a source file within a review."""


class ReviewId(str):
    """Identifier of one review session."""


class ClientId(str):
    """Identifier of the client that owns a review and receives its events."""


# =============================================================================
# VALUE OBJECTS
# =============================================================================


@dataclass(frozen=True)
class LineRange:
    """An inclusive range of line numbers within a file."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            msg = f"start ({self.start}) must not exceed end ({self.end})"
            raise ValueError(msg)

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __contains__(self, line: object) -> bool:
        if isinstance(line, int):
            return self.start <= line <= self.end
        return NotImplemented

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))


# =============================================================================
# ENUMS
# =============================================================================


class FindingCategory(StrEnum):
    """What kind of remark the oracle made about the code."""

    BUG = "bug"
    STRUCTURAL_IMPROVEMENT = "structural-improvement"
    STYLE_NIT = "style-nit"
    CONFIRMATION = "confirmation"
    OTHER = "other"


class Bucket(StrEnum):
    """UI-facing classification group for a finding."""

    ASSERTIVE = "assertive"
    ADDITIONAL = "additional"
    OUTSIDE_DIFF_RANGE = "outside_diff_range"
    NITPICK = "nitpick"


class SessionStage(StrEnum):
    """Lifecycle stage of a review session."""

    INITIALIZING = "initializing"
    SUMMARIZING = "summarizing"
    REVIEWING = "reviewing"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TerminalStatus(StrEnum):
    """Final outcome carried by the terminal event."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FindingSource(StrEnum):
    """Which oracle call produced a finding."""

    STREAM = "stream"
    BATCH = "batch"
