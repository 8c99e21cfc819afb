"""Entities for the Review bounded context."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from diffsage.shared.exceptions import InvalidTransitionError
from diffsage.shared.types import (
    ClientId,
    FilePath,
    FindingCategory,
    LineRange,
    ReviewId,
    SessionStage,
)

# =============================================================================
# FILES & FINDINGS
# =============================================================================


@dataclass(frozen=True)
class ReviewFile:
    """A changed file submitted for review: full new content plus its diff."""

    path: FilePath
    full_content: str
    unified_diff: str

    def lines(self) -> list[str]:
        return self.full_content.split("\n")


@dataclass(frozen=True)
class Finding:
    """A single oracle-produced comment anchored to new-file line numbers.

    Line numbers are untrusted: the range may lie outside every hunk, outside
    the file, or even be inverted.
    """

    path: FilePath
    start_line: int
    end_line: int
    body: str
    category: FindingCategory
    replacements: tuple[str, ...] = ()
    implementation_instruction: str | None = None

    @property
    def line_range(self) -> LineRange | None:
        """The inclusive range, or None when the reported range is inverted."""
        if self.start_line > self.end_line:
            return None
        return LineRange(self.start_line, self.end_line)

    @property
    def replacement(self) -> str | None:
        """The proposed replacement text; only the first one is used."""
        if not self.replacements:
            return None
        return self.replacements[0]

    def to_payload(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "start_line": self.start_line,
            "end_line": self.end_line,
            "body": self.body,
            "category": self.category.value,
            "replacements": list(self.replacements),
            "implementation_instruction": self.implementation_instruction,
        }


# =============================================================================
# SESSION
# =============================================================================

_ALLOWED_TRANSITIONS: dict[SessionStage, frozenset[SessionStage]] = {
    SessionStage.INITIALIZING: frozenset(
        {SessionStage.SUMMARIZING, SessionStage.FAILED, SessionStage.CANCELLED}
    ),
    SessionStage.SUMMARIZING: frozenset(
        {SessionStage.REVIEWING, SessionStage.FAILED, SessionStage.CANCELLED}
    ),
    SessionStage.REVIEWING: frozenset(
        {SessionStage.FINALIZING, SessionStage.FAILED, SessionStage.CANCELLED}
    ),
    SessionStage.FINALIZING: frozenset(
        {SessionStage.COMPLETED, SessionStage.FAILED, SessionStage.CANCELLED}
    ),
    SessionStage.COMPLETED: frozenset(),
    SessionStage.FAILED: frozenset(),
    SessionStage.CANCELLED: frozenset(),
}

TERMINAL_STAGES = frozenset(
    {SessionStage.COMPLETED, SessionStage.FAILED, SessionStage.CANCELLED}
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class ReviewSession:
    """One end-to-end review execution for one review id."""

    review_id: ReviewId
    client_id: ClientId
    files: tuple[ReviewFile, ...]
    stage: SessionStage = SessionStage.INITIALIZING
    started_at: datetime = field(default_factory=_utcnow)
    ended_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def advance(self, target: SessionStage) -> None:
        """Move to *target*, enforcing the stage graph.

        Raises:
            InvalidTransitionError: If *target* is not reachable from the
                current stage (including any move out of a terminal stage).
        """
        if target not in _ALLOWED_TRANSITIONS[self.stage]:
            raise InvalidTransitionError(self.review_id, self.stage, target)
        self.stage = target
        if target in TERMINAL_STAGES:
            self.ended_at = _utcnow()

    def file(self, path: FilePath) -> ReviewFile | None:
        """Look up a submitted file by path."""
        for f in self.files:
            if f.path == path:
                return f
        return None

    @property
    def total_size(self) -> int:
        return sum(len(f.full_content) for f in self.files)
