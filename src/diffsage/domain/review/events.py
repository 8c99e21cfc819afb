"""Events emitted by a review session."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from diffsage.shared.types import ClientId, ReviewId


class EventKind(StrEnum):
    """Kinds of event a review emits, in the order they may appear."""

    SESSION_STATE_CHANGED = "session_state_changed"
    THINKING_PROGRESS = "thinking_progress"
    TITLE_READY = "title_ready"
    OBJECTIVE_READY = "objective_ready"
    WALKTHROUGH_READY = "walkthrough_ready"
    FINDING_READY = "finding_ready"
    FINDINGS_RETRACTED = "findings_retracted"
    CATEGORIZED_RESULT = "categorized_result"
    SUMMARY_READY = "summary_ready"
    SESSION_TERMINAL = "session_terminal"


@dataclass(frozen=True)
class ReviewEvent:
    """One append-only event of a review, addressed to its owning client."""

    kind: EventKind
    payload: dict[str, Any]
    review_id: ReviewId
    client_id: ClientId
    emitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_terminal(self) -> bool:
        return self.kind == EventKind.SESSION_TERMINAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "payload": self.payload,
            "review_id": str(self.review_id),
            "client_id": str(self.client_id),
            "emitted_at": self.emitted_at.isoformat(),
        }
