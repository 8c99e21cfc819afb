"""Tests for Review domain entities."""

from __future__ import annotations

import pytest

from diffsage.domain.review.entities import Finding, ReviewFile, ReviewSession
from diffsage.shared.exceptions import InvalidTransitionError
from diffsage.shared.types import FilePath, FindingCategory, LineRange, SessionStage

# =============================================================================
# ReviewFile
# =============================================================================


def test_review_file_lines(sample_file: ReviewFile) -> None:
    assert sample_file.lines() == ["line1", "line2", "line3"]


def test_review_file_is_frozen(sample_file: ReviewFile) -> None:
    with pytest.raises(AttributeError):
        sample_file.full_content = "changed"  # type: ignore[misc]


# =============================================================================
# Finding
# =============================================================================


def test_finding_line_range(bug_finding: Finding) -> None:
    assert bug_finding.line_range == LineRange(2, 2)


def test_finding_inverted_range_has_no_line_range() -> None:
    finding = Finding(
        path=FilePath("a.py"),
        start_line=9,
        end_line=3,
        body="Inverted.",
        category=FindingCategory.OTHER,
    )
    assert finding.line_range is None


def test_finding_replacement_uses_first(bug_finding: Finding) -> None:
    finding = Finding(
        path=bug_finding.path,
        start_line=1,
        end_line=1,
        body="",
        category=FindingCategory.BUG,
        replacements=("first", "second"),
    )
    assert finding.replacement == "first"


def test_finding_without_replacements() -> None:
    finding = Finding(
        path=FilePath("a.py"),
        start_line=1,
        end_line=1,
        body="Looks good.",
        category=FindingCategory.CONFIRMATION,
    )
    assert finding.replacement is None


def test_finding_empty_replacement_is_kept() -> None:
    finding = Finding(
        path=FilePath("a.py"),
        start_line=1,
        end_line=2,
        body="Dead code.",
        category=FindingCategory.STRUCTURAL_IMPROVEMENT,
        replacements=("",),
    )
    assert finding.replacement == ""


def test_finding_to_payload(bug_finding: Finding) -> None:
    payload = bug_finding.to_payload()

    assert payload["path"] == "src/app.py"
    assert payload["category"] == "bug"
    assert payload["replacements"] == ["line2_fixed"]
    assert payload["implementation_instruction"] == "Fix the loop bound."


# =============================================================================
# ReviewSession
# =============================================================================


def test_session_starts_initializing(session: ReviewSession) -> None:
    assert session.stage == SessionStage.INITIALIZING
    assert not session.is_terminal
    assert session.ended_at is None


def test_session_happy_path(session: ReviewSession) -> None:
    for stage in (
        SessionStage.SUMMARIZING,
        SessionStage.REVIEWING,
        SessionStage.FINALIZING,
        SessionStage.COMPLETED,
    ):
        session.advance(stage)

    assert session.is_terminal
    assert session.ended_at is not None


def test_session_can_cancel_from_any_running_stage(session: ReviewSession) -> None:
    session.advance(SessionStage.SUMMARIZING)
    session.advance(SessionStage.CANCELLED)

    assert session.stage == SessionStage.CANCELLED


def test_session_rejects_skipping_stages(session: ReviewSession) -> None:
    with pytest.raises(InvalidTransitionError):
        session.advance(SessionStage.FINALIZING)


def test_session_rejects_leaving_terminal(session: ReviewSession) -> None:
    session.advance(SessionStage.FAILED)

    with pytest.raises(InvalidTransitionError):
        session.advance(SessionStage.CANCELLED)


def test_session_file_lookup(session: ReviewSession) -> None:
    assert session.file(FilePath("src/app.py")) is not None
    assert session.file(FilePath("missing.py")) is None


def test_session_total_size(session: ReviewSession) -> None:
    assert session.total_size == len("line1\nline2\nline3")
