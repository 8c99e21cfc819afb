"""Tests for Review domain services."""

from __future__ import annotations

import pytest

from diffsage.domain.review.entities import Finding, ReviewFile
from diffsage.domain.review.services import (
    CommentClassifier,
    DiffHunkIndexer,
    SuggestionPatcher,
    apply_patch,
    split_lines,
)
from diffsage.domain.review.value_objects import AnnotatedFinding, ChangedLineSet
from diffsage.shared.exceptions import MalformedDiffHunkError
from diffsage.shared.types import Bucket, FilePath, FindingCategory, FindingSource

SAMPLE_DIFF = "@@ -1,2 +1,3 @@\n line1\n+line2\n line3"
_PATH = FilePath("src/app.py")


def _finding(
    start: int,
    end: int,
    category: FindingCategory = FindingCategory.BUG,
    path: FilePath = _PATH,
    replacements: tuple[str, ...] = (),
) -> Finding:
    return Finding(
        path=path,
        start_line=start,
        end_line=end,
        body="comment",
        category=category,
        replacements=replacements,
    )


def _annotated(finding: Finding) -> AnnotatedFinding:
    return AnnotatedFinding(finding=finding, patch=None, source=FindingSource.STREAM)


# =============================================================================
# DiffHunkIndexer
# =============================================================================


def test_indexer_collects_added_and_context_lines() -> None:
    changed = DiffHunkIndexer().index(_PATH, SAMPLE_DIFF)

    assert changed.lines == frozenset({1, 2, 3})
    assert changed.malformed_headers == ()


def test_indexer_removed_lines_do_not_advance_cursor() -> None:
    diff = "@@ -1,3 +1,2 @@\n a\n-b\n c"

    changed = DiffHunkIndexer().index(_PATH, diff)

    assert changed.lines == frozenset({1, 2})


def test_indexer_multiple_hunks() -> None:
    diff = "@@ -1,1 +1,2 @@\n a\n+b\n@@ -10,2 +11,2 @@\n x\n-y\n+z"

    changed = DiffHunkIndexer().index(_PATH, diff)

    assert changed.lines == frozenset({1, 2, 11, 12})


def test_indexer_skips_file_headers() -> None:
    diff = (
        "diff --git a/src/app.py b/src/app.py\n"
        "index 1234567..abcdefg 100644\n"
        "--- a/src/app.py\n"
        "+++ b/src/app.py\n"
        "@@ -5 +5 @@\n"
        "-old\n"
        "+new"
    )

    changed = DiffHunkIndexer().index(_PATH, diff)

    assert changed.lines == frozenset({5})


def test_indexer_ignores_no_newline_marker() -> None:
    diff = "@@ -1 +1 @@\n-a\n\\ No newline at end of file\n+b\n\\ No newline at end of file"

    changed = DiffHunkIndexer().index(_PATH, diff)

    assert changed.lines == frozenset({1})


def test_indexer_empty_diff() -> None:
    assert len(DiffHunkIndexer().index(_PATH, "")) == 0


def test_indexer_is_idempotent() -> None:
    indexer = DiffHunkIndexer()

    first = indexer.index(_PATH, SAMPLE_DIFF)
    second = indexer.index(_PATH, SAMPLE_DIFF)

    assert first == second


def test_indexer_malformed_header_resets_cursor() -> None:
    diff = "@@ -a,b +c,d @@\n+x\n+y\n@@ -7,1 +9,1 @@\n+z"

    changed = DiffHunkIndexer().index(_PATH, diff)

    assert changed.lines == frozenset({0, 1, 9})
    assert changed.malformed_headers == ("@@ -a,b +c,d @@",)


def test_indexer_strict_mode_raises() -> None:
    with pytest.raises(MalformedDiffHunkError) as exc_info:
        DiffHunkIndexer(strict=True).index(_PATH, "@@ bogus @@\n+x")

    assert exc_info.value.path == _PATH


def test_indexer_index_files(sample_file: ReviewFile) -> None:
    result = DiffHunkIndexer().index_files([sample_file])

    assert set(result) == {sample_file.path}
    assert result[sample_file.path].lines == frozenset({1, 2, 3})


# =============================================================================
# CommentClassifier
# =============================================================================


@pytest.fixture
def changed() -> ChangedLineSet:
    return DiffHunkIndexer().index(_PATH, SAMPLE_DIFF)


def test_classifier_bug_inside_diff_is_assertive(changed: ChangedLineSet) -> None:
    assert CommentClassifier().classify(_finding(2, 2), changed) == Bucket.ASSERTIVE


def test_classifier_bug_outside_diff(changed: ChangedLineSet) -> None:
    bucket = CommentClassifier().classify(_finding(10, 10), changed)

    assert bucket == Bucket.OUTSIDE_DIFF_RANGE


def test_classifier_style_nit_wins_over_overlap(changed: ChangedLineSet) -> None:
    finding = _finding(2, 2, FindingCategory.STYLE_NIT)

    assert CommentClassifier().classify(finding, changed) == Bucket.NITPICK


def test_classifier_style_nit_outside_diff_is_still_nitpick(
    changed: ChangedLineSet,
) -> None:
    finding = _finding(50, 60, FindingCategory.STYLE_NIT)

    assert CommentClassifier().classify(finding, changed) == Bucket.NITPICK


def test_classifier_structural_improvement_is_assertive(changed: ChangedLineSet) -> None:
    finding = _finding(1, 3, FindingCategory.STRUCTURAL_IMPROVEMENT)

    assert CommentClassifier().classify(finding, changed) == Bucket.ASSERTIVE


@pytest.mark.parametrize("category", [FindingCategory.CONFIRMATION, FindingCategory.OTHER])
def test_classifier_other_categories_are_additional(
    changed: ChangedLineSet, category: FindingCategory
) -> None:
    assert CommentClassifier().classify(_finding(3, 3, category), changed) == Bucket.ADDITIONAL


def test_classifier_partial_overlap_counts(changed: ChangedLineSet) -> None:
    assert CommentClassifier().classify(_finding(3, 40), changed) == Bucket.ASSERTIVE


def test_classifier_inverted_range_is_outside(changed: ChangedLineSet) -> None:
    assert CommentClassifier().classify(_finding(3, 1), changed) == Bucket.OUTSIDE_DIFF_RANGE


def test_classifier_unknown_file_is_outside() -> None:
    assert CommentClassifier().classify(_finding(1, 1), None) == Bucket.OUTSIDE_DIFF_RANGE


def test_categorize_groups_per_bucket_and_file(changed: ChangedLineSet) -> None:
    other_path = FilePath("src/other.py")
    findings = [
        _annotated(_finding(2, 2)),
        _annotated(_finding(10, 10)),
        _annotated(_finding(1, 1, FindingCategory.STYLE_NIT)),
        _annotated(_finding(3, 3, FindingCategory.CONFIRMATION)),
        _annotated(_finding(1, 1, path=other_path)),
        _annotated(_finding(1, 1, FindingCategory.OTHER)),
    ]

    result = CommentClassifier().categorize(findings, {_PATH: changed})

    assert result.counts == {
        Bucket.ASSERTIVE: 1,
        Bucket.ADDITIONAL: 2,
        Bucket.OUTSIDE_DIFF_RANGE: 2,
        Bucket.NITPICK: 1,
    }
    assert result.total == len(findings)
    assert set(result.buckets[Bucket.OUTSIDE_DIFF_RANGE]) == {_PATH, other_path}
    additional = result.in_bucket(Bucket.ADDITIONAL)
    assert [item.finding.category for item in additional] == [
        FindingCategory.CONFIRMATION,
        FindingCategory.OTHER,
    ]


def test_categorize_empty() -> None:
    result = CommentClassifier().categorize([], {})

    assert result.total == 0
    assert all(n == 0 for n in result.counts.values())


# =============================================================================
# SuggestionPatcher
# =============================================================================


def test_patcher_round_trip() -> None:
    original = "def f(x):\n    return x+1\n"
    replacement = "def f(x: int) -> int:\n    return x + 1"

    patch = SuggestionPatcher().patch(_PATH, original, replacement)

    assert apply_patch(original, patch.patch_text) == replacement


def test_patcher_round_trip_multiple_hunks() -> None:
    original_lines = [f"line {i}" for i in range(1, 21)]
    new_lines = list(original_lines)
    new_lines[1] = "line two"
    new_lines[17] = "line eighteen"
    original = "\n".join(original_lines)
    replacement = "\n".join(new_lines)

    patch = SuggestionPatcher().patch(_PATH, original, replacement)

    assert patch.patch_text.count("\n@@ ") == 2
    assert apply_patch(original, patch.patch_text) == replacement


def test_patcher_deletion() -> None:
    original = "import os\nimport sys"

    patch = SuggestionPatcher().patch(_PATH, original, "")

    assert apply_patch(original, patch.patch_text) == ""
    assert patch.rendered_block == "```diff\n-import os\n-import sys\n```"


def test_patcher_single_line() -> None:
    patch = SuggestionPatcher().patch(_PATH, "x = 1", "x = 2")

    assert patch.rendered_block == "```diff\n-x = 1\n+x = 2\n```"
    assert apply_patch("x = 1", patch.patch_text) == "x = 2"


def test_patcher_insertion_into_empty_block() -> None:
    patch = SuggestionPatcher().patch(_PATH, "", "new_line()")

    assert patch.rendered_block == "```diff\n+new_line()\n```"
    assert apply_patch("", patch.patch_text) == "new_line()"


@pytest.mark.parametrize(
    ("original", "replacement"),
    [
        ("x = 1\n", "x = 2\n"),
        ("a\nb", "a\nb\n\n"),
        ("a\nb\n", "a\nb"),
        ("a", "a\x0cb"),
        ("a b\n", "a c\n"),
    ],
)
def test_patcher_round_trip_preserves_line_endings(original: str, replacement: str) -> None:
    patch = SuggestionPatcher().patch(_PATH, original, replacement)

    assert apply_patch(original, patch.patch_text) == replacement


def test_patcher_marks_missing_final_newline() -> None:
    patch = SuggestionPatcher().patch(_PATH, "x = 1", "x = 2\n")

    assert patch.patch_text.endswith("-x = 1\n\\ No newline at end of file\n+x = 2\n")
    assert patch.rendered_block == "```diff\n-x = 1\n+x = 2\n```"


def test_patcher_does_not_split_on_form_feed() -> None:
    patch = SuggestionPatcher().patch(_PATH, "a", "a\x0cb")

    assert patch.rendered_block == "```diff\n-a\n+a\x0cb\n```"


def test_split_lines_keeps_terminators() -> None:
    assert split_lines("") == []
    assert split_lines("a\nb") == ["a\n", "b"]
    assert split_lines("a\n\n") == ["a\n", "\n"]
    assert split_lines("a\x0cb\r\n") == ["a\x0cb\r\n"]


def test_patcher_identical_is_empty() -> None:
    patch = SuggestionPatcher().patch(_PATH, "same", "same")

    assert patch.patch_text == ""
    assert not patch.has_changes


def test_patcher_rendered_block_strips_headers() -> None:
    patch = SuggestionPatcher().patch(_PATH, "a\nb\nc", "a\nB\nc")

    assert "@@" not in patch.rendered_block
    assert "(original)" not in patch.rendered_block
    assert patch.patch_text.startswith("--- src/app.py (original)\n+++ src/app.py (suggested)\n")
    assert patch.rendered_block == "```diff\n-b\n+B\n```"


def test_patch_finding_slices_file(sample_file: ReviewFile, bug_finding: Finding) -> None:
    patch = SuggestionPatcher().patch_finding(bug_finding, sample_file)

    assert patch is not None
    assert patch.rendered_block == "```diff\n-line2\n+line2_fixed\n```"


def test_patch_finding_replaces_whole_lines() -> None:
    file = ReviewFile(
        path=_PATH, full_content="line1\nline2\nline3\n", unified_diff=""
    )
    finding = _finding(2, 2, replacements=("line2_fixed",))

    patch = SuggestionPatcher().patch_finding(finding, file)

    assert patch is not None
    assert "No newline" not in patch.patch_text
    assert apply_patch("line2\n", patch.patch_text) == "line2_fixed\n"


def test_patch_finding_without_replacement(sample_file: ReviewFile) -> None:
    assert SuggestionPatcher().patch_finding(_finding(1, 1), sample_file) is None


def test_patch_finding_unknown_file(bug_finding: Finding) -> None:
    assert SuggestionPatcher().patch_finding(bug_finding, None) is None


def test_patch_finding_inverted_range(sample_file: ReviewFile) -> None:
    finding = _finding(3, 1, replacements=("x",))

    assert SuggestionPatcher().patch_finding(finding, sample_file) is None


def test_patch_finding_range_past_end_of_file(sample_file: ReviewFile) -> None:
    finding = _finding(3, 99, replacements=("",))

    patch = SuggestionPatcher().patch_finding(finding, sample_file)

    assert patch is not None
    assert patch.rendered_block == "```diff\n-line3\n```"


def test_apply_patch_rejects_mismatch() -> None:
    patch = SuggestionPatcher().patch(_PATH, "a\nb", "a\nc")

    with pytest.raises(ValueError, match="mismatch"):
        apply_patch("x\ny", patch.patch_text)
