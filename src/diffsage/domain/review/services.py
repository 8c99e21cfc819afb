"""Domain services for the Review bounded context."""

from __future__ import annotations

import difflib
import logging
import re

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from diffsage.domain.review.entities import Finding, ReviewFile
from diffsage.domain.review.value_objects import (
    AnnotatedFinding,
    CategorizedFindings,
    ChangedLineSet,
    SuggestionPatch,
)
from diffsage.shared.exceptions import MalformedDiffHunkError
from diffsage.shared.types import Bucket, FilePath, FindingCategory

logger = logging.getLogger(__name__)

_HUNK_HEADER_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")
_PATCH_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_NO_NEWLINE_MARKER = "\\ No newline at end of file"

# =============================================================================
# DIFF HUNK INDEXER
# =============================================================================


@dataclass
class DiffHunkIndexer:
    """Maps a unified diff onto the new-file line numbers its hunks cover.

    A hunk header whose new-file start cannot be parsed resets the line cursor
    to 0 and the scan continues, so a bad header only skews attribution for
    that file. With ``strict=True`` it raises ``MalformedDiffHunkError``
    instead.
    """

    strict: bool = False

    def index(self, path: FilePath, diff_text: str) -> ChangedLineSet:
        """Collect added and context line numbers for one file's diff.

        Args:
            path: File the diff belongs to (used for attribution and logs).
            diff_text: Unified diff text for that file.

        Returns:
            The file's ChangedLineSet. Same input always yields the same set.

        Raises:
            MalformedDiffHunkError: Only when ``strict`` is set.
        """
        changed: set[int] = set()
        malformed: list[str] = []
        cursor = 0
        in_hunk = False

        for raw_line in diff_text.splitlines():
            if raw_line.startswith("@@"):
                in_hunk = True
                match = _HUNK_HEADER_RE.match(raw_line)
                if match:
                    cursor = int(match.group(1))
                    continue
                if self.strict:
                    raise MalformedDiffHunkError(path, raw_line)
                logger.warning(
                    "Malformed hunk header in %s, resetting line cursor to 0: %r",
                    path,
                    raw_line,
                )
                malformed.append(raw_line)
                cursor = 0
            elif raw_line.startswith("diff --git"):
                in_hunk = False
            elif not in_hunk:
                continue
            elif raw_line.startswith(("+", " ")):
                changed.add(cursor)
                cursor += 1
            # Removed lines and "\ No newline" markers do not advance the cursor.

        return ChangedLineSet(
            path=path,
            lines=frozenset(changed),
            malformed_headers=tuple(malformed),
        )

    def index_files(self, files: Iterable[ReviewFile]) -> dict[FilePath, ChangedLineSet]:
        """Index every file of a review, keyed by path."""
        return {f.path: self.index(f.path, f.unified_diff) for f in files}


# =============================================================================
# COMMENT CLASSIFIER
# =============================================================================

_ASSERTIVE_CATEGORIES = frozenset(
    {FindingCategory.BUG, FindingCategory.STRUCTURAL_IMPROVEMENT}
)


@dataclass
class CommentClassifier:
    """Buckets findings for presentation.

    Rules, first match wins:
    1. style nits are always ``nitpick``, overlap is never consulted;
    2. no line of the range is a changed line -> ``outside_diff_range``;
    3. bugs and structural improvements -> ``assertive``;
    4. everything else -> ``additional``.
    """

    def classify(self, finding: Finding, changed: ChangedLineSet | None) -> Bucket:
        if finding.category == FindingCategory.STYLE_NIT:
            return Bucket.NITPICK
        if changed is None or not changed.overlaps(finding):
            return Bucket.OUTSIDE_DIFF_RANGE
        if finding.category in _ASSERTIVE_CATEGORIES:
            return Bucket.ASSERTIVE
        return Bucket.ADDITIONAL

    def categorize(
        self,
        findings: Sequence[AnnotatedFinding],
        changed_lines: Mapping[FilePath, ChangedLineSet],
    ) -> CategorizedFindings:
        """Group findings per bucket and per file, preserving input order."""
        result = CategorizedFindings()
        for item in findings:
            path = item.finding.path
            bucket = self.classify(item.finding, changed_lines.get(path))
            result.buckets[bucket].setdefault(path, []).append(item)
        return result


# =============================================================================
# SUGGESTION PATCHER
# =============================================================================


@dataclass
class SuggestionPatcher:
    """Turns a proposed replacement into a unified diff and a display block.

    Lines are split on ``"\\n"`` only, the same way ``ReviewFile.lines`` does,
    and keep their terminators. A last line without one is followed by the
    ``\\ No newline at end of file`` marker, so ``apply_patch`` restores the
    replacement byte for byte.
    """

    context_lines: int = 3

    def patch(self, path: FilePath, original: str, replacement: str) -> SuggestionPatch:
        """Diff *original* against *replacement*.

        An empty *replacement* yields a pure deletion patch. Identical inputs
        yield an empty patch.
        """
        diff_lines = list(
            difflib.unified_diff(
                split_lines(original),
                split_lines(replacement),
                fromfile=f"{path} (original)",
                tofile=f"{path} (suggested)",
                n=self.context_lines,
            )
        )
        if not diff_lines:
            return SuggestionPatch(patch_text="", rendered_block="")

        patch_text: list[str] = []
        for line in diff_lines:
            if line.endswith("\n"):
                patch_text.append(line)
            else:
                patch_text.append(f"{line}\n{_NO_NEWLINE_MARKER}\n")

        # Skip the two file headers; keep only changed lines of each hunk.
        changed = [
            line.removesuffix("\n")
            for line in diff_lines[2:]
            if line.startswith(("+", "-"))
        ]
        rendered = "```diff\n" + "\n".join(changed) + "\n```" if changed else ""
        return SuggestionPatch(
            patch_text="".join(patch_text),
            rendered_block=rendered,
        )

    def patch_finding(
        self, finding: Finding, file: ReviewFile | None
    ) -> SuggestionPatch | None:
        """Build the patch for a finding's first replacement, if it has one.

        The replacement stands in for whole lines: when the sliced lines end
        with a newline, a non-empty replacement is given one too.
        """
        replacement = finding.replacement
        if replacement is None or file is None or finding.line_range is None:
            return None
        lines = split_lines(file.full_content)
        start = max(finding.start_line, 1)
        original = "".join(lines[start - 1 : finding.end_line])
        if original.endswith("\n") and replacement and not replacement.endswith("\n"):
            replacement += "\n"
        return self.patch(finding.path, original, replacement)


def split_lines(text: str) -> list[str]:
    """Split *text* on ``"\\n"`` only, keeping each line's terminator."""
    pieces = text.split("\n")
    lines = [piece + "\n" for piece in pieces[:-1]]
    if pieces[-1]:
        lines.append(pieces[-1])
    return lines


def apply_patch(original: str, patch_text: str) -> str:
    """Apply a unified diff produced by ``SuggestionPatcher`` to *original*.

    Raises:
        ValueError: If the patch does not match *original*.
    """
    source = split_lines(original)
    patch_lines = patch_text.split("\n")
    result: list[str] = []
    cursor = 0
    i = 0

    while i < len(patch_lines):
        match = _PATCH_HUNK_RE.match(patch_lines[i])
        i += 1
        if match is None:
            continue

        old_start = int(match.group(1))
        old_left = int(match.group(2) or "1")
        new_left = int(match.group(4) or "1")
        # A zero-length old range names the line *after* which to insert.
        start = old_start if old_left == 0 else old_start - 1
        if start < cursor or start > len(source):
            msg = f"Hunk at line {old_start} does not apply"
            raise ValueError(msg)
        result.extend(source[cursor:start])
        cursor = start

        while old_left > 0 or new_left > 0:
            if i >= len(patch_lines):
                msg = "Patch ends inside a hunk"
                raise ValueError(msg)
            line = patch_lines[i]
            i += 1
            tag, text = line[:1], line[1:]
            if tag == "\\":
                continue
            if i >= len(patch_lines) or not patch_lines[i].startswith("\\"):
                text += "\n"
            if tag in (" ", "-"):
                if cursor >= len(source) or source[cursor] != text:
                    msg = f"Patch context mismatch at line {cursor + 1}"
                    raise ValueError(msg)
                cursor += 1
                old_left -= 1
                if tag == " ":
                    result.append(text)
                    new_left -= 1
            elif tag == "+":
                result.append(text)
                new_left -= 1
            else:
                msg = f"Unexpected patch line: {line!r}"
                raise ValueError(msg)

    result.extend(source[cursor:])
    return "".join(result)
