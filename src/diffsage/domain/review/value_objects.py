"""Value objects for the Review bounded context."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from diffsage.domain.review.entities import Finding
from diffsage.shared.constants import NO_ISSUES_SHORT_SUMMARY, NO_ISSUES_SUMMARY
from diffsage.shared.types import Bucket, FilePath, FindingSource

# =============================================================================
# DIFF INDEX
# =============================================================================


@dataclass(frozen=True)
class ChangedLineSet:
    """New-file line numbers that sit inside a hunk of one file's diff."""

    path: FilePath
    lines: frozenset[int]
    malformed_headers: tuple[str, ...] = ()

    def __contains__(self, line: object) -> bool:
        return line in self.lines

    def __len__(self) -> int:
        return len(self.lines)

    def overlaps(self, finding: Finding) -> bool:
        """Whether any line of the finding's range is a changed line."""
        line_range = finding.line_range
        if line_range is None:
            return False
        if len(line_range) > len(self.lines):
            return any(line in line_range for line in self.lines)
        return any(line in self.lines for line in line_range)


# =============================================================================
# SUGGESTIONS
# =============================================================================


@dataclass(frozen=True)
class SuggestionPatch:
    """A proposed replacement rendered as a patch.

    ``patch_text`` is the canonical unified diff of the original block against
    the replacement; ``rendered_block`` is a fenced ``diff`` block with only the
    changed lines, or ``""`` when nothing changes.
    """

    patch_text: str
    rendered_block: str

    @property
    def has_changes(self) -> bool:
        return bool(self.rendered_block)

    def to_payload(self) -> dict[str, Any]:
        return {
            "patch_text": self.patch_text,
            "rendered_block": self.rendered_block,
        }


@dataclass(frozen=True)
class AnnotatedFinding:
    """A finding together with its computed patch and origin."""

    finding: Finding
    patch: SuggestionPatch | None
    source: FindingSource

    @property
    def display_body(self) -> str:
        if self.patch is None or not self.patch.has_changes:
            return self.finding.body
        return f"{self.finding.body}\n\n{self.patch.rendered_block}"

    def to_payload(self) -> dict[str, Any]:
        payload = self.finding.to_payload()
        payload["display_body"] = self.display_body
        payload["indicator_types"] = [self.finding.category.value]
        payload["patch"] = self.patch.to_payload() if self.patch else None
        payload["source"] = self.source.value
        return payload


# =============================================================================
# CLASSIFICATION
# =============================================================================


@dataclass(frozen=True)
class CategorizedFindings:
    """Findings grouped per bucket, then per file."""

    buckets: dict[Bucket, dict[FilePath, list[AnnotatedFinding]]] = field(
        default_factory=lambda: {bucket: {} for bucket in Bucket}
    )

    @property
    def counts(self) -> dict[Bucket, int]:
        return {
            bucket: sum(len(items) for items in by_file.values())
            for bucket, by_file in self.buckets.items()
        }

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def in_bucket(self, bucket: Bucket) -> list[AnnotatedFinding]:
        """Flatten one bucket across files, preserving insertion order."""
        return [item for items in self.buckets[bucket].values() for item in items]

    def __iter__(self) -> Iterator[tuple[Bucket, AnnotatedFinding]]:
        for bucket, by_file in self.buckets.items():
            for items in by_file.values():
                for item in items:
                    yield bucket, item

    def to_payload(self) -> dict[str, Any]:
        return {
            "counts": {bucket.value: n for bucket, n in self.counts.items()},
            "buckets": {
                bucket.value: {
                    str(path): [item.to_payload() for item in items]
                    for path, items in by_file.items()
                }
                for bucket, by_file in self.buckets.items()
            },
        }


# =============================================================================
# SUMMARY
# =============================================================================


@dataclass(frozen=True)
class ReviewSummary:
    """Closing summary of a review: a long markdown body and a one-liner."""

    long: str
    short: str

    @classmethod
    def no_issues(cls) -> ReviewSummary:
        """Canned summary used when a review produced no findings."""
        return cls(long=NO_ISSUES_SUMMARY, short=NO_ISSUES_SHORT_SUMMARY)

    def to_payload(self) -> dict[str, Any]:
        return {"long": self.long, "short": self.short}
