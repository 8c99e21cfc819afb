"""Fixtures for Review domain tests."""

from __future__ import annotations

import pytest

from diffsage.domain.review.entities import Finding, ReviewFile, ReviewSession
from diffsage.shared.types import ClientId, FilePath, FindingCategory, ReviewId

SAMPLE_DIFF = "@@ -1,2 +1,3 @@\n line1\n+line2\n line3"


@pytest.fixture
def sample_file() -> ReviewFile:
    return ReviewFile(
        path=FilePath("src/app.py"),
        full_content="line1\nline2\nline3",
        unified_diff=SAMPLE_DIFF,
    )


@pytest.fixture
def bug_finding() -> Finding:
    return Finding(
        path=FilePath("src/app.py"),
        start_line=2,
        end_line=2,
        body="Off-by-one in loop bound.",
        category=FindingCategory.BUG,
        replacements=("line2_fixed",),
        implementation_instruction="Fix the loop bound.",
    )


@pytest.fixture
def session(sample_file: ReviewFile) -> ReviewSession:
    return ReviewSession(
        review_id=ReviewId("review-1"),
        client_id=ClientId("client-1"),
        files=(sample_file,),
    )
