"""Shared fixtures for oracle tests."""

from __future__ import annotations

import pytest

from fakes import SAMPLE_DIFF

from diffsage.domain.review.entities import ReviewFile
from diffsage.shared.types import FilePath


@pytest.fixture
def review_files() -> list[ReviewFile]:
    return [
        ReviewFile(
            path=FilePath("src/app.py"),
            full_content="line1\nline2\nline3",
            unified_diff=SAMPLE_DIFF,
        )
    ]
