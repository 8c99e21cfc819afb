"""Fixtures for shared kernel tests."""

from __future__ import annotations

import pytest

from diffsage.shared.types import FilePath, LineRange, ReviewId


@pytest.fixture
def file_path() -> FilePath:
    return FilePath("src/auth/login.py")


@pytest.fixture
def review_id() -> ReviewId:
    return ReviewId("review-1")


@pytest.fixture
def line_range() -> LineRange:
    return LineRange(start=10, end=20)
