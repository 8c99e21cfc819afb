"""Fixtures for application-layer tests."""

from __future__ import annotations

import pytest

from fakes import SAMPLE_DIFF, FakeOracle, RecordingPublisher

from diffsage.domain.review.entities import ReviewFile, ReviewSession
from diffsage.shared.types import ClientId, FilePath, ReviewId


@pytest.fixture
def review_file() -> ReviewFile:
    return ReviewFile(
        path=FilePath("src/app.py"),
        full_content="line1\nline2\nline3",
        unified_diff=SAMPLE_DIFF,
    )


@pytest.fixture
def session(review_file: ReviewFile) -> ReviewSession:
    return ReviewSession(
        review_id=ReviewId("review-1"),
        client_id=ClientId("client-1"),
        files=(review_file,),
    )


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()
