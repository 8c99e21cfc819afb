"""Shared fixtures for integration tests."""

from __future__ import annotations

import textwrap

from unittest.mock import AsyncMock

import pytest

from fakes import FakeOracle

from diffsage.application.admission import ReviewGateway
from diffsage.domain.review.entities import ReviewFile
from diffsage.infrastructure.admission.file_validator import FileValidator
from diffsage.infrastructure.admission.rate_limiter import FixedWindowRateLimiter
from diffsage.infrastructure.cache.lru_cache import LRUCache
from diffsage.infrastructure.events.bus import InMemoryEventBus
from diffsage.infrastructure.monitoring.review_monitor import ReviewMonitor
from diffsage.infrastructure.oracle.caching import CachingOracle
from diffsage.infrastructure.oracle.retrying import RetryingOracle, RetryPolicy
from diffsage.shared.types import FilePath


@pytest.fixture
def auth_file() -> ReviewFile:
    content = textwrap.dedent("""\
        import hashlib

        def login(user, password):
            return check_password(user, password)
    """)
    diff = textwrap.dedent("""\
        diff --git a/src/auth.py b/src/auth.py
        --- a/src/auth.py
        +++ b/src/auth.py
        @@ -1,2 +1,4 @@
        +import hashlib
        +
         def login(user, password):
             return check_password(user, password)
    """)
    return ReviewFile(path=FilePath("src/auth.py"), full_content=content, unified_diff=diff)


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def monitor() -> ReviewMonitor:
    return ReviewMonitor()


@pytest.fixture
def gateway(
    fake_oracle: FakeOracle, bus: InMemoryEventBus, monitor: ReviewMonitor
) -> ReviewGateway:
    """Gateway wired the way the entry point wires it, minus the model."""
    oracle = CachingOracle(
        inner=RetryingOracle(
            inner=fake_oracle, policy=RetryPolicy(max_retries=2), sleep=AsyncMock()
        ),
        cache=LRUCache(max_entries=100),
    )
    return ReviewGateway(
        oracle=oracle,
        publisher=bus,
        rate_limiter=FixedWindowRateLimiter(max_requests=5),
        file_validator=FileValidator(),
        metrics=monitor,
    )
