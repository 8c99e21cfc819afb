"""Fixtures for interface-layer tests."""

from __future__ import annotations

import pytest

_ENV_VARS = (
    "DIFFSAGE_MODEL",
    "DIFFSAGE_MAX_TOKENS",
    "DIFFSAGE_TEMPERATURE",
    "DIFFSAGE_LOG_LEVEL",
    "DIFFSAGE_RATE_LIMIT_REQUESTS",
    "DIFFSAGE_RATE_LIMIT_WINDOW_SECONDS",
    "DIFFSAGE_CACHE_ENABLED",
    "DIFFSAGE_REQUEST_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
