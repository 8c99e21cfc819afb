"""Tests for ServiceConfig."""

from __future__ import annotations

import textwrap

from pathlib import Path

import pytest

from diffsage.interfaces.config import ServiceConfig
from diffsage.shared.exceptions import ConfigurationError


class TestServiceConfig:
    def test_from_toml_with_defaults(self, tmp_path: Path) -> None:
        config = ServiceConfig.from_toml(tmp_path)

        assert config.settings.model == "google-gla:gemini-2.5-flash"
        assert config.request_path == ""
        assert config.model_config.provider == "google-gla"

    def test_from_toml_reads_tool_section(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(
            textwrap.dedent("""\
                [tool.diffsage]
                model = "anthropic:claude-sonnet-4-5"
                max_tokens = 8192
            """)
        )
        config = ServiceConfig.from_toml(tmp_path)

        assert config.model_config.model == "anthropic:claude-sonnet-4-5"
        assert config.model_config.max_tokens == 8192

    def test_env_overrides_toml(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        (tmp_path / "pyproject.toml").write_text(
            textwrap.dedent("""\
                [tool.diffsage]
                model = "openai:gpt-4o"
                cache_enabled = true
            """)
        )
        monkeypatch.setenv("DIFFSAGE_MODEL", "test")
        monkeypatch.setenv("DIFFSAGE_TEMPERATURE", "0.5")
        monkeypatch.setenv("DIFFSAGE_LOG_LEVEL", "debug")
        monkeypatch.setenv("DIFFSAGE_RATE_LIMIT_REQUESTS", "2")
        monkeypatch.setenv("DIFFSAGE_RATE_LIMIT_WINDOW_SECONDS", "30")
        monkeypatch.setenv("DIFFSAGE_CACHE_ENABLED", "False")
        monkeypatch.setenv("DIFFSAGE_REQUEST_PATH", "/tmp/request.json")

        config = ServiceConfig.from_toml(tmp_path)

        assert config.settings.model == "test"
        assert config.settings.temperature == 0.5
        assert config.settings.log_level == "DEBUG"
        assert config.settings.rate_limit_requests == 2
        assert config.settings.rate_limit_window_seconds == 30.0
        assert config.settings.cache_enabled is False
        assert config.request_path == "/tmp/request.json"

    def test_invalid_integer_env(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv("DIFFSAGE_MAX_TOKENS", "many")

        with pytest.raises(ConfigurationError, match="DIFFSAGE_MAX_TOKENS"):
            ServiceConfig.from_toml(tmp_path)

    def test_invalid_float_env(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv("DIFFSAGE_TEMPERATURE", "warm")

        with pytest.raises(ConfigurationError, match="DIFFSAGE_TEMPERATURE"):
            ServiceConfig.from_toml(tmp_path)

    def test_env_values_are_validated(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv("DIFFSAGE_RATE_LIMIT_REQUESTS", "0")

        with pytest.raises(ConfigurationError, match="rate_limit_requests"):
            ServiceConfig.from_toml(tmp_path)
