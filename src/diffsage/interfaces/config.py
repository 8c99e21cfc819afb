"""Service configuration: ``[tool.diffsage]`` overlaid with environment variables."""

from __future__ import annotations

import dataclasses
import os

from dataclasses import dataclass
from pathlib import Path

from diffsage.domain.llm.value_objects import ModelConfig
from diffsage.interfaces.toml_config import (
    DiffsageConfig,
    load_diffsage_config,
    validate_config,
)
from diffsage.shared.exceptions import ConfigurationError


def _parse_int(name: str, raw: str) -> int:
    """Parse an integer env var or raise with a clear message."""
    try:
        return int(raw)
    except ValueError:
        msg = f"Invalid integer for {name}: {raw!r}"
        raise ConfigurationError(msg) from None


def _parse_float(name: str, raw: str) -> float:
    """Parse a float env var or raise with a clear message."""
    try:
        return float(raw)
    except ValueError:
        msg = f"Invalid float for {name}: {raw!r}"
        raise ConfigurationError(msg) from None


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() == "true"


@dataclass(frozen=True)
class ServiceConfig:
    """Typed configuration for the diffsage service."""

    settings: DiffsageConfig = DiffsageConfig()
    request_path: str = ""

    @property
    def model_config(self) -> ModelConfig:
        return ModelConfig(
            model=self.settings.model,
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
        )

    @classmethod
    def from_toml(cls, project_root: Path | None = None) -> ServiceConfig:
        """Load ``[tool.diffsage]`` and apply environment overrides.

        Optional environment variables:
            DIFFSAGE_MODEL, DIFFSAGE_MAX_TOKENS, DIFFSAGE_TEMPERATURE,
            DIFFSAGE_LOG_LEVEL, DIFFSAGE_RATE_LIMIT_REQUESTS,
            DIFFSAGE_RATE_LIMIT_WINDOW_SECONDS, DIFFSAGE_CACHE_ENABLED,
            DIFFSAGE_REQUEST_PATH

        Raises:
            ConfigurationError: On unparsable or out-of-range values.
        """
        settings = load_diffsage_config(project_root)
        overrides: dict[str, object] = {}

        if model := os.environ.get("DIFFSAGE_MODEL"):
            overrides["model"] = model
        if raw := os.environ.get("DIFFSAGE_MAX_TOKENS"):
            overrides["max_tokens"] = _parse_int("DIFFSAGE_MAX_TOKENS", raw)
        if raw := os.environ.get("DIFFSAGE_TEMPERATURE"):
            overrides["temperature"] = _parse_float("DIFFSAGE_TEMPERATURE", raw)
        if raw := os.environ.get("DIFFSAGE_LOG_LEVEL"):
            overrides["log_level"] = raw.strip().upper()
        if raw := os.environ.get("DIFFSAGE_RATE_LIMIT_REQUESTS"):
            overrides["rate_limit_requests"] = _parse_int(
                "DIFFSAGE_RATE_LIMIT_REQUESTS", raw
            )
        if raw := os.environ.get("DIFFSAGE_RATE_LIMIT_WINDOW_SECONDS"):
            overrides["rate_limit_window_seconds"] = _parse_float(
                "DIFFSAGE_RATE_LIMIT_WINDOW_SECONDS", raw
            )
        if raw := os.environ.get("DIFFSAGE_CACHE_ENABLED"):
            overrides["cache_enabled"] = _parse_bool(raw)

        if overrides:
            settings = dataclasses.replace(settings, **overrides)  # type: ignore[arg-type]
            validate_config(settings)

        return cls(
            settings=settings,
            request_path=os.environ.get("DIFFSAGE_REQUEST_PATH", ""),
        )
