"""TOML-based configuration loader.

Reads ``[tool.diffsage]`` from ``pyproject.toml`` and produces a typed
``DiffsageConfig`` dataclass. Missing file or missing section: all defaults
apply.
"""

from __future__ import annotations

import logging
import tomllib

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from diffsage.shared.constants import (
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_RATE_LIMIT_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_RETRY_LIMIT,
    DEFAULT_TEMPERATURE,
    MAX_FILE_SIZE_BYTES,
    MAX_FILES_PER_REVIEW,
    MAX_TOTAL_SIZE_BYTES,
)
from diffsage.shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ── defaults ────────────────────────────────────────────────────────────
_DEFAULTS: dict[str, Any] = {
    "model": DEFAULT_MODEL,
    "max_tokens": DEFAULT_MAX_TOKENS,
    "temperature": DEFAULT_TEMPERATURE,
    "log_level": "INFO",
    "strict_diff_parsing": False,
    "retry_limit": DEFAULT_RETRY_LIMIT,
    "cache_enabled": True,
    "cache_max_entries": DEFAULT_CACHE_MAX_ENTRIES,
    "cache_ttl_seconds": DEFAULT_CACHE_TTL_SECONDS,
    "rate_limit_requests": DEFAULT_RATE_LIMIT_REQUESTS,
    "rate_limit_window_seconds": DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    "max_files": MAX_FILES_PER_REVIEW,
    "max_file_size": MAX_FILE_SIZE_BYTES,
    "max_total_size": MAX_TOTAL_SIZE_BYTES,
}

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class DiffsageConfig:
    """Typed configuration produced by the TOML loader."""

    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    log_level: str = "INFO"
    strict_diff_parsing: bool = False
    retry_limit: int = DEFAULT_RETRY_LIMIT
    cache_enabled: bool = True
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    rate_limit_requests: int = DEFAULT_RATE_LIMIT_REQUESTS
    rate_limit_window_seconds: float = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    max_files: int = MAX_FILES_PER_REVIEW
    max_file_size: int = MAX_FILE_SIZE_BYTES
    max_total_size: int = MAX_TOTAL_SIZE_BYTES


def load_diffsage_config(project_root: Path | None = None) -> DiffsageConfig:
    """Load diffsage configuration from ``pyproject.toml``.

    Merge order (later wins): defaults, then ``[tool.diffsage]``.

    Args:
        project_root: Directory containing ``pyproject.toml``.
            Defaults to ``Path.cwd()``.

    Raises:
        ConfigurationError: On TOML parse errors or invalid values.
    """
    if project_root is None:
        project_root = Path.cwd()

    merged: dict[str, Any] = dict(_DEFAULTS)
    tool_section = _read_tool_section(project_root / "pyproject.toml")
    if tool_section is not None:
        _warn_unknown_keys(tool_section)
        merged.update((k, v) for k, v in tool_section.items() if k in _DEFAULTS)

    config = _build(merged)
    validate_config(config)
    return config


def validate_config(config: DiffsageConfig) -> None:
    """Validate value ranges.

    Raises:
        ConfigurationError: On the first out-of-range value.
    """
    if not config.model.strip():
        msg = "model must not be empty"
        raise ConfigurationError(msg)
    if not 0.0 <= config.temperature <= 2.0:
        msg = f"temperature must be between 0.0 and 2.0, got {config.temperature}"
        raise ConfigurationError(msg)
    if config.log_level not in _VALID_LOG_LEVELS:
        valid = ", ".join(sorted(_VALID_LOG_LEVELS))
        msg = f"Invalid log_level {config.log_level!r} (valid: {valid})"
        raise ConfigurationError(msg)

    positive = {
        "max_tokens": config.max_tokens,
        "cache_max_entries": config.cache_max_entries,
        "cache_ttl_seconds": config.cache_ttl_seconds,
        "rate_limit_requests": config.rate_limit_requests,
        "rate_limit_window_seconds": config.rate_limit_window_seconds,
        "max_files": config.max_files,
        "max_file_size": config.max_file_size,
        "max_total_size": config.max_total_size,
    }
    for name, value in positive.items():
        if value <= 0:
            msg = f"{name} must be positive, got {value}"
            raise ConfigurationError(msg)
    if config.retry_limit < 0:
        msg = f"retry_limit must be >= 0, got {config.retry_limit}"
        raise ConfigurationError(msg)


# ── internal helpers ────────────────────────────────────────────────────


def _build(merged: dict[str, Any]) -> DiffsageConfig:
    try:
        return DiffsageConfig(
            model=str(merged["model"]),
            max_tokens=int(merged["max_tokens"]),
            temperature=float(merged["temperature"]),
            log_level=str(merged["log_level"]).upper(),
            strict_diff_parsing=bool(merged["strict_diff_parsing"]),
            retry_limit=int(merged["retry_limit"]),
            cache_enabled=bool(merged["cache_enabled"]),
            cache_max_entries=int(merged["cache_max_entries"]),
            cache_ttl_seconds=float(merged["cache_ttl_seconds"]),
            rate_limit_requests=int(merged["rate_limit_requests"]),
            rate_limit_window_seconds=float(merged["rate_limit_window_seconds"]),
            max_files=int(merged["max_files"]),
            max_file_size=int(merged["max_file_size"]),
            max_total_size=int(merged["max_total_size"]),
        )
    except (TypeError, ValueError) as exc:
        msg = f"Invalid value in [tool.diffsage]: {exc}"
        raise ConfigurationError(msg) from exc


def _read_tool_section(toml_path: Path) -> dict[str, Any] | None:
    """Read ``[tool.diffsage]`` from *toml_path*, or ``None`` if absent."""
    if not toml_path.is_file():
        return None
    try:
        with toml_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Failed to parse {toml_path}: {exc}"
        raise ConfigurationError(msg) from exc
    tool: dict[str, Any] | None = data.get("tool")
    if not isinstance(tool, dict):
        return None
    section: dict[str, Any] | None = tool.get("diffsage")
    if not isinstance(section, dict):
        return None
    return section


def _warn_unknown_keys(section: dict[str, Any]) -> None:
    """Log a warning for any keys not in the known set."""
    for key in section:
        if key not in _DEFAULTS:
            logger.warning("Unknown key in [tool.diffsage]: %r", key)
