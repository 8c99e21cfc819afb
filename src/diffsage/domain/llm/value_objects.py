"""Value objects for the LLM bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class RunUsage(Protocol):
    """Shape of the per-run usage report returned by a model run."""

    input_tokens: int | None
    output_tokens: int | None
    requests: int


# =============================================================================
# VALUE OBJECTS
# =============================================================================


@dataclass(frozen=True)
class LLMUsage:
    """Tokens and requests spent by the oracle, summed over its calls."""

    input_tokens: int = 0
    output_tokens: int = 0
    requests: int = 0

    @classmethod
    def from_run(cls, usage: RunUsage) -> LLMUsage:
        """Convert a model run's usage report; missing counts become 0."""
        return cls(
            input_tokens=usage.input_tokens or 0,
            output_tokens=usage.output_tokens or 0,
            requests=usage.requests,
        )

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: LLMUsage) -> LLMUsage:
        return LLMUsage(
            self.input_tokens + other.input_tokens,
            self.output_tokens + other.output_tokens,
            self.requests + other.requests,
        )


@dataclass(frozen=True)
class ModelConfig:
    """Which model reviews the code, and how it generates.

    ``model`` is a pydantic-ai model string such as
    ``"google-gla:gemini-2.5-flash"`` or ``"openai:gpt-4o"``; its prefix
    selects the provider once, at startup.
    """

    model: str
    max_tokens: int
    temperature: float = 0.0

    def __post_init__(self) -> None:
        if not self.model:
            msg = "model must not be empty"
            raise ValueError(msg)
        if self.max_tokens <= 0:
            msg = f"max_tokens must be positive, got {self.max_tokens}"
            raise ValueError(msg)

    @property
    def provider(self) -> str:
        """Provider prefix of the model string (the whole string when unprefixed)."""
        prefix, sep, _ = self.model.partition(":")
        return prefix if sep else self.model
