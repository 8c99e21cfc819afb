"""Builds the pydantic-ai agents behind the review oracle.

One agent per oracle operation; each is created with the operation's output
schema and system prompt, and shares the model settings of ``ModelConfig``.
"""

from __future__ import annotations

from pydantic_ai import Agent
from pydantic_ai.settings import ModelSettings

from diffsage.domain.llm.value_objects import ModelConfig


def model_settings(config: ModelConfig) -> ModelSettings:
    """Generation settings shared by every oracle operation."""
    return ModelSettings(max_tokens=config.max_tokens, temperature=config.temperature)


def create_agent[T](
    config: ModelConfig,
    output_type: type[T],
    system_prompt: str,
    *,
    output_retries: int = 3,
    name: str | None = None,
) -> Agent[None, T]:
    """Build an agent that answers with *output_type*.

    ``output_retries`` bounds how often the model may re-answer after its
    output fails schema validation; transport failures are retried by
    ``RetryingOracle`` instead. ``name`` labels the agent in pydantic-ai's
    own logs and traces.
    """
    return Agent(
        model=config.model,
        output_type=output_type,
        system_prompt=system_prompt,
        model_settings=model_settings(config),
        retries=output_retries,
        name=name,
    )
