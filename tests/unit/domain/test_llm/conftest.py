"""Fixtures for LLM domain tests."""

from __future__ import annotations

import pytest

from diffsage.domain.llm.value_objects import ModelConfig


@pytest.fixture
def gemini_config() -> ModelConfig:
    return ModelConfig(model="google-gla:gemini-2.5-flash", max_tokens=65_536)


@pytest.fixture
def openai_config() -> ModelConfig:
    return ModelConfig(model="openai:gpt-4o", max_tokens=16_000, temperature=0.2)
