# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides a deterministic fake renderer, a mock vision LLM client and
isolated settings. No network and no native rendering.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from icon_factories import FakeRenderer, llm_response
from iconnormalizer.config.settings import Settings


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def mock_llm_client() -> AsyncMock:
    """Mock BaseLLMClient answering every request with valid JSON."""
    client = AsyncMock()
    client.complete_with_vision = AsyncMock(return_value=llm_response())
    client.list_models = AsyncMock(return_value=["mock-vision:latest"])
    client.provider_name = "mock"
    client.model = "mock-vision"
    return client


@pytest.fixture
def sleep_calls() -> list[float]:
    return []


@pytest.fixture
def recording_sleep(sleep_calls: list[float]):
    """Async sleep replacement that records requested delays."""

    async def _sleep(delay: float) -> None:
        sleep_calls.append(delay)

    return _sleep


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment, writing below tmp_path."""
    return Settings(
        _env_file=None,
        output_dir=tmp_path / "processed",
        provider="ollama",
        model="mock-vision",
        backup=False,
        slice_delay_ms=0,
        stagger_delay_ms=0,
        retry_base_delay_s=0.0,
        retry_max_delay_s=0.0,
    )
