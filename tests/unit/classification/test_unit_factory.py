# tests/unit/classification/test_unit_factory.py - v2
"""Tests for classification/factory.py - provider selection, service check."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from icon_factories import FakeRenderer, make_item
from iconnormalizer.classification.factory import (
    check_service,
    create_provider,
    provider_help,
    retry_policy_for,
)
from iconnormalizer.classification.provider import (
    CloudClassificationProvider,
    LocalClassificationProvider,
)
from iconnormalizer.config.settings import Settings
from iconnormalizer.core.errors import ProviderConfigurationError


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestCreateProvider:
    def test_local_variant(self, mock_llm_client):
        provider = create_provider(
            _settings(provider="ollama"), renderer=FakeRenderer(), client=mock_llm_client,
        )
        assert isinstance(provider, LocalClassificationProvider)
        assert provider.retry_policy.max_attempts == 3

    def test_cloud_variant(self, mock_llm_client):
        provider = create_provider(
            _settings(provider="openai"), renderer=FakeRenderer(), client=mock_llm_client,
        )
        assert isinstance(provider, CloudClassificationProvider)
        assert provider.retry_policy.max_attempts == 1

    def test_builds_client_from_settings(self):
        provider = create_provider(
            _settings(provider="ollama", model="llava:13b"), renderer=FakeRenderer(),
        )
        assert provider.provider_id == "ollama:llava:13b"

    @pytest.mark.asyncio
    async def test_tag_language_reaches_request(self, mock_llm_client):
        provider = create_provider(
            _settings(provider="ollama", tag_language="zh"),
            renderer=FakeRenderer(), client=mock_llm_client,
        )
        item = make_item("home.svg")

        await provider.classify(item, provider.build_prompt(item))

        kwargs = mock_llm_client.complete_with_vision.call_args.kwargs
        assert "必须使用中文" in kwargs["system"]
        assert "Write the tags and the reasoning in Chinese" in kwargs["messages"][0].content


class TestRetryPolicyFor:
    def test_values_from_settings(self):
        policy = retry_policy_for(_settings(
            provider="ollama", retry_attempts=5, retry_base_delay_s=2.0,
            retry_backoff_factor=2.0, retry_max_delay_s=8.0,
        ))
        assert policy.max_attempts == 5
        assert policy.delay_for(0) == 2.0
        assert policy.delay_for(5) == 8.0

    def test_cloud_attempts(self):
        assert retry_policy_for(_settings(provider="openai", cloud_retry_attempts=2)).max_attempts == 2


class TestCheckService:
    @pytest.mark.asyncio
    async def test_openai_without_key(self):
        status = await check_service(_settings(provider="openai", openai_api_key=""))
        assert not status.available
        assert "API key" in status.message

    @pytest.mark.asyncio
    async def test_openai_with_key(self):
        status = await check_service(_settings(provider="openai", openai_api_key="sk-x"))
        assert status.available

    @pytest.mark.asyncio
    async def test_ollama_model_installed(self, mock_llm_client):
        mock_llm_client.list_models.return_value = ["minicpm-v:latest", "llava:7b"]
        status = await check_service(_settings(provider="ollama"), client=mock_llm_client)
        assert status.available
        assert status.models == ["minicpm-v:latest", "llava:7b"]

    @pytest.mark.asyncio
    async def test_ollama_untagged_model_matches_latest(self, mock_llm_client):
        mock_llm_client.list_models.return_value = ["llava:latest"]
        status = await check_service(_settings(provider="ollama", model="llava"), client=mock_llm_client)
        assert status.available

    @pytest.mark.asyncio
    async def test_ollama_model_missing(self, mock_llm_client):
        mock_llm_client.list_models.return_value = ["llava:7b"]
        status = await check_service(_settings(provider="ollama"), client=mock_llm_client)
        assert not status.available
        assert "ollama pull minicpm-v:latest" in status.message

    @pytest.mark.asyncio
    async def test_ollama_unreachable(self, mock_llm_client):
        mock_llm_client.list_models.side_effect = ProviderConfigurationError(
            "Cannot connect to Ollama", "Start the service with 'ollama serve'",
        )
        status = await check_service(_settings(provider="ollama"), client=mock_llm_client)
        assert not status.available
        assert "ollama serve" in status.message


class TestProviderHelp:
    def test_known(self):
        assert "ollama pull" in provider_help("ollama")
        assert "OPENAI_API_KEY" in provider_help("openai")

    def test_unknown(self):
        assert "openai" in provider_help("other")
