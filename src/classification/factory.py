# src/classification/factory.py - v2
"""Provider selection and service availability checks.

The provider variant is chosen once per run from settings; the rest of the
pipeline only sees ``BaseClassificationProvider``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from iconnormalizer.classification.prompt_builder import PromptBuilder
from iconnormalizer.classification.provider import (
    BaseClassificationProvider,
    CloudClassificationProvider,
    LocalClassificationProvider,
)
from iconnormalizer.classification.response_parser import ResponseParser
from iconnormalizer.config.settings import Settings
from iconnormalizer.core.errors import ProviderConfigurationError
from iconnormalizer.llm.base_client import BaseLLMClient
from iconnormalizer.llm.client_factory import create_llm_client
from iconnormalizer.llm.retry import RetryPolicy
from iconnormalizer.render.rasterizer import BaseRenderer, SvgRasterizer

logger = logging.getLogger(__name__)

_PROVIDER_VARIANTS: dict[str, type[BaseClassificationProvider]] = {
    "openai": CloudClassificationProvider,
    "ollama": LocalClassificationProvider,
}

_PROVIDER_HELP: dict[str, str] = {
    "openai": (
        "OpenAI setup:\n"
        "  1. Create an API key at https://platform.openai.com/api-keys\n"
        "  2. export OPENAI_API_KEY=sk-...\n"
        "  3. Optionally pick a vision model with --model (default gpt-4o)"
    ),
    "ollama": (
        "Ollama setup:\n"
        "  1. Install Ollama from https://ollama.com\n"
        "  2. Start the service: ollama serve\n"
        "  3. Pull a vision model: ollama pull minicpm-v\n"
        "  4. Point --base-url at the service if it is not on localhost:11434"
    ),
}


@dataclass
class ServiceStatus:
    """Result of a pre-flight availability check."""

    available: bool
    message: str = ""
    models: list[str] = field(default_factory=list)


def retry_policy_for(settings: Settings) -> RetryPolicy:
    """Retry policy for the configured provider.

    The local service gets ``retry_attempts``; the hosted API
    ``cloud_retry_attempts``.
    """
    attempts = (
        settings.retry_attempts if settings.provider == "ollama"
        else settings.cloud_retry_attempts
    )
    return RetryPolicy(
        max_attempts=attempts,
        base_delay_s=settings.retry_base_delay_s,
        backoff_factor=settings.retry_backoff_factor,
        max_delay_s=settings.retry_max_delay_s,
    )


def create_provider(
    settings: Settings,
    renderer: BaseRenderer | None = None,
    client: BaseLLMClient | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> BaseClassificationProvider:
    """Build the classification provider selected by ``settings.provider``."""
    variant = _PROVIDER_VARIANTS[settings.provider]
    llm = client or create_llm_client(settings)
    provider = variant(
        llm,
        renderer or SvgRasterizer(),
        parser=ResponseParser(default_category=settings.default_category),
        prompts=PromptBuilder(
            default_category=settings.default_category, tag_language=settings.tag_language,
        ),
        retry_policy=retry_policy_for(settings),
        timeout_s=settings.timeout_s,
        render_size=settings.render_size,
        max_concurrent=settings.max_concurrent,
        slice_delay_s=settings.slice_delay_ms / 1000,
        stagger_delay_s=settings.stagger_delay_ms / 1000,
        sleep=sleep,
    )
    logger.info("Using %s (%s)", provider.provider_id, variant.__name__)
    return provider


def _model_matches(wanted: str, available: str) -> bool:
    if wanted == available:
        return True
    return ":" not in wanted and available == f"{wanted}:latest"


async def check_service(
    settings: Settings,
    client: BaseLLMClient | None = None,
) -> ServiceStatus:
    """Check that the configured backend can serve the configured model.

    Never raises for configuration problems; they are reported in the
    returned status.
    """
    if settings.provider == "openai":
        if not settings.openai_api_key:
            return ServiceStatus(False, "OpenAI API key not configured (OPENAI_API_KEY)")
        return ServiceStatus(True, f"OpenAI API key configured, model {settings.model_id}")

    llm = client or create_llm_client(settings)
    try:
        models = await asyncio.wait_for(llm.list_models(), timeout=settings.timeout_s)
    except ProviderConfigurationError as e:
        message = f"{e} {e.remediation}".strip()
        return ServiceStatus(False, message)
    except Exception as e:
        return ServiceStatus(False, f"Ollama service check failed: {e}")

    if not any(_model_matches(settings.model_id, name) for name in models):
        return ServiceStatus(
            False,
            f"Model {settings.model_id} is not installed. "
            f"Run 'ollama pull {settings.model_id}'.",
            models,
        )
    return ServiceStatus(True, f"Ollama is running, model {settings.model_id} available", models)


def provider_help(provider: str) -> str:
    """Setup instructions for a provider, or the list of providers."""
    if provider in _PROVIDER_HELP:
        return _PROVIDER_HELP[provider]
    return "Supported providers: " + ", ".join(sorted(_PROVIDER_HELP))
