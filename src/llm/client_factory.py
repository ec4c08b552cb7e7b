# src/llm/client_factory.py - v4
"""Factory: instantiate a vision LLM client from a provider name."""

from __future__ import annotations

import importlib
import logging

from iconnormalizer.config.settings import Settings
from iconnormalizer.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name → adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "iconnormalizer.llm.adapters.openai_adapter.OpenAIAdapter",
    "ollama": "iconnormalizer.llm.adapters.ollama_adapter.OllamaAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def available_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def create_llm_client(settings: Settings, **kwargs: object) -> BaseLLMClient:
    """Instantiate the adapter for ``settings.provider``.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    provider = settings.provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(available_providers())}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = settings.model_id
    if provider == "openai":
        init_kwargs.setdefault("api_key", settings.openai_api_key)
        init_kwargs.setdefault("timeout_s", settings.timeout_s)
    elif provider == "ollama":
        init_kwargs.setdefault("host", settings.base_url)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, settings.model_id)
    return adapter_cls(**init_kwargs)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
