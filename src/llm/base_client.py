# src/llm/base_client.py - v2
"""Abstract vision LLM client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from iconnormalizer.llm.models import GenerationOptions, ImageInput, LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for vision-capable LLM backends.

    Adapters translate SDK exceptions into the pipeline taxonomy:
    ``ProviderConfigurationError`` for unreachable services, bad
    credentials or unknown models, ``TransientProviderError`` for
    everything worth retrying.
    """

    @abstractmethod
    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        options: GenerationOptions | None = None,
    ) -> LLMResponse:
        """Vision-enabled completion (images + text)."""

    @abstractmethod
    async def list_models(self) -> list[str]:
        """Names of models the backend can serve."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, ollama)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier requests are sent to."""
