# src/llm/adapters/openai_adapter.py - v2
"""OpenAI vision adapter implementing BaseLLMClient.

Uses the official openai SDK (AsyncOpenAI, chat completions).
"""

from __future__ import annotations

import base64
import time
from typing import Any

from iconnormalizer.core.errors import (
    ProviderConfigurationError,
    ProviderTimeoutError,
    TransientProviderError,
)
from iconnormalizer.llm.base_client import BaseLLMClient
from iconnormalizer.llm.models import GenerationOptions, ImageInput, LLMResponse, Message

API_KEY_REMEDIATION = (
    "Set the OPENAI_API_KEY environment variable "
    "(create a key at https://platform.openai.com/api-keys)."
)


class OpenAIAdapter(BaseLLMClient):
    """OpenAI GPT vision adapter."""

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str = "",
        timeout_s: float = 30.0,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._client: Any = None

    def _get_client(self) -> Any:
        if not self._api_key:
            raise ProviderConfigurationError(
                "OpenAI API key not configured", API_KEY_REMEDIATION,
            )
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self._api_key, timeout=self._timeout_s, max_retries=0,
            )
        return self._client

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        options: GenerationOptions | None = None,
    ) -> LLMResponse:
        opts = options or GenerationOptions()
        client = self._get_client()

        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})

        content_parts: list[dict[str, Any]] = []
        for m in messages:
            content_parts.append({"type": "text", "text": m.content})
        for img in images:
            b64 = base64.b64encode(img.data).decode()
            content_parts.append({
                "type": "image_url",
                "image_url": {"url": f"data:{img.media_type};base64,{b64}"},
            })
        oai_messages.append({"role": "user", "content": content_parts})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": oai_messages,
            "max_tokens": opts.max_tokens,
            "temperature": opts.temperature,
        }
        if opts.top_p is not None:
            kwargs["top_p"] = opts.top_p
        if opts.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        t0 = time.monotonic()
        try:
            resp = await client.chat.completions.create(**kwargs)
        except Exception as exc:
            raise self._translate_error(exc) from exc
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0] if resp.choices else None
        usage = resp.usage
        return LLMResponse(
            content=(choice.message.content if choice else None) or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            raw_response=resp,
        )

    async def list_models(self) -> list[str]:
        client = self._get_client()
        try:
            page = await client.models.list()
        except Exception as exc:
            raise self._translate_error(exc) from exc
        return [m.id for m in page.data]

    def _translate_error(self, exc: Exception) -> Exception:
        import openai

        if isinstance(exc, openai.AuthenticationError):
            return ProviderConfigurationError(
                f"OpenAI rejected the API key: {exc}", API_KEY_REMEDIATION,
            )
        if isinstance(exc, openai.PermissionDeniedError):
            return ProviderConfigurationError(
                f"OpenAI denied access to model {self._model}: {exc}",
                "Check that the API key's project has access to the model.",
            )
        if isinstance(exc, openai.NotFoundError):
            return ProviderConfigurationError(
                f"OpenAI model {self._model} not found",
                "Pass a vision-capable model with --model (e.g. gpt-4o).",
            )
        if isinstance(exc, openai.APITimeoutError):
            return ProviderTimeoutError(self._timeout_s)
        if isinstance(exc, (openai.APIConnectionError, openai.RateLimitError,
                            openai.InternalServerError)):
            return TransientProviderError(f"OpenAI request failed: {exc}")
        return exc

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model
