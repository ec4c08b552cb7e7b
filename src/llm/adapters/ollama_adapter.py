# src/llm/adapters/ollama_adapter.py - v2
"""Ollama local inference adapter implementing BaseLLMClient.

Uses the ollama Python SDK. Vision support is model-dependent.
"""

from __future__ import annotations

import base64
import time
from typing import Any

from iconnormalizer.core.errors import (
    ProviderConfigurationError,
    TransientProviderError,
)
from iconnormalizer.llm.base_client import BaseLLMClient
from iconnormalizer.llm.models import GenerationOptions, ImageInput, LLMResponse, Message

# Substrings of errors raised when the connection drops mid-request.
_TRANSIENT_MARKERS = ("eof", "connection reset", "socket hang up", "server disconnected")


class OllamaAdapter(BaseLLMClient):
    """Ollama local inference adapter."""

    def __init__(
        self,
        model: str = "minicpm-v:latest",
        host: str = "http://localhost:11434",
        **kwargs: Any,
    ):
        self._model = model
        self._host = host
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            import ollama

            self._client = ollama.AsyncClient(host=self._host)
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

        msgs: list[dict[str, Any]] = []
        if system:
            msgs.append({"role": "system", "content": system})

        # Combine text + images into single user message
        text = "\n".join(m.content for m in messages)
        img_data = [base64.b64encode(img.data).decode() for img in images]
        msgs.append({"role": "user", "content": text, "images": img_data})

        model_options: dict[str, Any] = {
            "num_predict": opts.max_tokens,
            "temperature": opts.temperature,
        }
        if opts.top_p is not None:
            model_options["top_p"] = opts.top_p
        kwargs: dict[str, Any] = {"model": self._model, "messages": msgs, "options": model_options}
        if opts.json_mode:
            kwargs["format"] = "json"

        t0 = time.monotonic()
        try:
            resp = await client.chat(**kwargs)
        except Exception as exc:
            raise self._translate_error(exc) from exc
        latency = int((time.monotonic() - t0) * 1000)

        return LLMResponse(
            content=resp["message"]["content"] or "",
            input_tokens=resp.get("prompt_eval_count") or 0,
            output_tokens=resp.get("eval_count") or 0,
            model=self._model,
            provider="ollama",
            latency_ms=latency,
            raw_response=resp,
        )

    async def list_models(self) -> list[str]:
        client = self._get_client()
        try:
            resp = await client.list()
        except Exception as exc:
            raise self._translate_error(exc) from exc
        names: list[str] = []
        for entry in resp["models"]:
            name = entry.get("model") or entry.get("name")
            if name:
                names.append(name)
        return names

    def _translate_error(self, exc: Exception) -> Exception:
        import ollama

        message = str(exc)
        lowered = message.lower()
        if isinstance(exc, ollama.ResponseError):
            if exc.status_code == 404 or ("model" in lowered and "not found" in lowered):
                return ProviderConfigurationError(
                    f"Model {self._model} not found on {self._host}",
                    f"Download it with 'ollama pull {self._model}'.",
                )
            return TransientProviderError(f"Ollama returned an error: {message}")
        if any(marker in lowered for marker in _TRANSIENT_MARKERS):
            return TransientProviderError(
                f"Ollama connection closed unexpectedly: {message}"
            )
        if isinstance(exc, ConnectionError) or "connection refused" in lowered:
            return ProviderConfigurationError(
                f"Cannot connect to Ollama at {self._host}",
                "Start the service with 'ollama serve' and check --base-url.",
            )
        return exc

    @property
    def provider_name(self) -> str:
        return "ollama"

    @property
    def model(self) -> str:
        return self._model
