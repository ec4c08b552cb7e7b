# src/classification/provider.py - v2
"""Classification providers: render, prompt, call a vision backend, parse.

Two variants share one pipeline and differ only in how a request is shaped
for their backend. Both compose a ``RetryPolicy``; the factory decides the
attempt budget per variant.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Sequence

from iconnormalizer.classification.dispatcher import dispatch_windowed
from iconnormalizer.classification.prompt_builder import PromptBuilder
from iconnormalizer.classification.response_parser import ResponseParser
from iconnormalizer.config.taxonomy import ERROR_CATEGORY
from iconnormalizer.core.errors import ProviderConfigurationError, RetryExhaustedError
from iconnormalizer.core.models import ClassificationRecord, Item
from iconnormalizer.llm.base_client import BaseLLMClient
from iconnormalizer.llm.models import GenerationOptions, ImageInput, LLMResponse, Message
from iconnormalizer.llm.retry import RetryPolicy, run_with_retry
from iconnormalizer.logging.context import item_scope
from iconnormalizer.render.rasterizer import BaseRenderer

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def error_record(exc: BaseException) -> ClassificationRecord:
    """Record stored for an item whose classification failed."""
    cause = exc.last_error if isinstance(exc, RetryExhaustedError) else exc
    return ClassificationRecord(
        category=ERROR_CATEGORY,
        tags=[],
        confidence=0.0,
        reasoning=f"Analysis failed: {cause}",
        failed=True,
    )


class BaseClassificationProvider(ABC):
    """Classify icons with a vision backend."""

    def __init__(
        self,
        client: BaseLLMClient,
        renderer: BaseRenderer,
        *,
        parser: ResponseParser | None = None,
        prompts: PromptBuilder | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout_s: float | None = 30.0,
        render_size: int = 384,
        max_concurrent: int = 3,
        slice_delay_s: float = 0.5,
        stagger_delay_s: float = 0.2,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._renderer = renderer
        self._parser = parser or ResponseParser()
        self._prompts = prompts or PromptBuilder()
        self._policy = retry_policy or RetryPolicy()
        self._timeout_s = timeout_s
        self._render_size = render_size
        self._max_concurrent = max_concurrent
        self._slice_delay_s = slice_delay_s
        self._stagger_delay_s = stagger_delay_s
        self._sleep = sleep

    @property
    def provider_id(self) -> str:
        """``provider:model`` identifier recorded in run summaries."""
        return f"{self._client.provider_name}:{self._client.model}"

    @property
    def model(self) -> str:
        return self._client.model

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._policy

    def build_prompt(self, item: Item) -> str:
        return self._prompts.build(item.display_name)

    async def classify(self, item: Item, prompt: str) -> ClassificationRecord:
        """Classify one item.

        Raises:
            RenderError: If the item cannot be rasterized.
            ProviderConfigurationError: Backend misconfigured (fatal).
            RetryExhaustedError: Every attempt failed.
        """
        png = await asyncio.to_thread(
            self._renderer.render, item.raw_content, self._render_size
        )
        image = ImageInput(data=png, media_type="image/png", source_id=item.id)

        response: LLMResponse = await run_with_retry(
            self._request,
            image,
            prompt,
            policy=self._policy,
            label=item.display_name,
            timeout_s=self._timeout_s,
            sleep=self._sleep,
        )
        logger.debug(
            "%s answered in %dms (%d/%d tokens)",
            self.provider_id, response.latency_ms,
            response.input_tokens, response.output_tokens,
        )
        return self._parser.parse(response.content)

    async def classify_batch(
        self,
        items: Sequence[Item],
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, ClassificationRecord]:
        """Classify items through the bounded dispatch window.

        Per-item failures become ``error`` records. Configuration errors
        propagate and abort the batch.
        """
        return await dispatch_windowed(
            items,
            self._classify_contained,
            width=self._max_concurrent,
            slice_delay_s=self._slice_delay_s,
            stagger_delay_s=self._stagger_delay_s,
            cancel_event=cancel_event,
            sleep=self._sleep,
        )

    async def _classify_contained(self, item: Item) -> ClassificationRecord:
        with item_scope(item.id):
            try:
                record = await self.classify(item, self.build_prompt(item))
            except ProviderConfigurationError:
                raise
            except Exception as e:
                logger.error("Classification failed for %s: %s", item.display_name, e)
                return error_record(e)
            logger.info(
                "Classified %s as %s (%.2f)", item.display_name, record.category, record.confidence,
            )
            return record

    @abstractmethod
    async def _request(self, image: ImageInput, prompt: str) -> LLMResponse:
        """Send one classification request to the backend."""


class CloudClassificationProvider(BaseClassificationProvider):
    """Hosted vision API (OpenAI chat completions)."""

    OPTIONS = GenerationOptions(max_tokens=500, temperature=0.3)

    async def _request(self, image: ImageInput, prompt: str) -> LLMResponse:
        return await self._client.complete_with_vision(
            messages=[Message(role="user", content=prompt)],
            images=[image],
            options=self.OPTIONS,
        )


class LocalClassificationProvider(BaseClassificationProvider):
    """Self-hosted inference service (Ollama), constrained to JSON output."""

    OPTIONS = GenerationOptions(max_tokens=300, temperature=0.2, top_p=0.9, json_mode=True)

    async def _request(self, image: ImageInput, prompt: str) -> LLMResponse:
        return await self._client.complete_with_vision(
            messages=[Message(role="user", content=prompt)],
            images=[image],
            system=self._prompts.system_prompt,
            options=self.OPTIONS,
        )
