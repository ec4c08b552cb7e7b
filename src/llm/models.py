# src/llm/models.py - v2
"""LLM-specific types: Message, ImageInput, LLMResponse, GenerationOptions."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class ImageInput(BaseModel):
    """Image payload for vision-enabled completions."""

    data: bytes
    media_type: str = "image/png"
    source_id: str | None = None


class GenerationOptions(BaseModel):
    """Sampling knobs passed through to the backend."""

    max_tokens: int = 500
    temperature: float = 0.3
    top_p: float | None = None
    json_mode: bool = False


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str
    provider: str
    latency_ms: int = 0
    raw_response: Any = None
