# src/config/settings.py - v3
"""Typed configuration loaded from environment / .env via pydantic-settings.

Settings are built once per process (``load_settings``) and handed to every
component constructor. The instance is frozen: CLI flags are applied as
overrides at construction time, never by mutating a shared object.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from iconnormalizer.config.taxonomy import DEFAULT_CATEGORY


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o",
    "ollama": "minicpm-v:latest",
}


class Settings(BaseSettings):
    """Application settings loaded from ICONNORM_* env vars and .env."""

    model_config = SettingsConfigDict(
        env_prefix="ICONNORM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # === Processing ===
    output_dir: Path = Path("./processed")
    backup: bool = True
    dry_run: bool = False
    similarity_threshold: float = 0.8
    near_duplicate_bucket_bytes: int = 0
    exclude_dirs: str = "backup,processed,duplicates"

    # === Provider ===
    provider: Literal["openai", "ollama"] = Field(
        default="openai",
        validation_alias=AliasChoices("ICONNORM_PROVIDER", "AI_PROVIDER", "provider"),
    )
    model: str = ""
    base_url: str = Field(
        default="http://localhost:11434",
        validation_alias=AliasChoices("ICONNORM_BASE_URL", "OLLAMA_BASE_URL", "base_url"),
    )
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "ICONNORM_OPENAI_API_KEY", "OPENAI_API_KEY", "openai_api_key",
        ),
    )

    # === Concurrency / retry ===
    max_concurrent: int = 3
    timeout_ms: int = 30_000
    retry_attempts: int = 3
    cloud_retry_attempts: int = 1
    retry_base_delay_s: float = 1.0
    retry_backoff_factor: float = 1.5
    retry_max_delay_s: float = 10.0
    slice_delay_ms: int = 500
    stagger_delay_ms: int = 200

    # === Classification ===
    default_category: str = DEFAULT_CATEGORY
    render_size: int = 384
    tag_language: Literal["en", "zh"] = "en"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("similarity_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:  # noqa: N805
        if v < 0:
            raise ValueError("similarity_threshold must be >= 0")
        return v

    @field_validator("default_category")
    @classmethod
    def validate_default_category(cls, v: str) -> str:  # noqa: N805
        v = v.strip()
        if not v:
            raise ValueError("default_category must not be empty")
        return v

    @field_validator("max_concurrent", "retry_attempts", "cloud_retry_attempts")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("value must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field consistency rules."""
        errors: list[str] = []

        if self.timeout_ms <= 0:
            errors.append("TIMEOUT_MS must be > 0")
        if self.retry_backoff_factor < 1.0:
            errors.append("RETRY_BACKOFF_FACTOR must be >= 1.0")
        if self.retry_max_delay_s < self.retry_base_delay_s:
            errors.append("RETRY_MAX_DELAY_S must be >= RETRY_BASE_DELAY_S")
        if self.slice_delay_ms < 0 or self.stagger_delay_ms < 0:
            errors.append("SLICE_DELAY_MS and STAGGER_DELAY_MS must be >= 0")
        if self.render_size < 32:
            errors.append("RENDER_SIZE must be >= 32")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def model_id(self) -> str:
        """Configured model, or the provider's default model."""
        return self.model or DEFAULT_MODELS[self.provider]

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000

    @property
    def exclude_dirs_list(self) -> list[str]:
        """Parse comma-separated excluded directory names."""
        return [d.strip() for d in self.exclude_dirs.split(",") if d.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from env/.env with optional overrides.

    ``None`` overrides are dropped so unset CLI flags fall through to the
    environment.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    clean = {k: v for k, v in overrides.items() if v is not None}
    return Settings(**clean)  # type: ignore[arg-type]
