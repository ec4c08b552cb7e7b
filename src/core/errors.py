# src/core/errors.py - v1
"""Exception taxonomy for the processing pipeline.

Configuration errors are fatal and never retried. Transient errors are
retried by the retry policy and, once exhausted, degrade to a per-item
``error`` record. Parse errors never surface as exceptions at all.
"""

from __future__ import annotations


class IconNormalizerError(Exception):
    """Base class for all pipeline errors."""


class ProviderConfigurationError(IconNormalizerError):
    """Backend unreachable, credentials missing/invalid, or model unknown.

    Carries remediation text shown to the user by the CLI.
    """

    def __init__(self, message: str, remediation: str = "") -> None:
        self.remediation = remediation
        super().__init__(message)


class TransientProviderError(IconNormalizerError):
    """Connection reset, EOF, rate limiting or server-side failure."""


class ProviderTimeoutError(TransientProviderError):
    """A single backend call exceeded its deadline."""

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(f"Request timed out after {timeout_s:.1f}s")


class RenderError(IconNormalizerError):
    """An icon could not be rasterized."""


class RetryExhaustedError(IconNormalizerError):
    """All attempts of a retried call failed."""

    def __init__(self, label: str, attempts: int, last_error: Exception) -> None:
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"'{label}' failed after {attempts} attempts: {last_error}")
