"""Unified internal error taxonomy for LLM runtime failures."""

from __future__ import annotations

import asyncio
from enum import Enum

import litellm


class AIRuntimeErrorCategory(str, Enum):
    """Stable categories used across the LLM runtime path."""

    RATE_LIMIT_OR_QUOTA = "rate_limit_or_quota"
    TIMEOUT = "timeout"
    SCHEMA_VALIDATION = "schema_validation"
    PROVIDER_FAILURE = "provider_failure"
    NOT_CONFIGURED = "not_configured"


class AIRuntimeError(RuntimeError):
    """Base exception for all runtime failures produced by the LLM client."""

    def __init__(self, message: str, *, category: AIRuntimeErrorCategory) -> None:
        super().__init__(message)
        self.category = category


class AIRateLimitOrQuotaError(AIRuntimeError):
    """Raised when the provider reports quota exhaustion or rate limiting."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=AIRuntimeErrorCategory.RATE_LIMIT_OR_QUOTA)


class AITimeoutError(AIRuntimeError):
    """Raised when an LLM runtime operation exceeds timeout."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=AIRuntimeErrorCategory.TIMEOUT)


class AISchemaValidationError(AIRuntimeError):
    """Raised when structured output fails schema validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=AIRuntimeErrorCategory.SCHEMA_VALIDATION)


class AIProviderError(AIRuntimeError):
    """Raised for generic provider-side runtime failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=AIRuntimeErrorCategory.PROVIDER_FAILURE)


class AINotConfiguredError(AIRuntimeError):
    """Raised when no model is configured; never retried."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=AIRuntimeErrorCategory.NOT_CONFIGURED)


def classify_provider_error(error: Exception) -> AIRuntimeError:
    """Map a raw litellm/asyncio failure onto the runtime taxonomy."""
    if isinstance(error, AIRuntimeError):
        return error
    if isinstance(error, (asyncio.TimeoutError, litellm.Timeout)):
        return AITimeoutError(f"Model request timed out: {error}")
    if isinstance(error, litellm.RateLimitError):
        return AIRateLimitOrQuotaError(f"Model provider rate limited the request: {error}")
    return AIProviderError(f"Model completion failed: {error}")
