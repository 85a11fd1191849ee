"""Model providers for context detection."""

from .base import (
    AuthenticationError,
    ContextProvider,
    MalformedProviderResponse,
    ModelProviderUnavailable,
    ProviderError,
    ProviderHealth,
    ProviderTimeout,
    RateLimitError,
    is_retriable_error,
    parse_context_response,
    with_retry,
)
from .chain import ChainResult, ProviderChain

__all__ = [
    "AuthenticationError",
    "ChainResult",
    "ContextProvider",
    "MalformedProviderResponse",
    "ModelProviderUnavailable",
    "ProviderChain",
    "ProviderError",
    "ProviderHealth",
    "ProviderTimeout",
    "RateLimitError",
    "is_retriable_error",
    "parse_context_response",
    "with_retry",
]
