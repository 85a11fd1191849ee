"""Base protocol and types for context-detection model providers."""

import json
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import ValidationError

from kg_memory.constants import LAYERS
from kg_memory.models import ProviderContext

ProviderKind = Literal["local", "cloud", "rule-based"]

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass
class ProviderHealth:
    """Point-in-time health of a provider."""

    name: str
    available: bool
    kind: ProviderKind
    latency_ms: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "available": self.available,
            "kind": self.kind,
            "latency_ms": round(self.latency_ms, 1) if self.latency_ms is not None else None,
            "error": self.error,
        }


class ContextProvider(ABC):
    """Abstract base for model providers that classify task text."""

    kind: ProviderKind = "cloud"

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name used in diagnostics."""
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Check whether the provider can currently serve requests."""
        ...

    @abstractmethod
    async def detect_context(self, text: str) -> ProviderContext:
        """Classify ``text``.

        Raises:
            ProviderError: On any failure (network, auth, malformed output).
        """
        ...

    async def health_info(self) -> ProviderHealth:
        start = time.perf_counter()
        try:
            available = await self.is_available()
        except Exception as e:
            return ProviderHealth(self.name, False, self.kind, error=str(e))
        return ProviderHealth(
            self.name, available, self.kind, latency_ms=(time.perf_counter() - start) * 1000
        )


class ProviderError(Exception):
    """Base exception for provider errors."""

    def __init__(
        self,
        message: str,
        provider: str,
        retriable: bool = False,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.retriable = retriable
        self.status_code = status_code


class ModelProviderUnavailable(ProviderError):
    """No provider in the chain produced a result."""

    def __init__(self, provider: str, errors: dict[str, str] | None = None):
        self.errors = dict(errors or {})
        detail = "; ".join(f"{name}: {err}" for name, err in self.errors.items())
        super().__init__(
            f"Model provider unavailable ({provider})" + (f": {detail}" if detail else ""),
            provider=provider,
            retriable=False,
            status_code=503,
        )


class ProviderTimeout(ProviderError):
    """Provider did not answer within the configured timeout."""

    def __init__(self, provider: str, timeout_seconds: float):
        super().__init__(
            f"{provider} timed out after {timeout_seconds:.1f}s",
            provider=provider,
            retriable=False,
            status_code=504,
        )
        self.timeout_seconds = timeout_seconds


class MalformedProviderResponse(ProviderError):
    """Provider answered with something that is not a detection result."""

    def __init__(self, provider: str, detail: str):
        super().__init__(
            f"Malformed response from {provider}: {detail}", provider=provider, retriable=False
        )


class RateLimitError(ProviderError):
    """Provider rate limit exceeded."""

    def __init__(self, provider: str, retry_after: float | None = None):
        super().__init__(
            f"Rate limit exceeded for {provider}",
            provider=provider,
            retriable=True,
            status_code=429,
        )
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    """Provider authentication failed."""

    def __init__(self, provider: str):
        super().__init__(
            f"Authentication failed for {provider}",
            provider=provider,
            retriable=False,
            status_code=401,
        )


# Retry logic for transient errors
def is_retriable_error(exc: BaseException) -> bool:
    """Check if an error is retriable (transient).

    Retriable errors include HTTP 429, 5xx and ProviderError with
    retriable=True. Timeouts are not retried; the chain moves on instead.
    """
    if isinstance(exc, ProviderTimeout):
        return False
    if isinstance(exc, ProviderError):
        if exc.retriable:
            return True
        if exc.status_code:
            return exc.status_code == 429 or exc.status_code >= 500
        return False

    status_code = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if isinstance(status_code, int):
        return status_code == 429 or status_code >= 500

    return False


def with_retry(func=None, *, attempts: int = 3, min_wait: float = 0.5, max_wait: float = 4.0):
    """Decorator that adds retry logic with exponential backoff.

    Uses tenacity:
    - Stops after ``attempts`` attempts
    - Random exponential backoff between ``min_wait`` and ``max_wait`` seconds
    - Only retries transient errors (429, 5xx)

    Backoff is short because every provider call is already racing the
    chain's timeout.

    Example:
        @with_retry
        async def detect_context(self, text):
            ...
    """
    from tenacity import (
        retry,
        retry_if_exception,
        stop_after_attempt,
        wait_random_exponential,
    )

    decorator = retry(
        retry=retry_if_exception(is_retriable_error),
        stop=stop_after_attempt(attempts),
        wait=wait_random_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        reraise=True,
    )
    if func is None:
        return decorator
    return decorator(func)


def build_detection_prompt(text: str) -> str:
    """Prompt asking a model for a JSON detection result."""
    layers = ", ".join(LAYERS)
    return (
        "Classify the following software development task.\n"
        f"Architectural layers: {layers}. Use \"*\" if no layer applies.\n"
        "Respond with a single JSON object and nothing else, with keys:\n"
        '  "layer": one layer tag,\n'
        '  "topics": list of short lower-case topic names (e.g. security, api, testing),\n'
        '  "keywords": list of significant words from the task,\n'
        '  "technologies": list of technologies mentioned,\n'
        '  "confidence": number between 0 and 1.\n\n'
        f"Task: {text}"
    )


def parse_context_response(content: str, provider: str) -> ProviderContext:
    """Extract and validate the first JSON object in model output.

    Raises:
        MalformedProviderResponse: No JSON object, invalid JSON or wrong shape.
    """
    match = _JSON_OBJECT_RE.search(content or "")
    if not match:
        raise MalformedProviderResponse(provider, "no JSON object in response")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise MalformedProviderResponse(provider, f"invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedProviderResponse(provider, "response is not an object")
    try:
        return ProviderContext.model_validate(payload)
    except ValidationError as e:
        raise MalformedProviderResponse(provider, str(e)) from e
