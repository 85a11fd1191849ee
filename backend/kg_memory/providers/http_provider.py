"""Context providers that talk plain HTTP (Ollama, OpenAI-compatible APIs)."""

import logging
from typing import Any

import httpx

from kg_memory.models import ProviderContext
from kg_memory.providers.base import (
    AuthenticationError,
    ContextProvider,
    ProviderError,
    RateLimitError,
    build_detection_prompt,
    parse_context_response,
    with_retry,
)

logger = logging.getLogger(__name__)


def _raise_for_status(response: httpx.Response, provider: str) -> None:
    """Map HTTP error statuses onto provider errors."""
    if response.status_code < 400:
        return
    if response.status_code == 429:
        raise RateLimitError(provider)
    if response.status_code in (401, 403):
        raise AuthenticationError(provider)
    raise ProviderError(
        f"{provider} returned HTTP {response.status_code}: {response.text[:200]}",
        provider=provider,
        retriable=response.status_code >= 500,
        status_code=response.status_code,
    )


class OllamaContextProvider(ContextProvider):
    """Local models served by Ollama."""

    kind = "local"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.2",
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
    ):
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout_seconds
        self._max_retries = max_retries

    @property
    def name(self) -> str:
        return "ollama"

    async def is_available(self) -> bool:
        """Ollama is up and has the configured model pulled."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self._base_url}/api/tags")
                response.raise_for_status()
                models = response.json().get("models", [])
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Ollama not available at {self._base_url}: {e}")
            return False

        names = {str(m.get("name", "")) for m in models if isinstance(m, dict)}
        return any(name == self._model or name.split(":")[0] == self._model for name in names)

    async def detect_context(self, text: str) -> ProviderContext:
        content = await with_retry(self._generate, attempts=self._max_retries)(text)
        return parse_context_response(content, self.name)

    async def _generate(self, text: str) -> str:
        payload: dict[str, Any] = {
            "model": self._model,
            "prompt": build_detection_prompt(text),
            "stream": False,
            "format": "json",
            "options": {"temperature": 0},
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(f"{self._base_url}/api/generate", json=payload)
        except httpx.HTTPError as e:
            raise ProviderError(f"Ollama request failed: {e}", provider=self.name) from e

        _raise_for_status(response, self.name)
        return str(response.json().get("response", ""))


class OpenAICompatibleContextProvider(ContextProvider):
    """Chat-completions APIs: OpenAI itself, OpenRouter and compatible gateways."""

    kind = "cloud"

    def __init__(
        self,
        provider_name: str,
        api_key: str,
        base_url: str,
        model: str,
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
    ):
        if not api_key:
            raise ValueError(f"{provider_name} API key not configured")
        self._provider_name = provider_name
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout_seconds
        self._max_retries = max_retries

    @property
    def name(self) -> str:
        return self._provider_name

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    async def is_available(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self._base_url}/models", headers=self._headers)
        except httpx.HTTPError as e:
            logger.debug(f"{self.name} not reachable: {e}")
            return False
        return response.status_code == 200

    async def detect_context(self, text: str) -> ProviderContext:
        content = await with_retry(self._chat, attempts=self._max_retries)(text)
        return parse_context_response(content, self.name)

    async def _chat(self, text: str) -> str:
        payload = {
            "model": self._model,
            "temperature": 0,
            "max_tokens": 512,
            "response_format": {"type": "json_object"},
            "messages": [{"role": "user", "content": build_detection_prompt(text)}],
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/chat/completions", json=payload, headers=self._headers
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name} request failed: {e}", provider=self.name) from e

        _raise_for_status(response, self.name)
        choices = response.json().get("choices") or []
        if not choices:
            return ""
        return str(choices[0].get("message", {}).get("content") or "")
