"""Anthropic context provider using the official SDK."""

import contextlib
import logging

import anthropic

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

_MAX_TOKENS = 512


class AnthropicContextProvider(ContextProvider):
    """Classifies task text with a Claude model."""

    kind = "cloud"

    def __init__(self, api_key: str, model: str, max_retries: int = 3):
        if not api_key:
            raise ValueError("Anthropic API key not configured")
        self._model = model
        self._max_retries = max_retries
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    @property
    def name(self) -> str:
        return "anthropic"

    async def is_available(self) -> bool:
        # Credentials are checked at construction; no live probe
        return True

    async def detect_context(self, text: str) -> ProviderContext:
        content = await with_retry(self._complete, attempts=self._max_retries)(text)
        return parse_context_response(content, self.name)

    async def _complete(self, text: str) -> str:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=_MAX_TOKENS,
                temperature=0.0,
                messages=[{"role": "user", "content": build_detection_prompt(text)}],
            )
        except anthropic.RateLimitError as e:
            logger.warning(f"Anthropic rate limit: {e}")
            retry_after = None
            if getattr(e, "response", None) is not None:
                retry_after_str = e.response.headers.get("retry-after")
                if retry_after_str:
                    with contextlib.suppress(ValueError):
                        retry_after = float(retry_after_str)
            raise RateLimitError(self.name, retry_after) from e
        except anthropic.AuthenticationError as e:
            logger.error(f"Anthropic auth error: {e}")
            raise AuthenticationError(self.name) from e
        except anthropic.APIError as e:
            status_code = getattr(e, "status_code", None)
            logger.error(f"Anthropic API error: {e}")
            raise ProviderError(
                str(e),
                provider=self.name,
                retriable=status_code is None or status_code >= 500,
                status_code=status_code,
            ) from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
