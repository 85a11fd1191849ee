"""Gemini context provider using the Google GenAI SDK."""

import logging

from google import genai
from google.genai import types
from google.genai.types import HttpOptions

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


class GeminiContextProvider(ContextProvider):
    """Classifies task text with a Gemini model in JSON mode."""

    kind = "cloud"

    def __init__(self, api_key: str, model: str, max_retries: int = 3, timeout_ms: int = 30_000):
        if not api_key:
            raise ValueError("Google API key not configured")
        self._model = model
        self._max_retries = max_retries
        # HttpOptions timeout is in milliseconds
        self._client = genai.Client(api_key=api_key, http_options=HttpOptions(timeout=timeout_ms))

    @property
    def name(self) -> str:
        return "gemini"

    async def is_available(self) -> bool:
        return True

    async def detect_context(self, text: str) -> ProviderContext:
        content = await with_retry(self._complete, attempts=self._max_retries)(text)
        return parse_context_response(content, self.name)

    async def _complete(self, text: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=[
                    types.Content(
                        role="user", parts=[types.Part(text=build_detection_prompt(text))]
                    )
                ],
                config=types.GenerateContentConfig(
                    temperature=0.0,
                    max_output_tokens=512,
                    response_mime_type="application/json",
                ),
            )
        except Exception as e:
            error_str = str(e).lower()

            if "429" in error_str or "rate" in error_str or "quota" in error_str:
                logger.warning(f"Gemini rate limit: {e}")
                raise RateLimitError(self.name) from e

            if "401" in error_str or "403" in error_str or "api key" in error_str:
                logger.error(f"Gemini auth error: {e}")
                raise AuthenticationError(self.name) from e

            logger.error(f"Gemini API error: {e}")
            raise ProviderError(
                str(e),
                provider=self.name,
                retriable="500" in error_str or "503" in error_str,
            ) from e

        return response.text or ""
