"""Ordered provider chain with per-call timeouts.

The first provider is the primary; the rest are fallbacks tried in order.
Every call races a timeout and is cancelled when it loses.
"""

import asyncio
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from kg_memory.models import ProviderContext
from kg_memory.providers.base import (
    ContextProvider,
    ModelProviderUnavailable,
    ProviderHealth,
    ProviderTimeout,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


@dataclass
class ChainResult:
    """Successful detection plus what it took to get there."""

    context: ProviderContext
    provider_name: str
    # Position in the chain; 0 is the primary
    provider_index: int
    errors: dict[str, str] = field(default_factory=dict)


class ProviderChain:
    """Primary provider followed by fallbacks in priority order."""

    def __init__(
        self,
        providers: Sequence[ContextProvider] = (),
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._providers: tuple[ContextProvider, ...] = tuple(providers)
        self._timeout = timeout_seconds

    def __iter__(self) -> Iterator[ContextProvider]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    @property
    def primary(self) -> ContextProvider | None:
        return self._providers[0] if self._providers else None

    @property
    def fallbacks(self) -> tuple[ContextProvider, ...]:
        return self._providers[1:]

    def names(self) -> list[str]:
        return [p.name for p in self._providers]

    async def _check_available(self, provider: ContextProvider) -> bool:
        try:
            return await asyncio.wait_for(provider.is_available(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Availability check for %s timed out", provider.name)
            return False
        except Exception as e:
            logger.warning("Availability check for %s failed: %s", provider.name, e)
            return False

    async def call(self, provider: ContextProvider, text: str) -> ProviderContext:
        """Run one provider against the timeout.

        Raises:
            ProviderTimeout: The provider did not answer in time.
            ProviderError: Whatever the provider raised.
        """
        try:
            return await asyncio.wait_for(provider.detect_context(text), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(provider.name, self._timeout) from e

    async def detect(self, text: str) -> ChainResult:
        """Return the first successful provider result.

        Raises:
            ModelProviderUnavailable: Every provider was unavailable or failed.
        """
        errors: dict[str, str] = {}
        for index, provider in enumerate(self._providers):
            if not await self._check_available(provider):
                errors[provider.name] = "unavailable"
                continue
            try:
                context = await self.call(provider, text)
            except Exception as e:
                logger.warning("Provider %s failed: %s", provider.name, e)
                errors[provider.name] = str(e) or type(e).__name__
                continue

            if index > 0:
                logger.info("Context detected by fallback provider %s", provider.name)
            return ChainResult(
                context=context,
                provider_name=provider.name,
                provider_index=index,
                errors=errors,
            )

        raise ModelProviderUnavailable(",".join(self.names()) or "none", errors)

    async def health(self) -> dict[str, ProviderHealth]:
        results = await asyncio.gather(*(p.health_info() for p in self._providers))
        return {health.name: health for health in results}
