"""Builds the provider chain from settings."""

import logging

from kg_memory.config import Settings
from kg_memory.providers.anthropic_provider import AnthropicContextProvider
from kg_memory.providers.base import ContextProvider
from kg_memory.providers.chain import ProviderChain
from kg_memory.providers.gemini_provider import GeminiContextProvider
from kg_memory.providers.http_provider import (
    OllamaContextProvider,
    OpenAICompatibleContextProvider,
)
from kg_memory.providers.rule_based import RuleBasedContextProvider
from kg_memory.services.vocabulary import Vocabulary

logger = logging.getLogger(__name__)

PROVIDER_NAMES = ("anthropic", "gemini", "ollama", "openai", "openrouter", "rule-based")


def build_provider(
    name: str, settings: Settings, vocabulary: Vocabulary | None = None
) -> ContextProvider:
    """Create one provider by name.

    Raises:
        ValueError: Unknown name or missing credentials.
    """
    name = name.strip().lower()
    retries = settings.provider_max_retries
    timeout = settings.provider_timeout_seconds

    if name in ("anthropic", "claude"):
        return AnthropicContextProvider(
            settings.anthropic_api_key, settings.anthropic_model, max_retries=retries
        )
    if name == "gemini":
        return GeminiContextProvider(
            settings.gemini_api_key, settings.gemini_model, max_retries=retries
        )
    if name == "ollama":
        return OllamaContextProvider(
            settings.ollama_base_url,
            settings.ollama_model,
            timeout_seconds=timeout,
            max_retries=retries,
        )
    if name == "openai":
        return OpenAICompatibleContextProvider(
            "openai",
            settings.openai_api_key,
            settings.openai_base_url,
            settings.openai_model,
            timeout_seconds=timeout,
            max_retries=retries,
        )
    if name == "openrouter":
        return OpenAICompatibleContextProvider(
            "openrouter",
            settings.openrouter_api_key,
            settings.openrouter_base_url,
            settings.openrouter_model,
            timeout_seconds=timeout,
            max_retries=retries,
        )
    if name in ("rule-based", "rule-based-heuristic"):
        return RuleBasedContextProvider(vocabulary)
    raise ValueError(f"Unknown provider: {name}. Known: {', '.join(PROVIDER_NAMES)}")


def build_provider_chain(settings: Settings, vocabulary: Vocabulary | None = None) -> ProviderChain:
    """Primary provider then fallbacks, skipping any that cannot be built.

    Unknown names are configuration errors and raise; providers missing
    credentials are logged and left out.
    """
    names = [settings.primary_provider.strip()] if settings.primary_provider.strip() else []
    names += [n for n in settings.fallback_provider_names if n not in names]

    providers: list[ContextProvider] = []
    for name in names:
        if name.strip().lower() not in PROVIDER_NAMES + ("claude", "rule-based-heuristic"):
            raise ValueError(f"Unknown provider: {name}. Known: {', '.join(PROVIDER_NAMES)}")
        try:
            providers.append(build_provider(name, settings, vocabulary))
        except ValueError as e:
            logger.warning(f"Skipping provider {name}: {e}")

    if providers:
        logger.info(f"Provider chain: {' -> '.join(p.name for p in providers)}")
    else:
        logger.info("No model providers configured; using rule-based detection only")
    return ProviderChain(providers, timeout_seconds=settings.provider_timeout_seconds)
