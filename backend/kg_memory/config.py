"""
Configuration management using pydantic-settings.
Loads from environment variables (KGM_ prefix) and ~/.env.local
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from kg_memory.constants import DEFAULT_MAX_ITEMS, DEFAULT_TOKEN_BUDGET
from kg_memory.exceptions import InvalidRankingConfig
from kg_memory.services.ranking.config import RankingConfig

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="KGM_",
        env_file=str(Path.home() / ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8010
    log_level: str = "INFO"

    # Directive source (JSON export of the knowledge store)
    directives_path: str = ""
    workspace: str = ""

    # Provider chain: primary first, then comma-separated fallbacks
    primary_provider: str = ""
    fallback_providers: str = ""
    provider_timeout_seconds: float = 5.0
    provider_max_retries: int = 3

    # Provider credentials and endpoints
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-haiku-latest"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "anthropic/claude-3.5-haiku"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"

    # Ranking defaults
    default_token_budget: int = DEFAULT_TOKEN_BUDGET
    default_max_items: int = DEFAULT_MAX_ITEMS
    ranking_config_path: str = ""
    authority_mode: Literal["topic", "rule"] = "topic"

    # Query response cache; size 0 disables it
    query_cache_size: int = 1000
    query_cache_ttl_seconds: float = 600.0

    # Telemetry
    otlp_endpoint: str = ""
    telemetry_console_export: bool = False

    @property
    def fallback_provider_names(self) -> list[str]:
        """Fallback providers in priority order."""
        return [name.strip() for name in self.fallback_providers.split(",") if name.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_ranking_config(settings: Settings) -> RankingConfig:
    """Load and validate ranking configuration.

    Overrides in ``ranking_config_path`` (JSON) are merged onto the defaults.
    An invalid file raises InvalidRankingConfig before any query runs.
    """
    if not settings.ranking_config_path:
        return RankingConfig()

    path = Path(settings.ranking_config_path)
    try:
        overrides: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidRankingConfig([f"cannot read {path}: {e}"]) from e

    config = RankingConfig.from_mapping(overrides)
    logger.info("Loaded ranking configuration overrides from %s", path)
    return config
