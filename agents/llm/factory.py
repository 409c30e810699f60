# LLM Client Factory
# Central entry point for getting the structured-output client

import logging
from enum import StrEnum

from agents.llm.base import BaseLLMClient, LLMConfig

logger = logging.getLogger(__name__)


class LLMProvider(StrEnum):
    """Supported LLM providers."""

    GEMINI = "gemini"


# Cache for client instances (singleton per provider and model)
_client_cache: dict[str, BaseLLMClient] = {}


def get_llm_client(
    provider: LLMProvider = LLMProvider.GEMINI,
    config: LLMConfig | None = None,
    force_new: bool = False,
) -> BaseLLMClient:
    """
    Get an LLM client instance.

    Returns a cached instance unless ``force_new`` is set.

    Example:
        client = get_llm_client()
        client = get_llm_client(config=LLMConfig(model="gemini-2.5-pro"))
    """
    config = config or LLMConfig()
    cache_key = f"{provider.value}:{config.model or 'default'}"

    if not force_new and cache_key in _client_cache:
        logger.debug(f"Returning cached {provider.value} client")
        return _client_cache[cache_key]

    client = _create_client(provider, config)
    _client_cache[cache_key] = client
    return client


def _create_client(provider: LLMProvider, config: LLMConfig) -> BaseLLMClient:
    if provider == LLMProvider.GEMINI:
        from agents.llm.gemini import GeminiProvider

        return GeminiProvider(config)

    raise ValueError(f"Unknown provider: {provider}")


def clear_client_cache() -> None:
    """Clear the client cache. Useful for testing."""
    _client_cache.clear()
    logger.info("LLM client cache cleared")
