# LLM Provider Module
# Abstraction layer over the hosted generative capability

from agents.llm.base import BaseLLMClient, InlineDocument, LLMConfig, LLMResponse
from agents.llm.factory import LLMProvider, clear_client_cache, get_llm_client
from agents.llm.gemini import GeminiProvider

__all__ = [
    "BaseLLMClient",
    "InlineDocument",
    "LLMConfig",
    "LLMResponse",
    "GeminiProvider",
    "LLMProvider",
    "get_llm_client",
    "clear_client_cache",
]
