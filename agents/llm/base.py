# Base LLM Client Interface
# Abstract base class for clients of the generative capability
# The capability is a black box: "submit parts + instructions + schema, receive JSON fields"

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    timeout: int | None = None

    # Provider-specific settings
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResponse:
    """Standardized response from the provider."""

    text: str
    model: str
    provider: str

    # Token usage
    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None

    latency_ms: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class InlineDocument:
    """A binary document sent inline with a request."""

    mime_type: str
    data: str  # base64


class BaseLLMClient(ABC):
    """
    Abstract base class for structured-output LLM clients.

    Agents depend only on this interface so tests can substitute a fake and
    the provider can be swapped through configuration.
    """

    def __init__(self, config: LLMConfig | None = None):
        self.config = config or LLMConfig()
        self._setup_client()

    @abstractmethod
    def _setup_client(self) -> None:
        """Provider-specific setup logic (API keys, URLs)."""
        pass

    @abstractmethod
    def generate_structured(
        self,
        prompt: str,
        response_schema: dict[str, Any],
        documents: list[InlineDocument] | None = None,
        task_type: str = "general",
    ) -> dict[str, Any]:
        """
        Send one request and return the parsed JSON object.

        Args:
            prompt: Instruction text
            response_schema: Structured-output schema the response must follow
            documents: Optional inline binary documents sent before the prompt
            task_type: Label used for tracing

        Returns:
            The decoded JSON object

        Raises:
            LLMRequestError: Transport or HTTP failure
            ResponseParseError: Empty or non-JSON response
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider name (e.g. 'gemini')."""
        pass

    def is_available(self) -> bool:
        """Check if the provider is configured (API key present)."""
        return bool(self.config.api_key)
