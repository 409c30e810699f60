# Base Agent Class
# Common plumbing for the requestors that talk to the model

import logging
from abc import ABC
from typing import Any

from agents.llm.base import BaseLLMClient, InlineDocument


class BaseAgent(ABC):
    """
    Abstract base class for the analysis and synthesis requestors.

    Provides a named logger and a single structured-output call helper.
    """

    def __init__(self, llm_client: BaseLLMClient, name: str):
        """
        Args:
            llm_client: Structured-output client (e.g. GeminiProvider)
            name: Human-readable name of the agent
        """
        self.llm_client = llm_client
        self.name = name
        self.logger = logging.getLogger(f"agent.{name}")

    def _call_llm(
        self,
        prompt: str,
        schema: dict[str, Any],
        documents: list[InlineDocument] | None = None,
        task_type: str = "general",
    ) -> dict[str, Any]:
        """Make one structured-output call. Errors propagate to the caller."""
        self.logger.debug(
            f"LLM call | Prompt length: {len(prompt)} chars | Documents: {len(documents or [])}"
        )
        data = self.llm_client.generate_structured(
            prompt, schema, documents=documents, task_type=task_type
        )
        self.logger.debug(f"LLM response | Keys: {sorted(data)}")
        return data
