# Gemini LLM Provider
# Structured-output client for Google's Gemini generateContent REST API

import json
import logging
import time
from typing import Any

import requests

import config
from agents.errors import (
    ErrorCategory,
    ErrorSeverity,
    LLMRequestError,
    ResponseParseError,
    categorize_http_status,
)
from agents.llm.base import BaseLLMClient, InlineDocument, LLMResponse
from agents.observability import tracer

logger = logging.getLogger(__name__)


class GeminiProvider(BaseLLMClient):
    """
    Google Gemini API client.

    Every request asks for ``application/json`` output constrained by a
    ``responseSchema``; PDFs travel as ``inlineData`` parts and are read by
    the model itself.

    No retry: one failed call fails the caller.
    """

    PROVIDER_NAME = "gemini"

    def _setup_client(self) -> None:
        """Set up the Gemini client."""
        self.api_key = self.config.api_key or config.GEMINI_API_KEY
        self.model = self.config.model or config.GEMINI_MODEL
        self.base_url = (self.config.base_url or config.GEMINI_BASE_URL).rstrip("/")
        self.timeout = self.config.timeout or config.GEMINI_TIMEOUT

        if not self.api_key:
            logger.warning("GEMINI_API_KEY not set. Gemini client will not be functional.")

        logger.info(f"GeminiProvider initialized (model={self.model})")

    def get_provider_name(self) -> str:
        return self.PROVIDER_NAME

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _get_model_url(self) -> str:
        return f"{self.base_url}/{self.model}:generateContent"

    def build_request_body(
        self,
        prompt: str,
        response_schema: dict[str, Any],
        documents: list[InlineDocument] | None = None,
    ) -> dict[str, Any]:
        """Build the generateContent body: document parts first, then the instruction."""
        parts: list[dict[str, Any]] = [
            {"inlineData": {"mimeType": doc.mime_type, "data": doc.data}}
            for doc in documents or []
        ]
        parts.append({"text": prompt})

        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            },
        }

    def generate_structured(
        self,
        prompt: str,
        response_schema: dict[str, Any],
        documents: list[InlineDocument] | None = None,
        task_type: str = "general",
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON object."""
        response = self.generate_with_response(prompt, response_schema, documents, task_type)
        return self.parse_json(response.text)

    def generate_with_response(
        self,
        prompt: str,
        response_schema: dict[str, Any],
        documents: list[InlineDocument] | None = None,
        task_type: str = "general",
    ) -> LLMResponse:
        """Send one request and return the raw text with usage metadata."""
        start_time = time.time()
        body = self.build_request_body(prompt, response_schema, documents)

        try:
            result = self._do_api_request(body)
            text = self._extract_text(result)
        except (LLMRequestError, ResponseParseError) as e:
            tracer.record_llm_call(
                task=task_type,
                model=self.model,
                prompt=prompt,
                response_text="",
                latency_ms=(time.time() - start_time) * 1000,
                error=e,
                documents=len(documents or []),
            )
            logger.error(f"Gemini request failed ({task_type}): {e}")
            raise

        latency_ms = int((time.time() - start_time) * 1000)
        usage = result.get("usageMetadata", {})
        trace = tracer.record_llm_call(
            task=task_type,
            model=self.model,
            prompt=prompt,
            response_text=text,
            latency_ms=latency_ms,
            usage=usage,
            documents=len(documents or []),
        )

        return LLMResponse(
            text=text,
            model=self.model,
            provider=self.PROVIDER_NAME,
            input_tokens=trace.prompt_tokens,
            output_tokens=trace.completion_tokens,
            total_tokens=trace.total_tokens,
            latency_ms=latency_ms,
            metadata={"task_type": task_type},
        )

    def _do_api_request(self, body: dict[str, Any]) -> dict[str, Any]:
        """Execute the actual API request to Gemini."""
        # Key goes in a header, never in the URL
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

        try:
            resp = requests.post(
                self._get_model_url(),
                headers=headers,
                json=body,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else 0
            category, severity = categorize_http_status(status_code)
            if status_code in (401, 403):
                message = f"Authentication failed ({status_code}): Check GEMINI_API_KEY"
            else:
                reason = getattr(e.response, "reason", "") or ""
                message = f"Gemini returned HTTP {status_code} {reason}".rstrip()
            raise LLMRequestError(message, category, severity) from e

        except requests.exceptions.Timeout as e:
            raise LLMRequestError(
                f"Request timeout after {self.timeout}s", ErrorCategory.TIMEOUT, ErrorSeverity.MEDIUM
            ) from e

        except requests.exceptions.ConnectionError as e:
            raise LLMRequestError(
                f"Network error: {type(e).__name__}", ErrorCategory.NETWORK, ErrorSeverity.MEDIUM
            ) from e

        except requests.exceptions.RequestException as e:
            raise LLMRequestError(f"Request failed: {type(e).__name__}") from e

        except ValueError as e:
            raise ResponseParseError(f"Gemini response body is not JSON: {e}") from e

    @staticmethod
    def _extract_text(result: dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        try:
            parts = result["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            reason = ""
            if isinstance(result, dict):
                reason = result.get("promptFeedback", {}).get("blockReason", "")
            raise ResponseParseError(
                f"Unexpected response structure{f' (blocked: {reason})' if reason else ''}",
                ErrorCategory.EMPTY_RESPONSE,
            ) from e

        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise ResponseParseError("Gemini returned an empty response", ErrorCategory.EMPTY_RESPONSE)
        return text

    @staticmethod
    def parse_json(text: str) -> dict[str, Any]:
        """Decode the JSON object of a structured-output response."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ResponseParseError(f"Response is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ResponseParseError(f"Expected a JSON object, got {type(data).__name__}")
        return data
