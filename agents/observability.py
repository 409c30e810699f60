# Observability Module - Structured Logging and Tracing
# JSON logs for model calls, pipeline steps and whole runs

import asyncio
import functools
import itertools
import json
import logging
import time
import traceback
from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

PREVIEW_CHARS = 200


class LogLevel(str, Enum):
    """Log levels for structured logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LLMTrace:
    """Structured trace data for one call to the model."""
    trace_id: str
    task: str                # "article_analysis" | "synthesis"
    model: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    latency_ms: float
    prompt_preview: str
    response_preview: str
    success: bool
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


@dataclass
class StepTrace:
    """Structured trace data for a pipeline step."""
    trace_id: str
    step: str
    action: str
    duration_ms: float
    success: bool
    input_summary: str
    output_summary: str
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


class StructuredLogger:
    """
    Structured logging for pipeline observability.

    Emits one JSON object per record so logs can be parsed by aggregation
    systems.
    """

    def __init__(self, name: str, level: int = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        if not any(isinstance(h, logging.StreamHandler) for h in self.logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(JsonFormatter())
            self.logger.addHandler(handler)

    def _log(self, level: LogLevel, message: str, **kwargs):
        log_data = {
            "message": message,
            "timestamp": datetime.now(UTC).isoformat(),
            **kwargs
        }

        log_method = getattr(self.logger, level.value.lower())
        log_method(json.dumps(log_data, default=str))

    def debug(self, message: str, **kwargs):
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(LogLevel.ERROR, message, **kwargs)

    def log_llm_call(self, trace: LLMTrace):
        """Log a model call with full trace data."""
        log = self.info if trace.success else self.warning
        log(
            "LLM_CALL",
            trace=asdict(trace),
            task=trace.task,
            model=trace.model,
            tokens=trace.total_tokens,
            latency_ms=trace.latency_ms,
            success=trace.success
        )

    def log_step(self, trace: StepTrace):
        """Log a pipeline step."""
        self.info(
            "AGENT_STEP",
            trace=asdict(trace),
            step=trace.step,
            action=trace.action,
            duration_ms=trace.duration_ms,
            success=trace.success
        )


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        try:
            log_data = json.loads(record.getMessage())
            if not isinstance(log_data, dict):
                raise ValueError("not an object")
            log_data["level"] = record.levelname
            log_data["logger"] = record.name
            return json.dumps(log_data)
        except ValueError:
            return json.dumps({
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                "timestamp": datetime.now(UTC).isoformat()
            })


class AgentTracer:
    """
    Tracer for pipeline operations.

    - ``record_llm_call`` for model requests
    - ``trace_step`` decorator for graph nodes (sync and async)
    - ``trace_operation`` context manager for whole runs
    """

    def __init__(self, service_name: str = "sintese-academica"):
        self.service_name = service_name
        self.logger = StructuredLogger(f"{service_name}.tracer")
        self._trace_counter = itertools.count(1)

    def new_trace_id(self) -> str:
        # Called from worker threads; next() on a count does not race
        sequence = next(self._trace_counter)
        timestamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
        return f"{self.service_name}-{timestamp}-{sequence:06d}"

    def record_llm_call(
        self,
        task: str,
        model: str,
        prompt: str,
        response_text: str,
        latency_ms: float,
        usage: dict[str, Any] | None = None,
        error: Exception | None = None,
        **metadata,
    ) -> LLMTrace:
        """Build and log an LLMTrace. Token counts fall back to a 4-chars-per-token estimate."""
        usage = usage or {}
        prompt_tokens = usage.get("promptTokenCount", len(prompt) // 4)
        completion_tokens = usage.get("candidatesTokenCount", len(response_text) // 4)

        trace = LLMTrace(
            trace_id=self.new_trace_id(),
            task=task,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=usage.get("totalTokenCount", prompt_tokens + completion_tokens),
            latency_ms=latency_ms,
            prompt_preview=prompt[:PREVIEW_CHARS],
            response_preview=response_text[:PREVIEW_CHARS],
            success=error is None,
            error=str(error) if error else None,
            metadata=metadata,
        )
        self.logger.log_llm_call(trace)
        return trace

    def trace_step(self, step: str, action: str):
        """
        Decorator to trace pipeline steps.

        Usage:
            @tracer.trace_step("extract", "analyze_documents")
            async def _extract(self, state):
                ...
        """
        def decorator(func: Callable) -> Callable:
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    self._log_step(step, action, start_time, args, kwargs, error=e)
                    raise
                self._log_step(step, action, start_time, args, kwargs, result=result)
                return result

            @functools.wraps(func)
            def sync_wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    self._log_step(step, action, start_time, args, kwargs, error=e)
                    raise
                self._log_step(step, action, start_time, args, kwargs, result=result)
                return result

            if asyncio.iscoroutinefunction(func):
                return async_wrapper
            return sync_wrapper

        return decorator

    def _log_step(self, step, action, start_time, args, kwargs, result=None, error=None):
        trace = StepTrace(
            trace_id=self.new_trace_id(),
            step=step,
            action=action,
            duration_ms=(time.time() - start_time) * 1000,
            success=error is None,
            input_summary=self._summarize_input(args, kwargs),
            output_summary="" if error else self._summarize_output(result),
            error=str(error) if error else None,
        )
        self.logger.log_step(trace)

    def _summarize_input(self, args, kwargs) -> str:
        parts = []
        for i, arg in enumerate(args[:3]):
            parts.append(f"arg{i}={str(arg)[:50]}")
        for key in list(kwargs.keys())[:3]:
            parts.append(f"{key}={str(kwargs[key])[:50]}")
        return ", ".join(parts)

    def _summarize_output(self, result) -> str:
        if isinstance(result, dict) and "status" in result:
            return f"status={result['status']}"
        return str(result)[:PREVIEW_CHARS]

    @contextmanager
    def trace_operation(self, operation_name: str, **metadata):
        """
        Context manager for tracing arbitrary operations.

        Usage:
            with tracer.trace_operation("synthesis_run", session_id=sid):
                ...
        """
        trace_id = self.new_trace_id()
        start_time = time.time()

        self.logger.info(
            f"OPERATION_START: {operation_name}",
            trace_id=trace_id,
            operation=operation_name,
            **metadata
        )

        try:
            yield trace_id

            self.logger.info(
                f"OPERATION_END: {operation_name}",
                trace_id=trace_id,
                operation=operation_name,
                duration_ms=(time.time() - start_time) * 1000,
                success=True,
                **metadata
            )

        except Exception as e:
            self.logger.error(
                f"OPERATION_FAILED: {operation_name}",
                trace_id=trace_id,
                operation=operation_name,
                duration_ms=(time.time() - start_time) * 1000,
                success=False,
                error=str(e),
                traceback=traceback.format_exc(),
                **metadata
            )
            raise


# Global tracer instance
tracer = AgentTracer()


def trace_step(step: str, action: str):
    """Convenience decorator for step tracing with the global tracer."""
    return tracer.trace_step(step, action)
