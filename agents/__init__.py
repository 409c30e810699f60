# Agents Module
# Exposes the LangGraph-based article analysis and synthesis pipeline

from agents.analyzer import ArticleAnalyzerAgent
from agents.base import BaseAgent
from agents.encoder import decode_data_url, encode_document, strip_data_url_prefix

# Error taxonomy
from agents.errors import (
    AnalysisError,
    DocumentReadError,
    ErrorCategory,
    ErrorSeverity,
    InputLimitError,
    InvalidTransitionError,
    LLMRequestError,
    ProcessingError,
    ResponseParseError,
    SessionNotFoundError,
    SynthesisError,
)

# LLM Provider Architecture
from agents.llm import (
    BaseLLMClient,
    GeminiProvider,
    LLMConfig,
    LLMProvider,
    LLMResponse,
    get_llm_client,
)
from agents.observability import (
    AgentTracer,
    LLMTrace,
    StructuredLogger,
    trace_step,
    tracer,
)
from agents.orchestrator import SynthesisOrchestrator, create_orchestrator
from agents.schemas import ArticleAnalysis, SynthesisContent, SynthesisReport
from agents.session import ResearchSession, SessionRegistry
from agents.state import (
    ProcessStatus,
    Progress,
    ResultTab,
    RunState,
    SessionSnapshot,
    UploadedDocument,
    create_initial_run_state,
)
from agents.synthesizer import SynthesisAgent

__all__ = [
    # State
    "ProcessStatus",
    "Progress",
    "ResultTab",
    "RunState",
    "SessionSnapshot",
    "UploadedDocument",
    "create_initial_run_state",

    # Records
    "ArticleAnalysis",
    "SynthesisContent",
    "SynthesisReport",

    # Encoder
    "encode_document",
    "decode_data_url",
    "strip_data_url_prefix",

    # Agents
    "BaseAgent",
    "ArticleAnalyzerAgent",
    "SynthesisAgent",

    # Orchestrator and session
    "SynthesisOrchestrator",
    "create_orchestrator",
    "ResearchSession",
    "SessionRegistry",

    # Observability
    "AgentTracer",
    "tracer",
    "trace_step",
    "LLMTrace",
    "StructuredLogger",

    # Error Handling
    "ErrorCategory",
    "ErrorSeverity",
    "ProcessingError",
    "DocumentReadError",
    "LLMRequestError",
    "ResponseParseError",
    "AnalysisError",
    "SynthesisError",
    "InputLimitError",
    "InvalidTransitionError",
    "SessionNotFoundError",

    # LLM Providers
    "BaseLLMClient",
    "LLMResponse",
    "LLMConfig",
    "GeminiProvider",
    "get_llm_client",
    "LLMProvider",
]
