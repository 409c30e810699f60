# Error Taxonomy
# Categorized exceptions for document processing, LLM calls and session transitions

import logging
from enum import Enum

logger = logging.getLogger(__name__)


# Shown to the user for any analysis or synthesis failure. The real cause is only logged.
GENERIC_PROCESSING_ERROR = (
    "Ocorreu um erro durante o processamento. "
    "Verifique sua chave de API ou a integridade dos arquivos."
)

FILE_LIMIT_NOTICE = "Limite máximo de {limit} arquivos permitido."


class ErrorSeverity(str, Enum):
    """Error severity levels for prioritization and alerting."""
    LOW = "low"           # User input issue
    MEDIUM = "medium"     # Single run failed
    HIGH = "high"         # Likely misconfiguration (credentials, quota)
    CRITICAL = "critical" # System-level failure


class ErrorCategory(str, Enum):
    """Categories of errors raised while talking to the model or handling input."""
    RATE_LIMIT = "rate_limit"           # API rate limit exceeded
    TIMEOUT = "timeout"                  # Request timed out
    SERVER_ERROR = "server_error"        # 5xx errors
    CLIENT_ERROR = "client_error"        # 4xx errors
    NETWORK = "network"                  # Network connectivity issues
    VALIDATION = "validation"            # Response or input failed validation
    EMPTY_RESPONSE = "empty_response"    # Model returned no text
    UNKNOWN = "unknown"                  # Unclassified error


class ProcessingError(Exception):
    """Base class for every failure inside a run."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity


class DocumentReadError(ProcessingError):
    """The bytes of an uploaded document could not be read."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.VALIDATION, ErrorSeverity.MEDIUM)


class LLMRequestError(ProcessingError):
    """Transport or HTTP failure while calling the model."""
    pass


class ResponseParseError(ProcessingError):
    """Empty, malformed or schema-nonconforming model response."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.VALIDATION):
        super().__init__(message, category, ErrorSeverity.MEDIUM)


class AnalysisError(ProcessingError):
    """A single document could not be turned into an ArticleAnalysis."""

    def __init__(self, filename: str, cause: Exception | None = None):
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"Analysis of '{filename}' failed{detail}",
            category=_category_of(cause),
            severity=_severity_of(cause),
        )
        self.filename = filename


class SynthesisError(ProcessingError):
    """The cross-document synthesis call failed."""

    def __init__(self, message: str, cause: Exception | None = None):
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"{message}{detail}",
            category=_category_of(cause),
            severity=_severity_of(cause),
        )


class InputLimitError(Exception):
    """Adding the files would exceed the selection cap."""

    def __init__(self, limit: int, attempted_total: int):
        super().__init__(FILE_LIMIT_NOTICE.format(limit=limit))
        self.limit = limit
        self.attempted_total = attempted_total


class InvalidTransitionError(Exception):
    """The requested action is not allowed in the current processing state."""

    def __init__(self, action: str, status: str):
        super().__init__(f"Cannot {action} while session is '{status}'")
        self.action = action
        self.status = status


class SessionNotFoundError(KeyError):
    """No session is registered under the given id."""
    pass


def categorize_http_status(status_code: int) -> tuple[ErrorCategory, ErrorSeverity]:
    """Map an HTTP status returned by the model endpoint to a category and severity."""
    if status_code == 429:
        return ErrorCategory.RATE_LIMIT, ErrorSeverity.HIGH
    if status_code >= 500:
        return ErrorCategory.SERVER_ERROR, ErrorSeverity.MEDIUM
    if status_code in (401, 403):
        return ErrorCategory.CLIENT_ERROR, ErrorSeverity.HIGH
    if status_code == 400:
        return ErrorCategory.VALIDATION, ErrorSeverity.MEDIUM
    return ErrorCategory.CLIENT_ERROR, ErrorSeverity.MEDIUM


def categorize_error(exception: Exception) -> ErrorCategory:
    """Categorize an arbitrary exception into an ErrorCategory."""
    if isinstance(exception, ProcessingError):
        return exception.category

    error_str = str(exception).lower()
    exception_name = type(exception).__name__.lower()

    if "429" in error_str or "rate limit" in error_str or "too many requests" in error_str:
        return ErrorCategory.RATE_LIMIT
    elif "timeout" in error_str or "timeout" in exception_name:
        return ErrorCategory.TIMEOUT
    elif "network" in error_str or "connection" in error_str or "connection" in exception_name:
        return ErrorCategory.NETWORK
    elif "validation" in error_str or "json" in exception_name:
        return ErrorCategory.VALIDATION
    else:
        return ErrorCategory.UNKNOWN


def _category_of(cause: Exception | None) -> ErrorCategory:
    return categorize_error(cause) if cause is not None else ErrorCategory.UNKNOWN


def _severity_of(cause: Exception | None) -> ErrorSeverity:
    if isinstance(cause, ProcessingError):
        return cause.severity
    return ErrorSeverity.MEDIUM
