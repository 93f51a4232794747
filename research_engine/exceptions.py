"""Application exception hierarchy.

All custom exceptions inherit from ResearchEngineError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "RES-1000"
    CONFIGURATION_ERROR = "RES-1001"
    VALIDATION_ERROR = "RES-1002"

    # Corpus ingestion errors (2xxx)
    DOCUMENT_NOT_FOUND = "RES-2000"
    DOCUMENT_PARSE_ERROR = "RES-2001"

    # Embedding errors (3xxx)
    EMBEDDING_SERVICE_ERROR = "RES-3000"
    EMBEDDING_TIMEOUT = "RES-3001"

    # Vector store errors (4xxx)
    VECTOR_STORE_ERROR = "RES-4000"
    PERSISTENCE_ERROR = "RES-4001"
    DIMENSION_MISMATCH = "RES-4002"
    DUPLICATE_DOCUMENT = "RES-4003"

    # Completion errors (5xxx)
    LLM_SERVICE_ERROR = "RES-5000"
    LLM_TIMEOUT = "RES-5001"
    LLM_RATE_LIMIT = "RES-5002"

    # Report errors (6xxx)
    REPORT_PARSE_ERROR = "RES-6000"


class ResearchEngineError(Exception):
    """Base exception for all research engine errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(ResearchEngineError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(ResearchEngineError):
    """Input validation error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class DocumentError(ResearchEngineError):
    """Corpus document loading or chunking error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DOCUMENT_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmbeddingError(ResearchEngineError):
    """Embedding service error.

    Raised inside the HTTP embedding service only; the public ``embed``
    converts it to a fallback vector.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, code, details)
        self.retryable = retryable


class VectorStoreError(ResearchEngineError):
    """Vector store operation error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VECTOR_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class LLMError(ResearchEngineError):
    """Completion service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, code, details)
        self.retryable = retryable


class ReportError(ResearchEngineError):
    """Report parsing or rendering error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.REPORT_PARSE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
