"""
Unified Exception Hierarchy for Course Search.

Exception Hierarchy:
    CourseSearchError (base)
    ├── ValidationError
    │   ├── InvalidQueryError
    │   └── InvalidParameterError
    ├── ExternalCallError
    │   ├── ExternalCallTimeout
    │   ├── ExternalCallFailure
    │   └── ProviderError
    ├── RateLimitExceeded
    ├── AnalyticsWriteFailure
    └── ConfigurationError

Only ValidationError and RateLimitExceeded are meant to reach a caller.
Everything under ExternalCallError and AnalyticsWriteFailure is absorbed
by the aggregator and degrades the response instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    WARNING = auto()  # Recoverable, can continue
    ERROR = auto()  # Failed but can retry
    CRITICAL = auto()  # Cannot continue
    TRANSIENT = auto()  # Temporary, should retry later


class ErrorCategory(Enum):
    """Categories for error classification."""

    VALIDATION = "validation"
    EXTERNAL = "external"
    RATE_LIMIT = "rate_limit"
    STORAGE = "storage"
    CONFIGURATION = "config"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context attached to every error."""

    operation: str | None = None
    collaborator: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    retry_after: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CourseSearchError(Exception):
    """
    Base exception for all Course Search errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    - JSON-friendly formatting for API payloads
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.EXTERNAL,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.collaborator:
            result["collaborator"] = self.context.collaborator
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.retry_after is not None:
            result["retry_after_seconds"] = self.context.retry_after
        return result


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(CourseSearchError):
    """Base class for user-correctable input errors."""

    def __init__(self, message: str, *, context: ErrorContext | None = None) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )


class InvalidQueryError(ValidationError):
    """Raised when the search text is empty or too long."""

    def __init__(
        self,
        query: str | None,
        reason: str = "Search query is required",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = replace(
            context or ErrorContext(),
            input_value=query,
            suggestion="Provide a search query between 1 and 200 characters",
        )
        super().__init__(f"Invalid query: {reason}", context=ctx)


class InvalidParameterError(ValidationError):
    """Raised when a request parameter is out of range."""

    def __init__(
        self,
        param_name: str,
        value: Any,
        expected: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = replace(context or ErrorContext(), input_value=value, suggestion=f"Expected {expected}")
        super().__init__(f"Invalid parameter '{param_name}': {value!r} (expected {expected})", context=ctx)
        self.param_name = param_name


# =============================================================================
# External Collaborator Errors
# =============================================================================


class ExternalCallError(CourseSearchError):
    """Base class for failures of an external collaborator."""

    def __init__(
        self,
        message: str,
        *,
        collaborator: str | None = None,
        context: ErrorContext | None = None,
        retryable: bool = True,
    ) -> None:
        ctx = context or ErrorContext()
        if collaborator:
            ctx = replace(ctx, collaborator=collaborator)
        super().__init__(
            message,
            context=ctx,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.EXTERNAL,
            retryable=retryable,
        )

    @property
    def collaborator(self) -> str | None:
        return self.context.collaborator


class ExternalCallTimeout(ExternalCallError):
    """Raised when a collaborator exceeds its latency ceiling."""

    def __init__(self, collaborator: str, timeout: float) -> None:
        super().__init__(f"{collaborator} timed out after {timeout:.1f}s", collaborator=collaborator)
        self.severity = ErrorSeverity.TRANSIENT
        self.timeout = timeout


class ExternalCallFailure(ExternalCallError):
    """Raised when a collaborator fails or returns an unusable answer."""

    def __init__(self, collaborator: str, reason: str) -> None:
        super().__init__(f"{collaborator} failed: {reason}", collaborator=collaborator)


class ProviderError(ExternalCallError):
    """Raised by a Platform Provider that could not produce listings."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider}: {reason}", collaborator=provider)


# =============================================================================
# Rate Limiting
# =============================================================================


class RateLimitExceeded(CourseSearchError):
    """Raised when a caller exceeds one of its request windows."""

    def __init__(
        self,
        retry_after: float,
        *,
        message: str = "Too many search requests, please try again later.",
        window: str | None = None,
    ) -> None:
        ctx = ErrorContext(
            operation="admit",
            retry_after=retry_after,
            suggestion="Wait and retry the request",
            metadata={"window": window} if window else {},
        )
        super().__init__(
            message,
            context=ctx,
            severity=ErrorSeverity.TRANSIENT,
            category=ErrorCategory.RATE_LIMIT,
            retryable=True,
        )

    @property
    def retry_after(self) -> float:
        return self.context.retry_after or 0.0


# =============================================================================
# Storage & Configuration
# =============================================================================


class AnalyticsWriteFailure(CourseSearchError):
    """Raised when a SearchRecord (or click) cannot be persisted."""

    def __init__(self, message: str, *, context: ErrorContext | None = None) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.STORAGE,
            retryable=False,
        )


class ConfigurationError(CourseSearchError):
    """Raised for configuration-related errors."""

    def __init__(self, message: str, *, context: ErrorContext | None = None) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )


def is_user_visible(error: Exception) -> bool:
    """Check whether an error should be surfaced to the caller as-is."""
    return isinstance(error, (ValidationError, RateLimitExceeded))
