"""
Shared kernel for Course Search.

Provides:
- Unified exception hierarchy
- Async utilities for external calls
"""

from .async_utils import (
    CircuitBreaker,
    call_with_timeout,
    gather_settled,
)
from .exceptions import (
    AnalyticsWriteFailure,
    ConfigurationError,
    CourseSearchError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    ExternalCallError,
    ExternalCallFailure,
    ExternalCallTimeout,
    InvalidParameterError,
    InvalidQueryError,
    ProviderError,
    RateLimitExceeded,
    ValidationError,
    is_user_visible,
)

__all__ = [
    # Exceptions
    "CourseSearchError",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorCategory",
    "ValidationError",
    "InvalidQueryError",
    "InvalidParameterError",
    "ExternalCallError",
    "ExternalCallTimeout",
    "ExternalCallFailure",
    "ProviderError",
    "RateLimitExceeded",
    "AnalyticsWriteFailure",
    "ConfigurationError",
    "is_user_visible",
    # Async utilities
    "CircuitBreaker",
    "call_with_timeout",
    "gather_settled",
]
