"""Resume Enhancer - resilient LLM-backed resume enhancement."""

from .errors import (
    FailureKind,
    InvalidResponseError,
    NetworkError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    http_status_for,
    normalize_error,
)
from .retry import ExecutionStatistics, RetryOrchestrator, RetryPolicy

__version__ = "0.1.0"

__all__ = [
    "FailureKind",
    "ProviderError",
    "RateLimitError",
    "NetworkError",
    "ProviderTimeoutError",
    "InvalidResponseError",
    "normalize_error",
    "http_status_for",
    "RetryPolicy",
    "RetryOrchestrator",
    "ExecutionStatistics",
]
