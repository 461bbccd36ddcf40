"""Provider failure taxonomy.

Every failure that crosses the retry boundary is one of five kinds. Raw
exceptions from SDKs and transports are folded into the taxonomy by
:func:`normalize_error`.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class FailureKind(str, Enum):
    GENERIC = "generic"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"


class ProviderError(Exception):
    """Base provider failure; also the Generic kind."""

    kind = FailureKind.GENERIC

    def __init__(
        self,
        message: str,
        provider: str,
        code: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.code = code
        self.cause = cause

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "kind": self.kind.value,
                "code": self.code,
                "message": self.message,
                "provider": self.provider,
                "details": self.details(),
            }
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider={self.provider!r}, code={self.code!r}, message={self.message!r})"


class RateLimitError(ProviderError):
    """Provider throttled the request."""

    kind = FailureKind.RATE_LIMIT

    def __init__(
        self,
        message: str,
        provider: str,
        retry_after: Optional[float] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, provider, code="RATE_LIMIT", cause=cause)
        self.retry_after = retry_after

    def details(self) -> Dict[str, Any]:
        return {"retry_after": self.retry_after} if self.retry_after is not None else {}


class NetworkError(ProviderError):
    kind = FailureKind.NETWORK

    def __init__(self, message: str, provider: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message, provider, code="NETWORK_ERROR", cause=cause)


class ProviderTimeoutError(ProviderError):
    kind = FailureKind.TIMEOUT

    def __init__(
        self,
        message: str,
        provider: str,
        timeout: Optional[float] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, provider, code="TIMEOUT", cause=cause)
        self.timeout = timeout

    def details(self) -> Dict[str, Any]:
        return {"timeout": self.timeout} if self.timeout is not None else {}


class InvalidResponseError(ProviderError):
    """Provider answered, but the answer is unusable."""

    kind = FailureKind.INVALID_RESPONSE

    def __init__(
        self,
        message: str,
        provider: str,
        response: Any = None,
        errors: Optional[list] = None,
    ) -> None:
        super().__init__(message, provider, code="INVALID_RESPONSE")
        self.response = response
        self.errors = list(errors or [])

    def details(self) -> Dict[str, Any]:
        return {"errors": self.errors} if self.errors else {}


# Checked in this order; the first group with a hit decides the kind.
RATE_LIMIT_MARKERS = ("rate limit", "429")
TIMEOUT_MARKERS = ("timeout", "timed out")
NETWORK_MARKERS = (
    "network",
    "fetch",
    "connection",
    "econnrefused",
    "enotfound",
    "connection refused",
    "name or service not known",
)

HTTP_STATUS_BY_KIND: Dict[FailureKind, int] = {
    FailureKind.RATE_LIMIT: 429,
    FailureKind.TIMEOUT: 504,
    FailureKind.INVALID_RESPONSE: 502,
    FailureKind.NETWORK: 500,
    FailureKind.GENERIC: 500,
}


def normalize_error(error: Any, provider_name: str) -> ProviderError:
    """Classify *error* into the failure taxonomy.

    Classification is a substring heuristic on the lower-cased message, so a
    message that merely mentions "timeout" is treated as a timeout. That is a
    known approximation, not a bug.
    """
    if isinstance(error, ProviderError):
        return error

    if not isinstance(error, BaseException):
        return ProviderError(f"Unknown error: {error}", provider_name, code="UNKNOWN_ERROR")

    text = str(error)
    message = text.lower()

    if any(marker in message for marker in RATE_LIMIT_MARKERS):
        return RateLimitError(f"Rate limit exceeded: {text}", provider_name, cause=error)

    if any(marker in message for marker in TIMEOUT_MARKERS):
        return ProviderTimeoutError(f"Request timeout: {text}", provider_name, cause=error)

    if any(marker in message for marker in NETWORK_MARKERS):
        return NetworkError(f"Network error: {text}", provider_name, cause=error)

    # asyncio.TimeoutError and socket errors often carry no message at all
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ProviderTimeoutError(f"Request timeout: {text or type(error).__name__}", provider_name, cause=error)
    if isinstance(error, ConnectionError):
        return NetworkError(f"Network error: {text or type(error).__name__}", provider_name, cause=error)

    return ProviderError(text or type(error).__name__, provider_name, cause=error)


def http_status_for(error: ProviderError) -> int:
    """HTTP status class an API layer should use for *error*."""
    return HTTP_STATUS_BY_KIND.get(error.kind, 500)


def info_field(info: Any, key: str) -> Any:
    """Read *key* from a ProviderInfo-like object or a mapping."""
    if isinstance(info, Mapping):
        return info.get(key)
    return getattr(info, key, None)
