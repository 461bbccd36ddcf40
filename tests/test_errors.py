"""Tests for the provider failure taxonomy."""

import asyncio

import pytest

from resume_enhancer.errors import (
    FailureKind,
    InvalidResponseError,
    NetworkError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    http_status_for,
    normalize_error,
)


class TestNormalizeError:
    """Message-marker classification of raw errors."""

    def test_provider_error_passes_through_unchanged(self):
        original = RateLimitError("slow down", "gemini", retry_after=5)
        assert normalize_error(original, "other") is original

    @pytest.mark.parametrize(
        "message",
        ["Rate limit reached for model", "HTTP 429 Too Many Requests", "RATE LIMIT"],
    )
    def test_rate_limit_markers(self, message):
        failure = normalize_error(RuntimeError(message), "gemini")
        assert isinstance(failure, RateLimitError)
        assert failure.kind is FailureKind.RATE_LIMIT
        assert failure.provider == "gemini"
        assert failure.message == f"Rate limit exceeded: {message}"

    @pytest.mark.parametrize("message", ["Request timeout", "the read timed out"])
    def test_timeout_markers(self, message):
        failure = normalize_error(RuntimeError(message), "gemini")
        assert isinstance(failure, ProviderTimeoutError)
        assert failure.code == "TIMEOUT"

    @pytest.mark.parametrize(
        "message",
        [
            "network unreachable",
            "fetch failed",
            "connect ECONNREFUSED 127.0.0.1:443",
            "getaddrinfo ENOTFOUND api.example.com",
            "Name or service not known",
        ],
    )
    def test_network_markers(self, message):
        failure = normalize_error(RuntimeError(message), "gemini")
        assert isinstance(failure, NetworkError)
        assert failure.code == "NETWORK_ERROR"

    def test_rate_limit_wins_over_timeout(self):
        failure = normalize_error(RuntimeError("429: timeout while queued"), "gemini")
        assert isinstance(failure, RateLimitError)

    def test_timeout_wins_over_network(self):
        failure = normalize_error(RuntimeError("connection timeout"), "gemini")
        assert isinstance(failure, ProviderTimeoutError)

    def test_unrelated_text_containing_timeout_is_a_timeout(self):
        """Substring matching is a known approximation."""
        failure = normalize_error(ValueError("field 'timeout' must be positive"), "gemini")
        assert isinstance(failure, ProviderTimeoutError)

    def test_cause_is_kept(self):
        raw = RuntimeError("fetch failed")
        assert normalize_error(raw, "gemini").cause is raw

    def test_unclassified_error_is_generic(self):
        failure = normalize_error(KeyError("boom"), "gemini")
        assert type(failure) is ProviderError
        assert failure.kind is FailureKind.GENERIC
        assert failure.code is None
        assert "boom" in failure.message

    def test_empty_builtin_timeout_uses_type(self):
        failure = normalize_error(asyncio.TimeoutError(), "gemini")
        assert isinstance(failure, ProviderTimeoutError)

    def test_empty_connection_error_uses_type(self):
        failure = normalize_error(ConnectionResetError(), "gemini")
        assert isinstance(failure, NetworkError)

    def test_non_exception_value(self):
        failure = normalize_error("something odd", "gemini")
        assert type(failure) is ProviderError
        assert failure.code == "UNKNOWN_ERROR"
        assert failure.message == "Unknown error: something odd"


class TestErrorEnvelope:
    """HTTP surface helpers."""

    @pytest.mark.parametrize(
        "error,status",
        [
            (RateLimitError("x", "p"), 429),
            (ProviderTimeoutError("x", "p"), 504),
            (InvalidResponseError("x", "p"), 502),
            (NetworkError("x", "p"), 500),
            (ProviderError("x", "p"), 500),
        ],
    )
    def test_http_status(self, error, status):
        assert http_status_for(error) == status

    def test_to_dict_includes_details(self):
        error = RateLimitError("Too many requests", "gemini", retry_after=12.0)
        assert error.to_dict() == {
            "error": {
                "kind": "rate_limit",
                "code": "RATE_LIMIT",
                "message": "Too many requests",
                "provider": "gemini",
                "details": {"retry_after": 12.0},
            }
        }

    def test_invalid_response_details_list_errors(self):
        error = InvalidResponseError("bad", "gemini", errors=["a", "b"])
        assert error.to_dict()["error"]["details"] == {"errors": ["a", "b"]}
        assert error.to_dict()["error"]["code"] == "INVALID_RESPONSE"

    def test_str_is_message(self):
        assert str(NetworkError("Network error: down", "gemini")) == "Network error: down"
