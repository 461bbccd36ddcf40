"""Retry logic with exponential backoff for provider operations."""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from .errors import FailureKind, ProviderError, RateLimitError, info_field, normalize_error


logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Union[Awaitable[T], T]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration. Delays are in seconds."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    retry_on_rate_limit: bool = True
    retry_on_network_error: bool = True
    retry_on_timeout: bool = True
    # a deterministic malformed reply rarely improves on a second try
    retry_on_invalid_response: bool = False
    jitter_factor: float = 0.3

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be non-negative")
        if not 0 <= self.jitter_factor < 1:
            raise ValueError(f"jitter_factor must be in [0, 1), got {self.jitter_factor}")


@dataclass
class ExecutionStatistics:
    """Running failure/retry counters for one orchestrator."""

    total_failures: int = 0
    failures_by_kind: Dict[str, int] = field(default_factory=dict)
    total_retries: int = 0
    successful_recoveries: int = 0
    last_failure: Optional[ProviderError] = None
    last_failure_at: Optional[datetime] = None

    def copy(self) -> "ExecutionStatistics":
        return ExecutionStatistics(
            total_failures=self.total_failures,
            failures_by_kind=dict(self.failures_by_kind),
            total_retries=self.total_retries,
            successful_recoveries=self.successful_recoveries,
            last_failure=self.last_failure,
            last_failure_at=self.last_failure_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_failures": self.total_failures,
            "failures_by_kind": dict(self.failures_by_kind),
            "total_retries": self.total_retries,
            "successful_recoveries": self.successful_recoveries,
            "last_failure": self.last_failure.message if self.last_failure else None,
            "last_failure_at": self.last_failure_at.isoformat() if self.last_failure_at else None,
        }


class RetryOrchestrator:
    """Runs provider operations with classification, backoff and statistics.

    One instance owns one :class:`ExecutionStatistics`. Counter updates are
    taken under a lock so an instance can be shared by concurrent callers; the
    backoff wait itself holds no lock.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._statistics = ExecutionStatistics()

    async def execute_with_retry(
        self,
        operation: Operation,
        provider: Any,
        operation_label: str = "operation",
    ) -> T:
        """
        Execute *operation* with retry and backoff.

        Args:
            operation: Zero-argument callable returning a value or an awaitable
            provider: Provider the operation talks to (used for error context)
            operation_label: Name used in log messages

        Returns:
            Result of the first successful attempt

        Raises:
            ProviderError: The last classified failure once retries are
                exhausted or the failure is not retryable
        """
        provider_name = _provider_name(provider)
        attempt = 0

        while True:
            try:
                result = operation()
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                failure = normalize_error(e, provider_name)
                self._record_failure(failure)

                if attempt < self.policy.max_retries and self.should_retry(failure):
                    attempt += 1
                    with self._lock:
                        self._statistics.total_retries += 1

                    delay = self.calculate_retry_delay(attempt, failure)
                    logger.warning(
                        f'Operation "{operation_label}" failed for provider "{provider_name}" '
                        f"(attempt {attempt}/{self.policy.max_retries}): {failure.message}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    await self._sleep(delay)
                    continue

                reason = "retries exhausted" if self.should_retry(failure) else "not retryable"
                logger.error(
                    f'Operation "{operation_label}" failed for provider "{provider_name}" '
                    f"after {attempt + 1} attempt(s) ({reason}): {failure.message}"
                )
                if failure is e:
                    raise
                raise failure from e

            if attempt > 0:
                with self._lock:
                    self._statistics.successful_recoveries += 1
                logger.info(
                    f'Operation "{operation_label}" succeeded after {attempt} retry(ies) '
                    f'for provider "{provider_name}"'
                )
            return result

    def should_retry(self, error: ProviderError) -> bool:
        """Whether the policy allows retrying this kind of failure."""
        switches = {
            FailureKind.RATE_LIMIT: self.policy.retry_on_rate_limit,
            FailureKind.NETWORK: self.policy.retry_on_network_error,
            FailureKind.TIMEOUT: self.policy.retry_on_timeout,
            FailureKind.INVALID_RESPONSE: self.policy.retry_on_invalid_response,
        }
        return switches.get(error.kind, True)

    def calculate_retry_delay(self, attempt: int, error: ProviderError) -> float:
        """
        Delay before retry number *attempt* (1-based).

        A provider-supplied ``retry_after`` hint takes precedence over the
        computed backoff. Otherwise ``base * 2**(attempt - 1)`` plus up to
        ``jitter_factor`` of that value, capped at ``max_delay``.
        """
        if isinstance(error, RateLimitError) and error.retry_after is not None and error.retry_after > 0:
            return min(float(error.retry_after), self.policy.max_delay)

        delay = self.policy.base_delay * (2 ** (attempt - 1))

        # Add jitter so concurrent callers don't retry in lockstep
        jitter = self._rng.random() * self.policy.jitter_factor * delay

        return min(delay + jitter, self.policy.max_delay)

    def get_statistics(self) -> ExecutionStatistics:
        """Snapshot of the counters; mutating it does not affect the orchestrator."""
        with self._lock:
            return self._statistics.copy()

    def reset_statistics(self) -> None:
        with self._lock:
            self._statistics = ExecutionStatistics()

    def _record_failure(self, failure: ProviderError) -> None:
        with self._lock:
            stats = self._statistics
            stats.total_failures += 1
            kind = failure.kind.value
            stats.failures_by_kind[kind] = stats.failures_by_kind.get(kind, 0) + 1
            stats.last_failure = failure
            stats.last_failure_at = datetime.now(timezone.utc)


def _provider_name(provider: Any) -> str:
    if isinstance(provider, str):
        return provider
    try:
        name = info_field(provider.get_provider_info(), "name")
    except Exception:
        name = None
    return name if isinstance(name, str) and name else type(provider).__name__
