"""Logging setup and per-call tracking of provider operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER = "resume_enhancer"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package root logger once; later calls only change the level."""
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    return root


@dataclass
class ProviderCallEvent:
    """One service-level provider call, retries included."""

    timestamp: datetime
    operation: str  # "review_resume" | "modify_resume" | "enhance_resume"
    provider: str
    duration_ms: float
    success: bool
    failure_kind: Optional[str] = None
    tokens_used: Optional[int] = None


class ProviderCallObserver:
    """
    Records provider calls made through the enhancement service.

    Each call is logged as one line; aggregated numbers are available from
    :meth:`get_stats`.
    """

    def __init__(self) -> None:
        self.events: List[ProviderCallEvent] = []
        self.logger = logging.getLogger(f"{ROOT_LOGGER}.calls")

    def record_call(
        self,
        operation: str,
        provider: str,
        duration_ms: float,
        success: bool,
        failure_kind: Optional[str] = None,
        tokens_used: Optional[int] = None,
    ) -> ProviderCallEvent:
        event = ProviderCallEvent(
            timestamp=datetime.now(timezone.utc),
            operation=operation,
            provider=provider,
            duration_ms=duration_ms,
            success=success,
            failure_kind=failure_kind,
            tokens_used=tokens_used,
        )
        self.events.append(event)

        if success:
            tokens = f" | {tokens_used} tokens" if tokens_used is not None else ""
            self.logger.info(f"OK {operation} via {provider} ({duration_ms:.2f}ms){tokens}")
        else:
            self.logger.error(f"FAILED {operation} via {provider} [{failure_kind}] ({duration_ms:.2f}ms)")
        return event

    def get_stats(self) -> Dict[str, Any]:
        """
        Aggregate the recorded calls.

        Returns:
            Dictionary with call counts, failures by kind, tokens and duration
        """
        failures: Dict[str, int] = {}
        for event in self.events:
            if not event.success:
                kind = event.failure_kind or "unknown"
                failures[kind] = failures.get(kind, 0) + 1

        return {
            "calls": len(self.events),
            "succeeded": sum(1 for e in self.events if e.success),
            "failed": sum(1 for e in self.events if not e.success),
            "failures_by_kind": failures,
            "total_tokens": sum(e.tokens_used or 0 for e in self.events),
            "total_duration_ms": sum(e.duration_ms for e in self.events),
        }

    def clear(self) -> None:
        self.events.clear()
