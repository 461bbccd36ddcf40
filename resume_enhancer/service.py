"""Resume enhancement service: the application-facing entry point.

Each public method resolves one provider from the registry and runs exactly
one provider capability per ``execute_with_retry`` call.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from .config import AppConfig
from .errors import ProviderError, info_field
from .observability import ProviderCallObserver
from .providers import AIProvider, ProviderRegistry, create_provider
from .providers.types import (
    EnhancementRequest,
    EnhancementResponse,
    Resume,
    ReviewRequest,
    ReviewResponse,
    ReviewResult,
)
from .retry import ExecutionStatistics, RetryOrchestrator

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProviderFactory = Callable[..., AIProvider]


class ResumeEnhancementService:
    """Runs review and modification through the retry orchestrator.

    Example:
        registry = build_registry(config)
        service = ResumeEnhancementService(registry, RetryOrchestrator(config.retry))
        result = await service.enhance_resume(resume, job_text)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        orchestrator: Optional[RetryOrchestrator] = None,
        provider_name: Optional[str] = None,
        observer: Optional[ProviderCallObserver] = None,
    ) -> None:
        self.registry = registry
        self.orchestrator = orchestrator or RetryOrchestrator()
        self.provider_name = provider_name
        self.observer = observer or ProviderCallObserver()

    async def review_resume(
        self,
        resume: Resume,
        job_description: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> ReviewResponse:
        provider = self._resolve_provider()
        request = ReviewRequest(resume=resume, job_description=job_description, options=dict(options or {}))
        return await self._run("review_resume", provider, lambda: provider.review_resume(request))

    async def modify_resume(
        self,
        resume: Resume,
        job_description: str,
        review_result: ReviewResult,
        options: Optional[Dict[str, Any]] = None,
    ) -> EnhancementResponse:
        provider = self._resolve_provider()
        request = EnhancementRequest(
            resume=resume,
            job_description=job_description,
            options=dict(options or {}),
            review_result=review_result,
        )
        return await self._run("modify_resume", provider, lambda: provider.modify_resume(request))

    async def enhance_resume(
        self,
        resume: Resume,
        job_description: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> EnhancementResponse:
        """Review then modify; each phase is retried on its own."""
        review = await self.review_resume(resume, job_description, options)
        enhanced = await self.modify_resume(resume, job_description, review.review_result, options)
        enhanced.tokens_used = (review.tokens_used or 0) + (enhanced.tokens_used or 0)
        enhanced.cost = 0.0
        return enhanced

    def get_statistics(self) -> ExecutionStatistics:
        return self.orchestrator.get_statistics()

    def _resolve_provider(self) -> AIProvider:
        if self.provider_name:
            return self.registry.get_or_throw(self.provider_name)
        return self.registry.get_default_provider()

    async def _run(self, operation: str, provider: AIProvider, call: Callable[[], Awaitable[T]]) -> T:
        name = info_field(provider.get_provider_info(), "name") or type(provider).__name__
        start = time.perf_counter()
        try:
            result = await self.orchestrator.execute_with_retry(call, provider, operation)
        except ProviderError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            self.observer.record_call(operation, name, duration_ms, success=False, failure_kind=e.kind.value)
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        self.observer.record_call(
            operation, name, duration_ms, success=True, tokens_used=getattr(result, "tokens_used", None)
        )
        return result


def build_registry(config: AppConfig, factory: ProviderFactory = create_provider) -> ProviderRegistry:
    """Create and register every configured provider, then apply the default."""
    registry = ProviderRegistry()
    for name, settings in config.providers.items():
        provider = factory(
            name,
            api_key=settings.api_key,
            model=settings.model,
            api_base=settings.api_base,
            config=settings.generation_config(),
            validation=config.validation,
        )
        registry.register(name, provider)

    if config.default_provider and registry.has(config.default_provider):
        registry.set_default(config.default_provider)
    elif len(registry):
        logger.warning(
            f"Default provider {config.default_provider!r} is not configured; "
            f"using {registry.get_default_name()!r}"
        )
    return registry


def create_service(config: AppConfig, provider_name: Optional[str] = None) -> ResumeEnhancementService:
    """Composition root for one run: registry, orchestrator and observer."""
    return ResumeEnhancementService(
        build_registry(config),
        RetryOrchestrator(config.retry),
        provider_name=provider_name,
    )
