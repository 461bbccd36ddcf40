"""Provider protocol and the shared review/modify implementation."""

from __future__ import annotations

import abc
import asyncio
import json
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from ..domain import response_validator
from ..domain.json_recovery import recover_json
from ..domain.response_validator import REQUIRED_REVIEW_ARRAYS, ResponseKind, ValidationOptions
from ..errors import InvalidResponseError, ProviderTimeoutError
from ..skills import build_modify_prompt, build_review_prompt
from .types import (
    EnhancementRequest,
    EnhancementResponse,
    GenerationConfig,
    ProviderInfo,
    ReviewRequest,
    ReviewResponse,
)

logger = logging.getLogger(__name__)

REQUIRED_CAPABILITIES = (
    "review_resume",
    "modify_resume",
    "enhance_resume",
    "validate_response",
    "estimate_cost",
    "get_provider_info",
)

DERIVED_IMPROVEMENT_CONFIDENCE = 0.85


class AIProvider(Protocol):
    """Protocol for provider implementations."""

    async def review_resume(self, request: ReviewRequest) -> ReviewResponse: ...

    async def modify_resume(self, request: EnhancementRequest) -> EnhancementResponse: ...

    async def enhance_resume(self, request: EnhancementRequest) -> EnhancementResponse: ...

    def validate_response(self, response: Any) -> bool: ...

    def estimate_cost(self, request: Any) -> float: ...

    def get_provider_info(self) -> ProviderInfo: ...


class BaseResumeProvider(abc.ABC):
    """Implements every provider capability on top of one text completion.

    Subclasses supply ``_complete(prompt) -> str`` and raise taxonomy errors
    for failures they can classify precisely. Everything else (prompting,
    timeout, parsing, validation, improvement derivation) lives here.
    """

    name = "base"
    display_name = "Base provider"
    supported_models: List[str] = []
    default_model = ""
    version: Optional[str] = None

    def __init__(
        self,
        model: str = "",
        config: Optional[GenerationConfig] = None,
        validation: Optional[ValidationOptions] = None,
    ) -> None:
        self.model = model or self.default_model
        self.config = config or GenerationConfig()
        self.validation = validation or ValidationOptions()

    @abc.abstractmethod
    async def _complete(self, prompt: str) -> str:
        """Send *prompt* to the model and return its raw text."""

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def review_resume(self, request: ReviewRequest) -> ReviewResponse:
        logger.debug(f"Starting resume review with {self.name}")
        prompt = build_review_prompt(request)
        text = await self._generate(prompt)

        payload = self._load_payload(text)
        if isinstance(payload, Mapping):
            if "reviewResult" not in payload:
                payload = {"reviewResult": dict(payload)}
            self._require_review_content(payload["reviewResult"], text)

        data = self._validated(payload, ResponseKind.REVIEW, text)
        response = ReviewResponse.from_dict(data)
        response.tokens_used = self.estimate_tokens(prompt) + self.estimate_tokens(text)
        response.cost = 0.0
        logger.info(f"Review completed. Tokens: {response.tokens_used}")
        return response

    async def modify_resume(self, request: EnhancementRequest) -> EnhancementResponse:
        if request.review_result is None:
            raise InvalidResponseError("Review result is required for modify_resume", self.name)

        logger.debug(f"Starting resume modification with {self.name}")
        prompt = build_modify_prompt(request)
        text = await self._generate(prompt)

        payload = self._load_payload(text)
        if isinstance(payload, Mapping):
            if "enhancedResume" not in payload and "improvements" not in payload:
                payload = {"enhancedResume": dict(payload)}
            if "improvements" not in payload and isinstance(payload["enhancedResume"], Mapping):
                payload = dict(payload)
                payload["improvements"] = derive_improvements(request.resume, payload["enhancedResume"])

        data = self._validated(payload, ResponseKind.ENHANCEMENT, text)
        response = EnhancementResponse.from_dict(data)
        if response.confidence is None:
            response.confidence = DERIVED_IMPROVEMENT_CONFIDENCE
        response.tokens_used = self.estimate_tokens(prompt) + self.estimate_tokens(text)
        response.cost = 0.0
        logger.info(f"Modification completed. Tokens: {response.tokens_used}")
        return response

    async def enhance_resume(self, request: EnhancementRequest) -> EnhancementResponse:
        """Review, then modify using the review's findings."""
        logger.debug(f"Starting full resume enhancement (review + modify) with {self.name}")
        review = await self.review_resume(
            ReviewRequest(resume=request.resume, job_description=request.job_description, options=request.options)
        )
        modified = await self.modify_resume(
            EnhancementRequest(
                resume=request.resume,
                job_description=request.job_description,
                options=request.options,
                review_result=review.review_result,
            )
        )
        modified.tokens_used = (review.tokens_used or 0) + (modified.tokens_used or 0)
        modified.cost = 0.0
        return modified

    def validate_response(self, response: Union[ReviewResponse, EnhancementResponse, Mapping[str, Any]]) -> bool:
        """Structural check of a response this provider produced."""
        data = response.to_dict() if hasattr(response, "to_dict") else response
        if not isinstance(data, Mapping):
            return False
        kind = ResponseKind.REVIEW if "reviewResult" in data else ResponseKind.ENHANCEMENT
        outcome = response_validator.validate_response(
            data,
            kind,
            ValidationOptions(attempt_recovery=False, validate_resume=False, validate_improvements=False),
        )
        return outcome.is_valid

    def estimate_cost(self, request: Any) -> float:
        return 0.0

    def estimate_tokens(self, text: str) -> int:
        """Rough token count: one token per four characters."""
        return math.ceil(len(text) / 4)

    def get_provider_info(self) -> ProviderInfo:
        return ProviderInfo(
            name=self.name,
            display_name=self.display_name,
            supported_models=list(self.supported_models),
            default_model=self.default_model,
            version=self.version,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _generate(self, prompt: str) -> str:
        timeout = self.config.timeout
        if not timeout or timeout <= 0:
            return await self._complete(prompt)
        try:
            return await asyncio.wait_for(self._complete(prompt), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Request timeout after {timeout}s", self.name, timeout=timeout, cause=e
            ) from e

    def _load_payload(self, text: str) -> Any:
        """Parse *text*; return it unchanged when nothing parses so the
        validator can report why."""
        try:
            return json.loads(text)
        except (ValueError, RecursionError):
            pass
        if not self.validation.attempt_recovery:
            return text
        recovery = recover_json(text)
        if not recovery.success:
            return text
        logger.warning(f"Recovered JSON from {self.name} output using {recovery.strategy}")
        return recovery.value

    def _require_review_content(self, review: Any, raw_text: str) -> None:
        """Reject replies that carry no review at all.

        Structural recovery only fills in missing arrays, so a reply such as
        ``{"error": "overloaded"}`` would otherwise become an empty review.
        """
        if isinstance(review, Mapping) and any(key in review for key in REQUIRED_REVIEW_ARRAYS):
            return
        raise InvalidResponseError(
            f"Invalid review response structure from {self.name}: "
            f"none of {', '.join(REQUIRED_REVIEW_ARRAYS)} present",
            self.name,
            response=raw_text,
            errors=[f"reviewResult must include {' or '.join(REQUIRED_REVIEW_ARRAYS)}"],
        )

    def _validated(self, payload: Any, kind: ResponseKind, raw_text: str) -> Dict[str, Any]:
        outcome = response_validator.validate_response(payload, kind, self.validation)
        for warning in outcome.warnings:
            logger.warning(f"{self.name} {kind.value} response: {warning}")

        data = outcome.usable_response
        if data is None:
            first = outcome.errors[0] if outcome.errors else "unknown problem"
            raise InvalidResponseError(
                f"Invalid {kind.value} response from {self.name}: {first}",
                self.name,
                response=raw_text,
                errors=outcome.errors,
            )
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


def derive_improvements(original: Mapping[str, Any], enhanced: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """List the bullet-point and summary changes between two resumes.

    Experience entries and bullet points are compared by position; extra
    entries on either side are ignored.
    """
    improvements: List[Dict[str, Any]] = []

    original_experience = original.get("experience")
    enhanced_experience = enhanced.get("experience")
    if isinstance(original_experience, list) and isinstance(enhanced_experience, list):
        for i, (before, after) in enumerate(zip(original_experience, enhanced_experience)):
            if not isinstance(before, Mapping) or not isinstance(after, Mapping):
                continue
            old_bullets = before.get("bulletPoints")
            new_bullets = after.get("bulletPoints")
            if not isinstance(old_bullets, list) or not isinstance(new_bullets, list):
                continue
            for old, new in zip(old_bullets, new_bullets):
                if old and new and old != new:
                    improvements.append(
                        {
                            "type": "bulletPoint",
                            "section": f"experience[{i}]",
                            "original": str(old),
                            "suggested": str(new),
                            "reason": "Enhanced to better match job requirements",
                            "confidence": DERIVED_IMPROVEMENT_CONFIDENCE,
                        }
                    )

    old_summary = original.get("summary")
    new_summary = enhanced.get("summary")
    if old_summary and new_summary and old_summary != new_summary:
        improvements.append(
            {
                "type": "summary",
                "section": "summary",
                "original": str(old_summary),
                "suggested": str(new_summary),
                "reason": "Enhanced to align with job requirements",
                "confidence": DERIVED_IMPROVEMENT_CONFIDENCE,
            }
        )

    return improvements
