"""Provider-agnostic request and response types.

Wire dictionaries use the camelCase keys the model is asked to emit
(``reviewResult``, ``prioritizedActions``, ``enhancedResume`` ...).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

Resume = Dict[str, Any]


@dataclass
class ProviderInfo:
    """Static description of a provider."""

    name: str
    display_name: str
    supported_models: List[str] = field(default_factory=list)
    default_model: str = ""
    version: Optional[str] = None


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


@dataclass
class PrioritizedAction:
    type: str  # "enhance" | "reorder" | "add" | "remove" | "rewrite"
    section: str
    priority: str  # "high" | "medium" | "low"
    reason: str
    suggested_change: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PrioritizedAction":
        return cls(
            type=str(data.get("type", "")),
            section=str(data.get("section", "")),
            priority=str(data.get("priority", "medium")),
            reason=str(data.get("reason", "")),
            suggested_change=data.get("suggestedChange"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "section": self.section,
            "priority": self.priority,
            "reason": self.reason,
        }
        if self.suggested_change is not None:
            data["suggestedChange"] = self.suggested_change
        return data


@dataclass
class ReviewResult:
    """Analysis produced by the review phase."""

    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    opportunities: List[str] = field(default_factory=list)
    prioritized_actions: List[PrioritizedAction] = field(default_factory=list)
    confidence: float = 0.5
    reasoning: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReviewResult":
        return cls(
            strengths=list(data.get("strengths") or []),
            weaknesses=list(data.get("weaknesses") or []),
            opportunities=list(data.get("opportunities") or []),
            prioritized_actions=[
                PrioritizedAction.from_dict(action)
                for action in data.get("prioritizedActions") or []
                if isinstance(action, Mapping)
            ],
            confidence=_as_float(data.get("confidence"), 0.5),
            reasoning=data.get("reasoning"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "opportunities": list(self.opportunities),
            "prioritizedActions": [a.to_dict() for a in self.prioritized_actions],
            "confidence": self.confidence,
        }
        if self.reasoning is not None:
            data["reasoning"] = self.reasoning
        return data


@dataclass
class ReviewRequest:
    resume: Resume
    job_description: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ReviewResponse:
    review_result: ReviewResult
    tokens_used: Optional[int] = None
    cost: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReviewResponse":
        return cls(
            review_result=ReviewResult.from_dict(data.get("reviewResult") or {}),
            tokens_used=data.get("tokensUsed"),
            cost=data.get("cost"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"reviewResult": self.review_result.to_dict()}
        if self.tokens_used is not None:
            data["tokensUsed"] = self.tokens_used
        if self.cost is not None:
            data["cost"] = self.cost
        return data


@dataclass
class Improvement:
    type: str  # "bulletPoint" | "summary" | "skill" | "keyword"
    section: str
    original: str
    suggested: str
    reason: str
    confidence: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Improvement":
        return cls(
            type=str(data.get("type", "")),
            section=str(data.get("section", "")),
            original=str(data.get("original", "")),
            suggested=str(data.get("suggested", "")),
            reason=str(data.get("reason", "")),
            confidence=_as_float(data.get("confidence"), 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "section": self.section,
            "original": self.original,
            "suggested": self.suggested,
            "reason": self.reason,
            "confidence": self.confidence,
        }


@dataclass
class EnhancementRequest:
    resume: Resume
    job_description: str
    options: Dict[str, Any] = field(default_factory=dict)
    review_result: Optional[ReviewResult] = None


@dataclass
class EnhancementResponse:
    """Enhanced resume plus the list of changes made."""

    enhanced_resume: Resume
    improvements: List[Improvement] = field(default_factory=list)
    reasoning: Optional[str] = None
    confidence: Optional[float] = None
    tokens_used: Optional[int] = None
    cost: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EnhancementResponse":
        return cls(
            enhanced_resume=dict(data["enhancedResume"]),
            improvements=[
                Improvement.from_dict(item) for item in data.get("improvements") or [] if isinstance(item, Mapping)
            ],
            reasoning=data.get("reasoning"),
            confidence=data.get("confidence"),
            tokens_used=data.get("tokensUsed"),
            cost=data.get("cost"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "enhancedResume": self.enhanced_resume,
            "improvements": [i.to_dict() for i in self.improvements],
        }
        for key, value in (
            ("reasoning", self.reasoning),
            ("confidence", self.confidence),
            ("tokensUsed", self.tokens_used),
            ("cost", self.cost),
        ):
            if value is not None:
                data[key] = value
        return data


@dataclass
class GenerationConfig:
    """Common generation settings passed to providers."""

    max_tokens: int = 4096
    temperature: Optional[float] = 0.7
    timeout: float = 30.0
