"""Global pytest fixtures for deterministic test environment."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Union

import pytest

from resume_enhancer.providers.base import BaseResumeProvider
from resume_enhancer.providers.types import EnhancementResponse, ProviderInfo, ReviewResponse, ReviewResult

SAMPLE_RESUME: Dict[str, Any] = {
    "personalInfo": {
        "name": "Jane Smith",
        "email": "jane@example.com",
        "phone": "555-123-4567",
        "location": "Berlin, DE",
    },
    "summary": "Software engineer with 8 years of experience.",
    "experience": [
        {
            "company": "Acme Corp",
            "role": "Senior Software Engineer",
            "startDate": "2020-01",
            "endDate": "Present",
            "location": "Berlin, DE",
            "bulletPoints": ["Worked on web applications", "Fixed bugs"],
        }
    ],
    "skills": {"technical": ["Python", "JavaScript"]},
}


@pytest.fixture(autouse=True)
def _isolate_runtime_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear local runtime env that can leak into tests on developer machines."""
    for key in (
        "DEFAULT_AI_PROVIDER",
        "GEMINI_API_KEY",
        "GEMINI_MODEL",
        "GEMINI_TEMPERATURE",
        "GEMINI_MAX_TOKENS",
        "GEMINI_TIMEOUT",
        "GEMINI_MAX_RETRIES",
        "OPENAI_API_KEY",
        "DEEPSEEK_API_KEY",
        "KIMI_API_KEY",
        "GLM_API_KEY",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def sample_resume() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_RESUME)


class ScriptedProvider(BaseResumeProvider):
    """Provider whose completions come from a script.

    Each script entry is either the text to return or an exception to raise.
    """

    name = "scripted"
    display_name = "Scripted test provider"
    supported_models = ["scripted-1"]
    default_model = "scripted-1"

    def __init__(self, script: Optional[List[Union[str, BaseException]]] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.script = list(script or [])
        self.prompts: List[str] = []

    async def _complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class StubProvider:
    """Duck-typed provider that exposes the six capabilities and counts calls."""

    def __init__(self, name: str = "stub", display_name: str = "Stub provider") -> None:
        self._name = name
        self._display_name = display_name
        self.calls: List[str] = []
        self.review_outcomes: List[Union[ReviewResponse, BaseException]] = []
        self.modify_outcomes: List[Union[EnhancementResponse, BaseException]] = []

    async def review_resume(self, request):
        self.calls.append("review_resume")
        return self._next(self.review_outcomes, ReviewResponse(ReviewResult(strengths=["ok"]), tokens_used=10))

    async def modify_resume(self, request):
        self.calls.append("modify_resume")
        return self._next(self.modify_outcomes, EnhancementResponse(enhanced_resume=dict(request.resume), tokens_used=20))

    async def enhance_resume(self, request):
        self.calls.append("enhance_resume")
        return EnhancementResponse(enhanced_resume=dict(request.resume))

    def validate_response(self, response) -> bool:
        return True

    def estimate_cost(self, request) -> float:
        return 0.0

    def get_provider_info(self) -> ProviderInfo:
        return ProviderInfo(name=self._name, display_name=self._display_name)

    @staticmethod
    def _next(outcomes, default):
        if not outcomes:
            return default
        item = outcomes.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def scripted_provider_cls():
    return ScriptedProvider


@pytest.fixture
def stub_provider_cls():
    return StubProvider


class RecordingSleep:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
