"""Gemini provider implementation."""

from __future__ import annotations

import asyncio
import re
from typing import List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..domain.response_validator import ValidationOptions
from ..errors import InvalidResponseError, RateLimitError
from .base import BaseResumeProvider
from .types import GenerationConfig

_RETRY_HINT = re.compile(r"retry in (\d+(?:\.\d+)?)\s*s", re.IGNORECASE)


class GeminiProvider(BaseResumeProvider):
    """Google Gemini provider using google-genai SDK."""

    name = "gemini"
    display_name = "Google Gemini"
    supported_models = ["gemini-2.5-pro", "gemini-2.5-flash", "gemini-3-flash-preview"]
    default_model = "gemini-2.5-pro"
    version = "2.0.0"

    def __init__(
        self,
        api_key: str,
        model: str = "",
        api_base: str = "",
        config: Optional[GenerationConfig] = None,
        validation: Optional[ValidationOptions] = None,
    ) -> None:
        super().__init__(model=model, config=config, validation=validation)
        # google-genai does not expose a stable api_base option; keep for future use
        _ = api_base
        self.client = genai.Client(api_key=api_key)

    async def _complete(self, prompt: str) -> str:
        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    max_output_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                    response_mime_type="application/json",
                ),
            )
        except genai_errors.APIError as e:
            if getattr(e, "code", None) == 429:
                raise RateLimitError(
                    f"Rate limit exceeded: {e}", self.name, retry_after=_retry_after(str(e)), cause=e
                ) from e
            raise

        return self._from_gemini_response(response)

    def _from_gemini_response(self, response) -> str:
        if not response.candidates:
            raise InvalidResponseError("Empty LLM response: no candidates", self.name, response=response)

        candidate = response.candidates[0]
        parts = candidate.content.parts if candidate.content else []
        text_parts: List[str] = [part.text for part in parts or [] if part.text]

        text = "".join(text_parts).strip()
        if not text:
            raise InvalidResponseError("Empty LLM response: no text", self.name, response=response)
        return text


def _retry_after(message: str) -> Optional[float]:
    """Parse the ``retry in 12.5s`` hint Gemini puts in quota errors."""
    match = _RETRY_HINT.search(message)
    if not match:
        return None
    return float(match.group(1))
