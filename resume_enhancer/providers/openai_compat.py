"""OpenAI-compatible provider implementation."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from ..domain.response_validator import ValidationOptions
from ..errors import InvalidResponseError, NetworkError, ProviderTimeoutError, RateLimitError
from .base import BaseResumeProvider
from .types import GenerationConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a resume enhancement assistant. Always answer with a single JSON object."

_ALLOWED_TEMPERATURE = re.compile(r"invalid temperature.*?only\s+([0-9]+(?:\.[0-9]+)?)\s+is allowed")


class OpenAICompatibleProvider(BaseResumeProvider):
    """Provider for OpenAI-compatible chat APIs."""

    name = "openai"
    display_name = "OpenAI-compatible"

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: str = "",
        name: str = "",
        config: Optional[GenerationConfig] = None,
        validation: Optional[ValidationOptions] = None,
    ) -> None:
        super().__init__(model=model, config=config, validation=validation)
        if name:
            self.name = name
            self.display_name = f"{name} (OpenAI-compatible)"
        self.supported_models = [model] if model else []
        self.default_model = model
        self.api_base = api_base or ""
        self.client = AsyncOpenAI(api_key=api_key, base_url=api_base or None)
        self._forced_temperature: Optional[float] = None

    async def _complete(self, prompt: str) -> str:
        kwargs = self._build_chat_kwargs(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ]
        )
        try:
            completion = await self._create_with_temperature_retry(kwargs)
        except openai.RateLimitError as e:
            raise RateLimitError(
                f"Rate limit exceeded: {e}", self.name, retry_after=_retry_after_header(e), cause=e
            ) from e
        # APITimeoutError subclasses APIConnectionError
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(
                f"Request timeout: {e}", self.name, timeout=self.config.timeout, cause=e
            ) from e
        except openai.APIConnectionError as e:
            raise NetworkError(f"Network error: {e}", self.name, cause=e) from e

        return self._from_openai_completion(completion)

    def _build_chat_kwargs(self, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"model": self.model, "messages": messages}
        if self.config.max_tokens and self.config.max_tokens > 0:
            kwargs["max_tokens"] = self.config.max_tokens

        # A temperature the endpoint once rejected stays replaced for this instance
        temperature = self._forced_temperature if self._forced_temperature is not None else self.config.temperature
        if temperature is not None:
            kwargs["temperature"] = temperature
        return kwargs

    async def _create_with_temperature_retry(self, kwargs: Dict[str, Any]):
        try:
            return await self.client.chat.completions.create(**kwargs)
        except openai.BadRequestError as e:
            allowed = _allowed_temperature(e)
            if allowed is None or kwargs.get("temperature") == allowed:
                raise
            logger.warning(f"{self.name} rejected temperature {kwargs.get('temperature')}; retrying with {allowed}")
            self._forced_temperature = allowed
            return await self.client.chat.completions.create(**{**kwargs, "temperature": allowed})

    def _from_openai_completion(self, completion) -> str:
        if not completion.choices:
            raise InvalidResponseError("Empty LLM response: no choices", self.name, response=completion)

        text = _message_text(getattr(completion.choices[0].message, "content", None)).strip()
        if not text:
            raise InvalidResponseError("Empty LLM response: no text", self.name, response=completion)
        return text


def _message_text(content: Any) -> str:
    """Flatten chat message content; some endpoints return a list of parts."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return str(content)

    chunks = []
    for part in content:
        if isinstance(part, str):
            chunks.append(part)
        elif isinstance(part, dict):
            chunks.append(str(part.get("text") or ""))
        elif part is not None:
            chunks.append(str(getattr(part, "text", None) or ""))
    return "".join(chunks)


def _allowed_temperature(error: Exception) -> Optional[float]:
    """Parse e.g. ``invalid temperature: only 0.6 is allowed for this model``."""
    match = _ALLOWED_TEMPERATURE.search(str(error).lower())
    if not match:
        return None
    return float(match.group(1))


def _retry_after_header(error: Any) -> Optional[float]:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None) or {}
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
