"""Provider factory and defaults."""

from __future__ import annotations

import os
from typing import Dict, Mapping, Optional

from ..domain.response_validator import ValidationOptions
from .base import REQUIRED_CAPABILITIES, AIProvider, BaseResumeProvider, derive_improvements
from .gemini import GeminiProvider
from .openai_compat import OpenAICompatibleProvider
from .registry import InvalidProviderError, ProviderNotFoundError, ProviderRegistry, RegistryError
from .types import GenerationConfig, ProviderInfo

PROVIDER_DEFAULTS: Dict[str, Dict[str, str]] = {
    "gemini": {"api_base": "", "env_key": "GEMINI_API_KEY", "model": "gemini-2.5-pro"},
    "openai": {"api_base": "", "env_key": "OPENAI_API_KEY", "model": "gpt-4o-mini"},
    "deepseek": {"api_base": "https://api.deepseek.com", "env_key": "DEEPSEEK_API_KEY", "model": "deepseek-chat"},
    "kimi": {"api_base": "https://api.moonshot.cn/v1", "env_key": "KIMI_API_KEY", "model": "moonshot-v1-32k"},
    "glm": {"api_base": "https://open.bigmodel.cn/api/paas/v4", "env_key": "GLM_API_KEY", "model": "glm-4"},
}


def create_provider(
    provider: str,
    api_key: str = "",
    model: str = "",
    api_base: str = "",
    config: Optional[GenerationConfig] = None,
    validation: Optional[ValidationOptions] = None,
) -> BaseResumeProvider:
    """Build the provider client for *provider*.

    Raises:
        ValueError: No API key can be resolved, or a provider without
            defaults has no model
    """
    provider_name = (provider or "gemini").strip().lower()
    defaults = PROVIDER_DEFAULTS.get(provider_name, {})
    model = model or defaults.get("model", "")

    api_key = resolve_api_key(provider_name, api_key)
    if not api_key:
        env_key = defaults.get("env_key")
        missing = f"{env_key} not set" if env_key else "API key not set"
        raise ValueError(f"{missing}. Please set the env var or add api_key to config/config.local.yaml")

    if provider_name == "gemini":
        return GeminiProvider(
            api_key=api_key,
            model=model,
            api_base=api_base,
            config=config,
            validation=validation,
        )

    if not model:
        raise ValueError(f"providers.{provider_name}.model must be set for OpenAI-compatible providers")

    return OpenAICompatibleProvider(
        api_key=api_key,
        model=model,
        api_base=api_base or defaults.get("api_base", ""),
        name=provider_name,
        config=config,
        validation=validation,
    )


def resolve_api_key(provider: str, configured: str = "", environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the API key for *provider*, or ``""`` when none can be found.

    The provider's env var (``GEMINI_API_KEY`` etc.) wins over the configured
    value; a configured ``${VAR}`` placeholder is looked up in the environment.
    """
    env = os.environ if environ is None else environ
    env_key = PROVIDER_DEFAULTS.get(provider, {}).get("env_key", "")
    if env_key and env.get(env_key):
        return env[env_key]

    configured = configured or ""
    if not configured.startswith("${"):
        return configured
    if configured.endswith("}"):
        return env.get(configured[2:-1], "")
    return ""


__all__ = [
    "AIProvider",
    "BaseResumeProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "ProviderRegistry",
    "RegistryError",
    "ProviderNotFoundError",
    "InvalidProviderError",
    "ProviderInfo",
    "GenerationConfig",
    "REQUIRED_CAPABILITIES",
    "PROVIDER_DEFAULTS",
    "create_provider",
    "resolve_api_key",
    "derive_improvements",
]
