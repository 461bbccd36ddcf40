"""Configuration loading.

``config/config.yaml`` holds defaults and ``config/config.local.yaml`` (not
committed) overlays it. A handful of ``GEMINI_*`` environment variables and
``DEFAULT_AI_PROVIDER`` override both.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .config_validator import format_issues, has_errors, validate_config
from .domain.response_validator import ValidationOptions
from .providers.types import GenerationConfig
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.local.yaml"

_REPO_ROOT = Path(__file__).resolve().parents[1]


@dataclass
class ProviderSettings:
    """Settings for one configured provider."""

    name: str
    api_key: str = ""
    model: str = ""
    api_base: str = ""
    temperature: Optional[float] = 0.7
    max_tokens: int = 4096
    timeout: float = 30.0

    def generation_config(self) -> GenerationConfig:
        return GenerationConfig(max_tokens=self.max_tokens, temperature=self.temperature, timeout=self.timeout)


@dataclass
class AppConfig:
    default_provider: str = "gemini"
    providers: Dict[str, ProviderSettings] = field(default_factory=dict)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    validation: ValidationOptions = field(default_factory=ValidationOptions)
    log_level: str = "INFO"


def load_raw_config(config_path: str = DEFAULT_CONFIG_PATH) -> dict:
    """Load raw configuration dictionary from YAML file.

    Priority order:
    1. config.local.yaml (user's local config with secrets)
    2. config.yaml (template/defaults)

    With the default path, missing files are allowed and yield ``{}`` so the
    environment alone can configure a run. An explicit path must exist.
    """

    def _resolve(candidate: str) -> Path:
        path = Path(candidate)
        if path.exists():
            return path
        alt = _REPO_ROOT / candidate
        if alt.exists():
            return alt
        return path

    def _load_yaml(path: Path) -> dict:
        if not path.exists():
            return {}
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Config file must be a mapping: {path}")
            return data

    target = _resolve(config_path)

    # Default behavior: load config.yaml first, then overlay config.local.yaml.
    if Path(config_path).name == "config.local.yaml":
        base = _load_yaml(_resolve("config/config.yaml"))
        return _deep_merge(base, _load_yaml(target))

    if not target.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return _load_yaml(target)


def apply_env_overrides(raw: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> dict:
    """Return a copy of *raw* with environment overrides applied.

    Unparseable or out-of-range numeric values are ignored.
    """
    env = os.environ if environ is None else environ
    merged = _deep_merge({}, dict(raw))

    default_provider = env.get("DEFAULT_AI_PROVIDER", "").strip()
    if default_provider:
        merged["default_provider"] = default_provider.lower()

    gemini: Dict[str, Any] = {}
    if env.get("GEMINI_API_KEY"):
        gemini["api_key"] = env["GEMINI_API_KEY"]
    if env.get("GEMINI_MODEL"):
        gemini["model"] = env["GEMINI_MODEL"]

    temperature = _env_number(env, "GEMINI_TEMPERATURE", float)
    if temperature is not None and 0 <= temperature <= 2:
        gemini["temperature"] = temperature
    max_tokens = _env_number(env, "GEMINI_MAX_TOKENS", int)
    if max_tokens is not None and max_tokens > 0:
        gemini["max_tokens"] = max_tokens
    timeout = _env_number(env, "GEMINI_TIMEOUT", float)
    if timeout is not None and timeout > 0:
        gemini["timeout"] = timeout

    if gemini:
        providers = merged.setdefault("providers", {})
        providers["gemini"] = _deep_merge(providers.get("gemini") or {}, gemini)

    max_retries = _env_number(env, "GEMINI_MAX_RETRIES", int)
    if max_retries is not None and max_retries >= 0:
        merged.setdefault("retry", {})["max_retries"] = max_retries

    return merged


def build_config(raw: Mapping[str, Any]) -> AppConfig:
    """Turn a validated raw mapping into an :class:`AppConfig`."""
    providers: Dict[str, ProviderSettings] = {}
    for name, settings in (raw.get("providers") or {}).items():
        settings = settings or {}
        key = str(name).strip().lower()
        providers[key] = ProviderSettings(
            name=key,
            api_key=str(settings.get("api_key") or ""),
            model=str(settings.get("model") or ""),
            api_base=str(settings.get("api_base") or ""),
            temperature=settings.get("temperature", 0.7),
            max_tokens=int(settings.get("max_tokens", 4096)),
            timeout=float(settings.get("timeout", 30.0)),
        )

    retry = raw.get("retry") or {}
    validation = raw.get("validation") or {}
    policy_fields = RetryPolicy.__dataclass_fields__
    option_fields = ValidationOptions.__dataclass_fields__

    return AppConfig(
        default_provider=str(raw.get("default_provider") or "gemini").strip().lower(),
        providers=providers,
        retry=RetryPolicy(**{k: v for k, v in retry.items() if k in policy_fields}),
        validation=ValidationOptions(**{k: bool(v) for k, v in validation.items() if k in option_fields}),
        log_level=str((raw.get("logging") or {}).get("level", "INFO")).upper(),
    )


def load_config(config_path: str = DEFAULT_CONFIG_PATH, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load, override, validate and build the application config.

    Raises:
        ValueError: If validation reports any error
    """
    raw = apply_env_overrides(load_raw_config(config_path), environ)
    issues = validate_config(raw, environ)
    for issue in issues:
        if not has_errors([issue]):
            logger.warning(f"Config warning [{issue.field}]: {issue.message}")
    if has_errors(issues):
        raise ValueError(f"Invalid configuration:\n{format_issues(issues)}")

    config = build_config(raw)
    logger.debug(f"Configuration loaded. Default provider: {config.default_provider}")
    return config


def _deep_merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(base_value, value)
        elif isinstance(value, dict):
            merged[key] = _deep_merge({}, value)
        else:
            merged[key] = value
    return merged


def _env_number(env: Mapping[str, str], name: str, cast):
    value = env.get(name, "").strip()
    if not value:
        return None
    try:
        return cast(value)
    except ValueError:
        logger.warning(f"Ignoring {name}={value!r}: not a valid number")
        return None
