"""Configuration validator for resume-enhancer startup checks."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .providers import PROVIDER_DEFAULTS, resolve_api_key

RETRY_SWITCHES = (
    "retry_on_rate_limit",
    "retry_on_network_error",
    "retry_on_timeout",
    "retry_on_invalid_response",
)
VALIDATION_SWITCHES = (
    "attempt_recovery",
    "strict_resume_validation",
    "validate_resume",
    "validate_improvements",
)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ConfigError:
    """A single configuration issue."""
    field: str
    message: str
    severity: Severity


def validate_config(raw_config: Dict[str, Any], environ: Optional[Mapping[str, str]] = None) -> List[ConfigError]:
    """Validate raw configuration and return a list of issues.

    Args:
        raw_config: Raw config dict from YAML, after environment overrides
        environ: Environment used to resolve API keys (defaults to os.environ)

    Returns:
        List of ConfigError (empty = valid)
    """
    env = os.environ if environ is None else environ
    errors: List[ConfigError] = []

    # --- Providers ---
    providers = raw_config.get("providers") or {}
    if not isinstance(providers, dict):
        errors.append(ConfigError(
            field="providers",
            message="providers must be a mapping of provider name to settings",
            severity=Severity.ERROR,
        ))
        providers = {}
    elif not providers:
        errors.append(ConfigError(
            field="providers",
            message="No provider configured. Set GEMINI_API_KEY or add a provider to config/config.local.yaml",
            severity=Severity.ERROR,
        ))

    for name, settings in providers.items():
        errors.extend(_validate_provider(str(name).strip().lower(), settings, env))

    # --- Default provider ---
    default = raw_config.get("default_provider", "gemini")
    if not isinstance(default, str) or not default.strip():
        errors.append(ConfigError(
            field="default_provider",
            message="default_provider must be a non-empty string",
            severity=Severity.ERROR,
        ))
    elif providers and default.strip().lower() not in {str(n).strip().lower() for n in providers}:
        errors.append(ConfigError(
            field="default_provider",
            message=f"default_provider {default!r} is not configured under providers",
            severity=Severity.ERROR,
        ))

    # --- Retry ---
    errors.extend(_validate_retry(raw_config.get("retry") or {}))

    # --- Validation switches ---
    validation = raw_config.get("validation") or {}
    for key in VALIDATION_SWITCHES:
        if key in validation and not isinstance(validation[key], bool):
            errors.append(ConfigError(
                field=f"validation.{key}",
                message=f"validation.{key} must be true or false, got {validation[key]!r}",
                severity=Severity.ERROR,
            ))

    # --- Logging ---
    level = (raw_config.get("logging") or {}).get("level", "INFO")
    if str(level).upper() not in LOG_LEVELS:
        errors.append(ConfigError(
            field="logging.level",
            message=f"Unknown log level {level!r}; falling back to INFO",
            severity=Severity.WARNING,
        ))

    return errors


def has_errors(issues: List[ConfigError]) -> bool:
    """Check if any issues are errors (not just warnings)."""
    return any(e.severity == Severity.ERROR for e in issues)


def format_issues(issues: List[ConfigError]) -> str:
    return "\n".join(f"- [{i.severity.value}] {i.field}: {i.message}" for i in issues)


def _validate_provider(name: str, settings: Any, env: Mapping[str, str]) -> List[ConfigError]:
    prefix = f"providers.{name}"
    if not isinstance(settings, dict):
        return [ConfigError(field=prefix, message=f"{prefix} must be a mapping", severity=Severity.ERROR)]

    errors: List[ConfigError] = []
    defaults = PROVIDER_DEFAULTS.get(name, {})

    if not resolve_api_key(name, str(settings.get("api_key") or ""), env):
        env_key = defaults.get("env_key") or f"{name.upper()}_API_KEY"
        errors.append(ConfigError(
            field=f"{prefix}.api_key",
            message=f"{env_key} not set. Set the env var or add api_key to config/config.local.yaml",
            severity=Severity.ERROR,
        ))

    model = settings.get("model", defaults.get("model", ""))
    if not model or not isinstance(model, str):
        errors.append(ConfigError(
            field=f"{prefix}.model",
            message="model must be a non-empty string",
            severity=Severity.ERROR,
        ))

    temperature = settings.get("temperature", 0.7)
    if temperature is not None and (not _is_number(temperature) or temperature < 0 or temperature > 2):
        errors.append(ConfigError(
            field=f"{prefix}.temperature",
            message=f"temperature must be a number between 0 and 2, got {temperature}",
            severity=Severity.ERROR,
        ))

    max_tokens = settings.get("max_tokens", 4096)
    if not isinstance(max_tokens, int) or isinstance(max_tokens, bool) or max_tokens <= 0:
        errors.append(ConfigError(
            field=f"{prefix}.max_tokens",
            message=f"max_tokens must be a positive integer, got {max_tokens}",
            severity=Severity.ERROR,
        ))

    timeout = settings.get("timeout", 30.0)
    if not _is_number(timeout) or timeout <= 0:
        errors.append(ConfigError(
            field=f"{prefix}.timeout",
            message=f"timeout must be a positive number of seconds, got {timeout}",
            severity=Severity.ERROR,
        ))

    return errors


def _validate_retry(retry: Any) -> List[ConfigError]:
    if not isinstance(retry, dict):
        return [ConfigError(field="retry", message="retry must be a mapping", severity=Severity.ERROR)]

    errors: List[ConfigError] = []

    max_retries = retry.get("max_retries", 3)
    if not isinstance(max_retries, int) or isinstance(max_retries, bool) or max_retries < 0:
        errors.append(ConfigError(
            field="retry.max_retries",
            message=f"max_retries must be a non-negative integer, got {max_retries}",
            severity=Severity.ERROR,
        ))

    for key in ("base_delay", "max_delay"):
        value = retry.get(key, 1.0)
        if not _is_number(value) or value < 0:
            errors.append(ConfigError(
                field=f"retry.{key}",
                message=f"{key} must be a non-negative number of seconds, got {value}",
                severity=Severity.ERROR,
            ))

    base_delay, max_delay = retry.get("base_delay", 1.0), retry.get("max_delay", 30.0)
    if _is_number(base_delay) and _is_number(max_delay) and base_delay > max_delay:
        errors.append(ConfigError(
            field="retry.base_delay",
            message=f"base_delay ({base_delay}) is larger than max_delay ({max_delay}); every retry waits max_delay",
            severity=Severity.WARNING,
        ))

    jitter = retry.get("jitter_factor", 0.3)
    if not _is_number(jitter) or not 0 <= jitter < 1:
        errors.append(ConfigError(
            field="retry.jitter_factor",
            message=f"jitter_factor must be in [0, 1), got {jitter}",
            severity=Severity.ERROR,
        ))

    for key in RETRY_SWITCHES:
        if key in retry and not isinstance(retry[key], bool):
            errors.append(ConfigError(
                field=f"retry.{key}",
                message=f"retry.{key} must be true or false, got {retry[key]!r}",
                severity=Severity.ERROR,
            ))

    return errors


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
