"""Provider registry with a single default provider."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from ..errors import info_field
from .base import REQUIRED_CAPABILITIES, AIProvider

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Base class for registry configuration errors."""


class ProviderNotFoundError(RegistryError, LookupError):
    def __init__(self, provider_name: str) -> None:
        super().__init__(f'AI provider "{provider_name}" is not registered')
        self.provider_name = provider_name


class InvalidProviderError(RegistryError, ValueError):
    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid provider: {message}")


class ProviderRegistry:
    """Named provider implementations plus one default.

    Names are compared case-insensitively after trimming. The first provider
    ever registered becomes the default; the default always names a
    registered provider or is ``None``.

    Example:
        registry = ProviderRegistry()
        registry.register("Gemini", gemini_provider)

        registry.get("GEMINI")          # -> gemini_provider
        registry.get_default_provider() # -> gemini_provider
    """

    def __init__(self) -> None:
        self._providers: Dict[str, AIProvider] = {}
        self._default_name: Optional[str] = None
        self._lock = threading.RLock()

    def register(self, name: str, provider: AIProvider) -> None:
        """Register *provider* under *name*.

        Args:
            name: Provider name; case and surrounding whitespace are ignored
            provider: Object exposing every capability in ``REQUIRED_CAPABILITIES``

        Raises:
            InvalidProviderError: Blank name, missing provider, or a provider
                without the required capabilities
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidProviderError("Provider name must be a non-empty string")
        if provider is None:
            raise InvalidProviderError("Provider instance is required")

        self._validate_provider(provider)
        key = self._normalize(name)

        with self._lock:
            if key in self._providers:
                logger.warning(f'Provider "{key}" is already registered. Overwriting...')
            self._providers[key] = provider
            logger.info(f"Registered AI provider: {key}")

            if self._default_name is None:
                self._default_name = key
                logger.debug(f'Set "{key}" as default provider')

    def get(self, name: str) -> Optional[AIProvider]:
        """Return the provider registered under *name*, or ``None``."""
        with self._lock:
            return self._providers.get(self._normalize(name))

    def get_or_throw(self, name: str) -> AIProvider:
        provider = self.get(name)
        if provider is None:
            raise ProviderNotFoundError(self._normalize(name))
        return provider

    def get_default_provider(self) -> AIProvider:
        """Return the default provider.

        Raises:
            ProviderNotFoundError: When no provider is registered
        """
        with self._lock:
            if self._default_name is None:
                raise ProviderNotFoundError("default (no providers registered)")
            return self._providers[self._default_name]

    def get_default_name(self) -> Optional[str]:
        with self._lock:
            return self._default_name

    def set_default(self, name: str) -> None:
        key = self._normalize(name)
        with self._lock:
            if key not in self._providers:
                raise ProviderNotFoundError(key)
            self._default_name = key
        logger.info(f"Set default AI provider: {key}")

    def has(self, name: str) -> bool:
        with self._lock:
            return self._normalize(name) in self._providers

    def unregister(self, name: str) -> bool:
        """Remove *name*; returns whether anything was removed.

        Removing the default promotes the first remaining provider in
        registration order, or clears the default when none remain.
        """
        key = self._normalize(name)
        with self._lock:
            if self._providers.pop(key, None) is None:
                return False
            logger.info(f"Unregistered AI provider: {key}")

            if self._default_name == key:
                self._default_name = next(iter(self._providers), None)
                if self._default_name is None:
                    logger.warning(f'Default provider "{key}" was unregistered. No default provider set.')
                else:
                    logger.info(f'Set "{self._default_name}" as new default provider')
            return True

    def list_providers(self) -> List[str]:
        """Registered names in registration order."""
        with self._lock:
            return list(self._providers)

    def clear(self) -> None:
        with self._lock:
            count = len(self._providers)
            self._providers.clear()
            self._default_name = None
        logger.info(f"Cleared {count} registered provider(s)")

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __repr__(self) -> str:
        return f"ProviderRegistry(providers={self.list_providers()}, default={self.get_default_name()!r})"

    @staticmethod
    def _normalize(name: str) -> str:
        return name.strip().lower()

    @staticmethod
    def _validate_provider(provider: Any) -> None:
        missing = [cap for cap in REQUIRED_CAPABILITIES if not callable(getattr(provider, cap, None))]
        if missing:
            raise InvalidProviderError(f"Provider is missing required methods: {', '.join(missing)}")

        try:
            info = provider.get_provider_info()
        except Exception as e:
            raise InvalidProviderError(f"get_provider_info() failed: {e}") from e

        if (
            info is None
            or not isinstance(info_field(info, "name"), str)
            or not isinstance(info_field(info, "display_name"), str)
        ):
            raise InvalidProviderError("get_provider_info() must return valid ProviderInfo")
