"""Registry of named context backends."""
from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from chat_context.errors import UnknownBackend
from chat_context.provider import ContextProvider
from chat_context.store.base import ContextBackend

logger = logging.getLogger(__name__)

BackendFactory = Callable[[Mapping[str, Any]], ContextBackend]


def config_key(config: Mapping[str, Any] | None) -> str:
    """Serialize a provider configuration so equal configs compare equal."""
    return json.dumps(dict(config or {}), sort_keys=True, default=str)


class ProviderRegistry:
    """Maps backend names to factories and memoizes one provider per config."""

    def __init__(self) -> None:
        self._factories: dict[str, BackendFactory] = {}
        self._providers: dict[tuple[str, str], ContextProvider] = {}

    def register(self, name: str, factory: BackendFactory) -> None:
        """Register a backend factory. Re-registering a name replaces it."""
        if name in self._factories:
            logger.info("Replacing context backend %r", name)
        self._factories[name] = factory
        self._evict(name)

    def unregister(self, name: str) -> None:
        """Remove a backend factory and the providers built from it."""
        self._factories.pop(name, None)
        self._evict(name)

    def has_provider(self, name: str) -> bool:
        return name in self._factories

    def provider_names(self) -> list[str]:
        return sorted(self._factories)

    def get_provider(
        self, name: str, config: Mapping[str, Any] | None = None
    ) -> ContextProvider:
        """Return the provider for a backend name and configuration.

        Providers are cached: structurally equal configurations get the same
        instance.

        Raises:
            UnknownBackend: if no factory is registered under ``name``.
        """
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownBackend(name)
        key = (name, config_key(config))
        provider = self._providers.get(key)
        if provider is None:
            provider = ContextProvider(factory(dict(config or {})))
            self._providers[key] = provider
            logger.debug("Created %r context provider with config %s", name, key[1])
        return provider

    async def close_provider(
        self, name: str, config: Mapping[str, Any] | None = None
    ) -> None:
        """Close the provider cached for a name and configuration, if any.

        The next ``get_provider`` call with the same arguments builds a new one.
        """
        provider = self._providers.pop((name, config_key(config)), None)
        if provider is not None:
            await provider.close()

    async def close(self) -> None:
        """Close and forget every cached provider. Factories stay registered."""
        providers = list(self._providers.values())
        self._providers.clear()
        for provider in providers:
            await provider.close()

    def _evict(self, name: str) -> None:
        for key in [key for key in self._providers if key[0] == name]:
            del self._providers[key]
