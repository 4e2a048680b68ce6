"""Built-in backends and the process-wide provider registry."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from chat_context.config import FileBackendConfig, RedisBackendConfig
from chat_context.provider import ContextProvider
from chat_context.registry import BackendFactory, ProviderRegistry
from chat_context.store.file_store import FileContextBackend
from chat_context.store.memory_store import MemoryContextBackend
from chat_context.store.redis_store import RedisContextBackend

PLAIN_FILE = "plain-file"
MEMORY = "memory"
REDIS = "redis"


def create_file_backend(config: Mapping[str, Any]) -> FileContextBackend:
    """Build a FileContextBackend from ``{"path": ...}``.

    See FileBackendConfig.from_mapping for the fallback order of the path.
    """
    return FileContextBackend(FileBackendConfig.from_mapping(config).path)


def create_memory_backend(config: Mapping[str, Any]) -> MemoryContextBackend:
    return MemoryContextBackend()


def create_redis_backend(config: Mapping[str, Any]) -> RedisContextBackend:
    """Build a RedisContextBackend from ``{"url", "prefix", "ttl_seconds", "ssl_cert_reqs"}``."""
    resolved = RedisBackendConfig.from_mapping(config)
    return RedisContextBackend.from_url(
        resolved.url,
        prefix=resolved.prefix,
        ttl_seconds=resolved.ttl_seconds,
        ssl_cert_reqs=resolved.ssl_cert_reqs,
    )


BUILTIN_BACKENDS: dict[str, BackendFactory] = {
    PLAIN_FILE: create_file_backend,
    MEMORY: create_memory_backend,
    REDIS: create_redis_backend,
}


def create_registry() -> ProviderRegistry:
    """Create a registry with the built-in backends registered."""
    registry = ProviderRegistry()
    for name, factory in BUILTIN_BACKENDS.items():
        registry.register(name, factory)
    return registry


registry = create_registry()


def register(name: str, factory: BackendFactory) -> None:
    registry.register(name, factory)


def has_provider(name: str) -> bool:
    return registry.has_provider(name)


def get_provider(name: str, config: Mapping[str, Any] | None = None) -> ContextProvider:
    return registry.get_provider(name, config)
