"""chat-context: pluggable per-entity context storage for chat runtimes."""
from chat_context.config import FileBackendConfig, RedisBackendConfig
from chat_context.context import ChatContext
from chat_context.defaults import create_registry, get_provider, has_provider, register
from chat_context.errors import (
    ContextError,
    CorruptDocument,
    NotFound,
    UnknownBackend,
    WriteFailure,
)
from chat_context.provider import ContextProvider
from chat_context.registry import ProviderRegistry
from chat_context.store.base import ContextBackend
from chat_context.store.file_store import FileContextBackend
from chat_context.store.memory_store import MemoryContextBackend
from chat_context.store.redis_store import RedisContextBackend

__all__ = [
    # Context and provider
    "ChatContext",
    "ContextProvider",
    # Registry
    "ProviderRegistry",
    "create_registry",
    "register",
    "has_provider",
    "get_provider",
    # Storage
    "ContextBackend",
    "FileContextBackend",
    "MemoryContextBackend",
    "RedisContextBackend",
    # Configuration
    "FileBackendConfig",
    "RedisBackendConfig",
    # Errors
    "ContextError",
    "UnknownBackend",
    "NotFound",
    "CorruptDocument",
    "WriteFailure",
]
