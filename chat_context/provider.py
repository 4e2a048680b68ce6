"""ContextProvider: owns the ChatContext objects of one backend."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from chat_context.context import ChatContext
from chat_context.errors import CorruptDocument, NotFound
from chat_context.store.base import ContextBackend

logger = logging.getLogger(__name__)

EntityId = str | int


def normalize_entity_id(entity_id: EntityId) -> str:
    """Normalize an entity id to the string used for caching and storage."""
    if isinstance(entity_id, bool) or not isinstance(entity_id, (str, int)):
        raise TypeError(f"Entity id must be a str or int, got {type(entity_id).__name__}")
    key = str(entity_id)
    if key in ("", ".", "..") or "/" in key or "\\" in key:
        raise ValueError(f"Invalid entity id: {entity_id!r}")
    return key


class ContextProvider:
    """Caches at most one ChatContext per entity id.

    ``get_or_create`` may touch the backend; ``get`` only looks at the cache.
    """

    def __init__(self, backend: ContextBackend) -> None:
        self._backend = backend
        self._contexts: dict[str, ChatContext] = {}
        self._creating: dict[str, asyncio.Lock] = {}
        self._waiting: dict[str, int] = {}

    @property
    def backend(self) -> ContextBackend:
        return self._backend

    def get(self, entity_id: EntityId) -> ChatContext | None:
        """Return the cached context for an id, or None if not materialized yet."""
        return self._contexts.get(normalize_entity_id(entity_id))

    async def get_or_create(
        self, entity_id: EntityId, defaults: dict[str, Any] | None = None
    ) -> ChatContext:
        """Return the context for an id, loading or creating it on first use.

        A stored document always wins over ``defaults``. When there is none,
        ``defaults`` are persisted before this returns. Concurrent calls for
        the same id share a single load.
        """
        key = normalize_entity_id(entity_id)
        context = self._contexts.get(key)
        if context is not None:
            return context

        lock = self._creating.setdefault(key, asyncio.Lock())
        self._waiting[key] = self._waiting.get(key, 0) + 1
        try:
            async with lock:
                context = self._contexts.get(key)
                if context is None:
                    context = await self._materialize(key, defaults)
                    self._contexts[key] = context
        finally:
            self._waiting[key] -= 1
            if not self._waiting[key]:
                del self._waiting[key]
                if self._creating.get(key) is lock:
                    del self._creating[key]
        return context

    async def _materialize(self, key: str, defaults: dict[str, Any] | None) -> ChatContext:
        try:
            data = await self._backend.load(key)
        except NotFound:
            context = ChatContext(key, self._backend, dict(defaults or {}))
            await context.save()
            logger.debug("Created context %s from defaults", key)
            return context
        except CorruptDocument:
            logger.warning("Context document for %s is corrupt", key)
            raise
        logger.debug("Loaded context %s", key)
        return ChatContext(key, self._backend, data)

    async def delete(self, entity_id: EntityId) -> None:
        """Forget the cached context for an id and delete its document."""
        key = normalize_entity_id(entity_id)
        context = self._contexts.pop(key, None)
        if context is not None:
            await context.flush()
        await self._backend.delete(key)

    async def entity_ids(self) -> list[str]:
        """Ids of every document held by the backend."""
        return await self._backend.entity_ids()

    def cached_ids(self) -> list[str]:
        """Ids materialized in this process."""
        return sorted(self._contexts)

    async def close(self) -> None:
        """Wait for pending writes, then close the backend."""
        for context in list(self._contexts.values()):
            await context.flush()
        await self._backend.close()
