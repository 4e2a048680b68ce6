"""ChatContext: per-entity key/value document mirrored to a backend."""
from __future__ import annotations

import asyncio
import copy
from collections.abc import Mapping
from typing import Any

from chat_context.store.base import ContextBackend

_MISSING = object()


class ChatContext:
    """In-memory view of one entity's document.

    Reads never touch the backend. Mutations update the mapping before the
    coroutine first suspends, then queue a snapshot for persistence. Writes
    for one context go through a FIFO lock, so they reach the backend in
    call order and never overlap. Different contexts do not share a lock.
    """

    def __init__(
        self,
        entity_id: str,
        backend: ContextBackend,
        data: dict[str, Any] | None = None,
    ) -> None:
        self._entity_id = entity_id
        self._backend = backend
        self._data: dict[str, Any] = {key: _copy_in(value) for key, value in (data or {}).items()}
        self._write_lock = asyncio.Lock()
        self._pending_writes = 0

    def __repr__(self) -> str:
        return f"ChatContext(entity_id={self._entity_id!r}, keys={len(self._data)})"

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    @property
    def entity_id(self) -> str:
        return self._entity_id

    @property
    def pending_writes(self) -> int:
        """Number of queued or in-flight persistence operations."""
        return self._pending_writes

    @property
    def is_dirty(self) -> bool:
        return self._pending_writes > 0

    def get(self, *keys: str) -> Any:
        """Return the value of one key, or a dict of values for several keys.

        Absent keys resolve to None.
        """
        if not keys:
            raise TypeError("get() requires at least one key")
        if len(keys) == 1:
            return copy.deepcopy(self._data.get(keys[0]))
        return {key: copy.deepcopy(self._data.get(key)) for key in keys}

    def all(self) -> dict[str, Any]:
        """Return a copy of the whole document."""
        return copy.deepcopy(self._data)

    async def set(self, key_or_values: str | Mapping[str, Any], value: Any = _MISSING) -> None:
        """Set one key, or shallow-merge a mapping into the document."""
        if isinstance(key_or_values, Mapping):
            if value is not _MISSING:
                raise TypeError("set() takes a mapping or a key and a value, not both")
            updates = dict(key_or_values)
        elif value is _MISSING:
            raise TypeError("set() with a key requires a value")
        else:
            updates = {key_or_values: value}
        for key in updates:
            _check_key(key)

        self._data.update({key: _copy_in(item) for key, item in updates.items()})
        await self._persist()

    async def remove(self, *keys: str) -> None:
        """Remove keys from the document. Absent keys are ignored."""
        for key in keys:
            self._data.pop(key, None)
        await self._persist()

    async def clear(self) -> None:
        """Remove every key from the document."""
        self._data.clear()
        await self._persist()

    async def save(self) -> None:
        """Persist the current document without changing it."""
        await self._persist()

    async def flush(self) -> None:
        """Wait until every write queued so far has settled."""
        async with self._write_lock:
            pass

    async def _persist(self) -> None:
        snapshot = dict(self._data)
        self._pending_writes += 1
        try:
            async with self._write_lock:
                await self._backend.save(self._entity_id, snapshot)
        finally:
            self._pending_writes -= 1


def _check_key(key: object) -> None:
    if not isinstance(key, str):
        raise TypeError(f"Context keys must be strings, got {type(key).__name__}")


def _copy_in(value: Any) -> Any:
    # Values that cannot be copied are kept as given; they fail as WriteFailure on save.
    try:
        return copy.deepcopy(value)
    except (TypeError, copy.Error):
        return value
