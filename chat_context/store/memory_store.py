"""In-process implementation of ContextBackend."""
from __future__ import annotations

import json
from typing import Any

from chat_context.errors import CorruptDocument, NotFound, WriteFailure
from chat_context.store.base import ContextBackend


class MemoryContextBackend(ContextBackend):
    """Keeps serialized documents in a dict. Nothing survives the process."""

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}

    async def load(self, entity_id: str) -> dict[str, Any]:
        raw = self._documents.get(entity_id)
        if raw is None:
            raise NotFound(entity_id)
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise CorruptDocument(entity_id, f"expected a JSON object, got {type(data).__name__}")
        return data

    async def save(self, entity_id: str, data: dict[str, Any]) -> None:
        try:
            self._documents[entity_id] = json.dumps(data)
        except (TypeError, ValueError) as exc:
            raise WriteFailure(entity_id, f"not JSON serializable: {exc}") from exc

    async def delete(self, entity_id: str) -> None:
        self._documents.pop(entity_id, None)

    async def entity_ids(self) -> list[str]:
        return sorted(self._documents)
