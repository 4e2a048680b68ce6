"""Plain-file implementation of ContextBackend."""
from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from chat_context.errors import CorruptDocument, NotFound, WriteFailure
from chat_context.store.base import ContextBackend

logger = logging.getLogger(__name__)

_SUFFIX = ".json"
_TMP_SUFFIX = ".tmp"


class FileContextBackend(ContextBackend):
    """Stores each context as ``<root>/<entity_id>.json``.

    Writes go to a hidden temporary file in the same directory which is
    fsynced and then renamed over the target, so a concurrent or later
    ``load`` sees either the old document or the new one, never a mix.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, entity_id: str) -> Path:
        return self._root / f"{entity_id}{_SUFFIX}"

    async def load(self, entity_id: str) -> dict[str, Any]:
        path = self.path_for(entity_id)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError as exc:
            raise NotFound(entity_id) from exc
        except UnicodeDecodeError as exc:
            raise CorruptDocument(entity_id, f"not UTF-8: {exc}") from exc
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise CorruptDocument(entity_id, f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CorruptDocument(entity_id, f"expected a JSON object, got {type(data).__name__}")
        logger.debug("Loaded context %s from %s", entity_id, path)
        return data

    async def save(self, entity_id: str, data: dict[str, Any]) -> None:
        try:
            raw = json.dumps(data, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise WriteFailure(entity_id, f"not JSON serializable: {exc}") from exc

        path = self.path_for(entity_id)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}{_TMP_SUFFIX}")
        try:
            await aiofiles.os.makedirs(self._root, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(raw)
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            await aiofiles.os.replace(tmp_path, path)
        except OSError as exc:
            await self._discard(tmp_path)
            raise WriteFailure(entity_id, str(exc)) from exc
        logger.debug("Saved context %s to %s", entity_id, path)

    async def delete(self, entity_id: str) -> None:
        path = self.path_for(entity_id)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise WriteFailure(entity_id, str(exc)) from exc
        logger.debug("Deleted context %s at %s", entity_id, path)

    async def entity_ids(self) -> list[str]:
        try:
            names = await aiofiles.os.listdir(self._root)
        except FileNotFoundError:
            return []
        return sorted(
            name[: -len(_SUFFIX)]
            for name in names
            if name.endswith(_SUFFIX)
        )

    async def _discard(self, tmp_path: Path) -> None:
        try:
            await aiofiles.os.remove(tmp_path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Could not remove temporary file %s", tmp_path)
