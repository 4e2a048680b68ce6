"""Redis-backed implementation of ContextBackend."""
from __future__ import annotations

import json
import logging
import ssl
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from chat_context.config import DEFAULT_REDIS_PREFIX, DEFAULT_TTL_SECONDS
from chat_context.errors import CorruptDocument, NotFound, WriteFailure
from chat_context.store.base import ContextBackend

logger = logging.getLogger(__name__)


class RedisContextBackend(ContextBackend):
    """Stores each context as a JSON string under ``{prefix}:{entity_id}``."""

    def __init__(
        self,
        redis_client: Redis,
        prefix: str = DEFAULT_REDIS_PREFIX,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._redis = redis_client
        self._prefix = prefix
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        prefix: str = DEFAULT_REDIS_PREFIX,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        ssl_cert_reqs: str | None = None,
        **redis_kwargs: Any,
    ) -> RedisContextBackend:
        """Create a backend from a Redis URL.

        Supports ``redis://`` and ``rediss://`` (TLS) schemes.

        Args:
            url: Redis connection URL.
            prefix: Key prefix for Redis keys.
            ttl_seconds: Time-to-live for stored contexts, refreshed on save.
            ssl_cert_reqs: Pass ``"none"`` to skip certificate verification
                (self-signed certs). Defaults to the system default.
            **redis_kwargs: Extra keyword arguments forwarded to
                ``Redis.from_url()``, e.g. ``password``.
        """
        kwargs: dict[str, Any] = {**redis_kwargs}

        if url.startswith("rediss://"):
            ssl_ctx = ssl.create_default_context()
            if ssl_cert_reqs == "none":
                ssl_ctx.check_hostname = False
                ssl_ctx.verify_mode = ssl.CERT_NONE
            kwargs.setdefault("ssl", True)
            kwargs.setdefault("ssl_context", ssl_ctx)

        client = Redis.from_url(url, **kwargs)
        return cls(client, prefix=prefix, ttl_seconds=ttl_seconds)

    async def close(self) -> None:
        """Close the underlying Redis connection."""
        await self._redis.aclose()

    def _key(self, entity_id: str) -> str:
        return f"{self._prefix}:{entity_id}"

    async def load(self, entity_id: str) -> dict[str, Any]:
        raw = await self._redis.get(self._key(entity_id))
        if raw is None:
            raise NotFound(entity_id)
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise CorruptDocument(entity_id, f"invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CorruptDocument(entity_id, f"expected a JSON object, got {type(data).__name__}")
        return data

    async def save(self, entity_id: str, data: dict[str, Any]) -> None:
        try:
            raw = json.dumps(data)
        except (TypeError, ValueError) as exc:
            raise WriteFailure(entity_id, f"not JSON serializable: {exc}") from exc
        try:
            await self._redis.set(self._key(entity_id), raw, ex=self._ttl_seconds)
        except RedisError as exc:
            raise WriteFailure(entity_id, str(exc)) from exc
        logger.debug("Saved context %s to %s", entity_id, self._key(entity_id))

    async def delete(self, entity_id: str) -> None:
        try:
            await self._redis.delete(self._key(entity_id))
        except RedisError as exc:
            raise WriteFailure(entity_id, str(exc)) from exc

    async def entity_ids(self) -> list[str]:
        start = len(self._prefix) + 1
        ids = []
        async for key in self._redis.scan_iter(match=f"{self._prefix}:*"):
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            ids.append(key[start:])
        return sorted(ids)
