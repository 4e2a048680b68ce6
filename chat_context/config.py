"""Backend configuration objects."""
from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

CONTEXT_PATH_ENV = "CHAT_CONTEXT_PATH"
CONTEXT_REDIS_URL_ENV = "CHAT_CONTEXT_REDIS_URL"

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_REDIS_PREFIX = "chat:ctx"
DEFAULT_TTL_SECONDS = 7 * 24 * 3600


@dataclass(frozen=True)
class FileBackendConfig:
    """Configuration for the plain-file backend."""

    path: str

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any] | None) -> FileBackendConfig:
        """Build from a provider configuration mapping.

        Resolution order for the root directory:
          1. ``path`` key of the mapping
          2. ``CHAT_CONTEXT_PATH`` environment variable
          3. The system temporary directory
        """
        config = config or {}
        path = config.get("path") or os.environ.get(CONTEXT_PATH_ENV) or tempfile.gettempdir()
        return cls(path=os.fspath(path))


@dataclass(frozen=True)
class RedisBackendConfig:
    """Configuration for the Redis backend."""

    url: str = DEFAULT_REDIS_URL
    prefix: str = DEFAULT_REDIS_PREFIX
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    ssl_cert_reqs: str | None = None

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any] | None) -> RedisBackendConfig:
        """Build from a provider configuration mapping.

        ``url`` falls back to ``CHAT_CONTEXT_REDIS_URL``, then to a local
        Redis instance.
        """
        config = config or {}
        url = config.get("url") or os.environ.get(CONTEXT_REDIS_URL_ENV) or DEFAULT_REDIS_URL
        return cls(
            url=url,
            prefix=config.get("prefix", DEFAULT_REDIS_PREFIX),
            ttl_seconds=int(config.get("ttl_seconds", DEFAULT_TTL_SECONDS)),
            ssl_cert_reqs=config.get("ssl_cert_reqs"),
        )
