"""Error types raised by context providers and storage backends."""
from __future__ import annotations


class ContextError(Exception):
    """Base class for all chat-context errors."""


class UnknownBackend(ContextError):
    """No backend factory is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No context backend registered as {name!r}")
        self.name = name


class NotFound(ContextError):
    """The backend holds no document for an entity id."""

    def __init__(self, entity_id: str) -> None:
        super().__init__(f"No context document for {entity_id!r}")
        self.entity_id = entity_id


class CorruptDocument(ContextError):
    """A persisted document exists but is not a JSON object."""

    def __init__(self, entity_id: str, reason: str) -> None:
        super().__init__(f"Corrupt context document for {entity_id!r}: {reason}")
        self.entity_id = entity_id
        self.reason = reason


class WriteFailure(ContextError):
    """A document could not be durably persisted."""

    def __init__(self, entity_id: str, reason: str) -> None:
        super().__init__(f"Could not persist context for {entity_id!r}: {reason}")
        self.entity_id = entity_id
        self.reason = reason
