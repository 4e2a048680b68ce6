"""Abstract base class for context storage backends."""
from abc import ABC, abstractmethod
from typing import Any


class ContextBackend(ABC):
    """Abstract interface for persisting one JSON document per entity id.

    Entity ids reach the backend already normalized to strings.
    """

    @abstractmethod
    async def load(self, entity_id: str) -> dict[str, Any]:
        """Load the document for an entity.

        Raises NotFound if there is none, CorruptDocument if it does not
        decode to a JSON object.
        """

    @abstractmethod
    async def save(self, entity_id: str, data: dict[str, Any]) -> None:
        """Persist the full document for an entity. Raises WriteFailure."""

    @abstractmethod
    async def delete(self, entity_id: str) -> None:
        """Delete the document for an entity. No-op if not found."""

    @abstractmethod
    async def entity_ids(self) -> list[str]:
        """List the ids of all stored documents."""

    async def close(self) -> None:
        """Release any resources held by the backend."""
