"""Abstract persistence interfaces for Nexus Learn.

Repositories call add()/flush()/refresh() only, never commit().
Whoever opens the session commits it (see SqlArchiveStore).

ArchiveStore is the boundary the simulation orchestrator talks to; any
durable map satisfies it.
"""

from abc import ABC, abstractmethod

from nexus_learn.models.simulation import SavedRecord


class ArchiveStore(ABC):
    """Append-only list of completed runs, keyed by record id."""

    @abstractmethod
    async def save(self, record: SavedRecord) -> None:
        ...

    @abstractmethod
    async def get(self, record_id: str) -> SavedRecord | None:
        ...

    @abstractmethod
    async def list_all(self) -> list[SavedRecord]:
        """Return all records, newest first."""
        ...

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Delete a record; return False if it did not exist."""
        ...
