"""Abstract persistence port for tasks, epics, backlog items and runs."""

from abc import ABC, abstractmethod

from fuel.domain.models import Entity, EntityKind, Run


class TaskStore(ABC):
    """Persistence collaborator used by every engine service.

    Implementations store whole records: ``save`` is an upsert of the full
    entity and the last writer for a record wins. They must give
    read-your-writes within a process and serialize concurrent writers.
    Runs are append-only; there is no way to update or delete one.
    """

    @abstractmethod
    async def load_all(self, kind: EntityKind) -> list[Entity]:
        """Load every stored entity of a kind, ordered by creation time then ID."""
        pass

    @abstractmethod
    async def load_by_id(self, kind: EntityKind, entity_id: str) -> Entity | None:
        """Load one entity by its full ID, or None if absent."""
        pass

    @abstractmethod
    async def save(self, entity: Entity) -> None:
        """Insert or replace the whole record."""
        pass

    @abstractmethod
    async def delete(self, kind: EntityKind, entity_id: str) -> bool:
        """Delete a record. Returns False if nothing was deleted."""
        pass

    @abstractmethod
    async def append_run(self, run: Run) -> None:
        """Append a run to a task's history."""
        pass

    @abstractmethod
    async def list_runs(self, task_id: str) -> list[Run]:
        """List runs for a task in the order they were appended."""
        pass

    @abstractmethod
    async def list_run_ids(self) -> list[str]:
        """List the IDs of every stored run."""
        pass
