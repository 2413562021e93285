"""Epics and their derived status."""

from collections.abc import Iterable
from typing import cast

from pydantic import ValidationError

from fuel.domain.models import (
    EntityKind,
    Epic,
    EpicDeletion,
    EpicStatus,
    EpicView,
    Task,
    TaskStatus,
)
from fuel.domain.ports.task_store import TaskStore
from fuel.infrastructure.exceptions import FieldValidationError
from fuel.infrastructure.id_generator import IdGenerator
from fuel.infrastructure.logger import get_logger
from fuel.services.identifier_resolver import IdentifierResolver

logger = get_logger(__name__)


def compute_epic_status(tasks: Iterable[Task]) -> EpicStatus:
    """Derive an epic's status from its linked tasks.

    No tasks means not started. Any task that is not closed keeps the epic in
    progress. Once every task is closed the epic waits for review.
    """
    statuses = [task.status for task in tasks]
    if not statuses:
        return EpicStatus.NOT_STARTED
    if all(status == TaskStatus.CLOSED for status in statuses):
        return EpicStatus.REVIEW_PENDING
    return EpicStatus.IN_PROGRESS


class EpicService:
    """Create, read, update and delete epics."""

    def __init__(
        self,
        store: TaskStore,
        id_generator: IdGenerator | None = None,
        resolver: IdentifierResolver | None = None,
    ):
        self.store = store
        self.id_generator = id_generator or IdGenerator()
        self.resolver = resolver or IdentifierResolver(store)

    async def _load_tasks(self) -> list[Task]:
        return cast(list[Task], await self.store.load_all(EntityKind.TASK))

    def _view(self, epic: Epic, all_tasks: list[Task]) -> EpicView:
        linked = [task for task in all_tasks if task.epic_id == epic.id]
        return EpicView(epic=epic, status=compute_epic_status(linked), tasks=linked)

    async def create(self, title: str, description: str | None = None) -> Epic:
        existing = {epic.id for epic in await self.store.load_all(EntityKind.EPIC)}
        try:
            epic = Epic(
                id=self.id_generator.for_kind(EntityKind.EPIC, existing),
                title=title,
                description=description,
            )
        except ValidationError as e:
            raise FieldValidationError(f"Invalid epic: {e}") from e

        await self.store.save(epic)
        logger.info("epic_created", epic_id=epic.id)
        return epic

    async def get(self, identifier: str) -> EpicView:
        """Get an epic with its linked tasks and computed status."""
        epic = await self.resolver.resolve_epic(identifier)
        return self._view(epic, await self._load_tasks())

    async def get_status(self, identifier: str) -> EpicStatus:
        view = await self.get(identifier)
        return view.status

    async def list_epics(self) -> list[EpicView]:
        epics = cast(list[Epic], await self.store.load_all(EntityKind.EPIC))
        tasks = await self._load_tasks()
        return [self._view(epic, tasks) for epic in epics]

    async def update(
        self, identifier: str, title: str | None = None, description: str | None = None
    ) -> Epic:
        epic = await self.resolver.resolve_epic(identifier)
        try:
            if title is not None:
                epic.title = title
            if description is not None:
                epic.description = description
        except ValidationError as e:
            raise FieldValidationError(f"Invalid value for epic {epic.id}: {e}") from e

        await self.store.save(epic)
        logger.info("epic_updated", epic_id=epic.id)
        return epic

    async def delete(self, identifier: str) -> EpicDeletion:
        """Delete an epic. Linked tasks are unlinked, never deleted."""
        epic = await self.resolver.resolve_epic(identifier)

        unlinked = []
        for task in await self._load_tasks():
            if task.epic_id == epic.id:
                task.epic_id = None
                task.touch()
                await self.store.save(task)
                unlinked.append(task.id)

        await self.store.delete(EntityKind.EPIC, epic.id)
        logger.info("epic_deleted", epic_id=epic.id, unlinked_task_ids=unlinked)
        return EpicDeletion(epic=epic, unlinked_task_ids=unlinked)
