"""Backlog of unscheduled ideas, and conversion to and from tasks.

Backlog items only carry a title and description. Promotion turns an item
into a new open task with a fresh ``f-`` ID; deferral turns a task back into
an item and drops every task-only field.
"""

from typing import Any, cast

from pydantic import ValidationError

from fuel.domain.models import BacklogItem, EntityKind, Task, backlog_item_from_task
from fuel.domain.ports.task_store import TaskStore
from fuel.infrastructure.exceptions import FieldValidationError
from fuel.infrastructure.id_generator import IdGenerator
from fuel.infrastructure.logger import get_logger
from fuel.services.identifier_resolver import IdentifierResolver
from fuel.services.task_service import TaskService

logger = get_logger(__name__)


class BacklogService:
    """Manage backlog items."""

    def __init__(
        self,
        store: TaskStore,
        task_service: TaskService | None = None,
        id_generator: IdGenerator | None = None,
        resolver: IdentifierResolver | None = None,
    ):
        self.store = store
        self.id_generator = id_generator or IdGenerator()
        self.resolver = resolver or IdentifierResolver(store)
        self.task_service = task_service or TaskService(
            store, id_generator=self.id_generator, resolver=self.resolver
        )

    async def _new_item_id(self) -> str:
        existing = {item.id for item in await self.store.load_all(EntityKind.BACKLOG)}
        return self.id_generator.for_kind(EntityKind.BACKLOG, existing)

    async def add(self, title: str, description: str | None = None) -> BacklogItem:
        try:
            item = BacklogItem(id=await self._new_item_id(), title=title, description=description)
        except ValidationError as e:
            raise FieldValidationError(f"Invalid backlog item: {e}") from e

        await self.store.save(item)
        logger.info("backlog_item_added", item_id=item.id)
        return item

    async def list_items(self) -> list[BacklogItem]:
        return cast(list[BacklogItem], await self.store.load_all(EntityKind.BACKLOG))

    async def get(self, identifier: str) -> BacklogItem:
        return await self.resolver.resolve_backlog_item(identifier)

    async def remove(self, identifier: str) -> BacklogItem:
        item = await self.resolver.resolve_backlog_item(identifier)
        await self.store.delete(EntityKind.BACKLOG, item.id)
        logger.info("backlog_item_removed", item_id=item.id)
        return item

    async def promote(self, identifier: str, **task_fields: Any) -> Task:
        """Convert a backlog item into a new open task.

        Title and description carry over unless overridden in ``task_fields``
        (any keyword accepted by ``TaskService.build_task``). The new task is
        fully validated before the backlog item is removed.
        """
        item = await self.resolver.resolve_backlog_item(identifier)
        title = task_fields.pop("title", None) or item.title
        task_fields.setdefault("description", item.description)

        task_id = await self.task_service.new_task_id()
        task = await self.task_service.build_task(task_id, title, **task_fields)

        await self.store.save(task)
        await self.store.delete(EntityKind.BACKLOG, item.id)
        logger.info("backlog_item_promoted", item_id=item.id, task_id=task.id)
        return task

    async def defer(self, identifier: str) -> BacklogItem:
        """Move a task back to the backlog.

        The task is deleted the same way ``TaskService.delete`` does it, so it
        also disappears from other tasks' blocked_by lists.
        """
        task = await self.resolver.resolve_task(identifier)
        item = backlog_item_from_task(task, await self._new_item_id())

        deletion = await self.task_service.delete(task.id)
        await self.store.save(item)
        logger.info(
            "task_deferred",
            task_id=task.id,
            item_id=item.id,
            cleaned_task_ids=deletion.cleaned_task_ids,
        )
        return item
