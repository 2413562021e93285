"""Dependency graph validation and readiness classification.

Edges live on the dependent task: ``task.blocked_by`` lists the tasks that
must close first. This module keeps that relation acyclic and partitions
open tasks into ready and blocked.
"""

from collections import deque
from collections.abc import Iterable, Mapping
from typing import cast

from fuel.domain.models import EntityKind, ReadinessReport, Task, TaskStatus
from fuel.domain.ports.task_store import TaskStore
from fuel.infrastructure.exceptions import CycleError, NoSuchEdgeError
from fuel.infrastructure.logger import get_logger
from fuel.services.identifier_resolver import IdentifierResolver

logger = get_logger(__name__)


def would_create_cycle(
    blocked_id: str, blocker_id: str, graph: Mapping[str, Iterable[str]]
) -> bool:
    """Check whether adding ``blocked_id -> blocker_id`` closes a cycle.

    Walks breadth-first from the blocker along existing blocked_by edges. If
    the blocked task is reachable, the blocker already (transitively) waits
    on it.

    Args:
        blocked_id: Task that would gain a blocker
        blocker_id: Task that would become the blocker
        graph: Mapping of task ID to the IDs in its blocked_by list

    Returns:
        True if the edge must be rejected
    """
    if blocked_id == blocker_id:
        return True

    visited = {blocker_id}
    queue = deque([blocker_id])
    while queue:
        current = queue.popleft()
        for upstream in graph.get(current, ()):
            if upstream == blocked_id:
                return True
            if upstream not in visited:
                visited.add(upstream)
                queue.append(upstream)
    return False


def is_ready(task: Task, status_by_id: Mapping[str, TaskStatus]) -> bool:
    """An open task is ready when none of its blockers is still unclosed.

    Blockers missing from ``status_by_id`` were deleted and count as satisfied.
    """
    if task.status != TaskStatus.OPEN:
        return False
    return all(
        status_by_id.get(blocker_id, TaskStatus.CLOSED) == TaskStatus.CLOSED
        for blocker_id in task.blocked_by
    )


def classify_readiness(tasks: Iterable[Task]) -> ReadinessReport:
    """Partition open tasks into ready and blocked.

    Non-open tasks appear in neither list. Both lists are ordered by
    ``created_at`` then ``id``.
    """
    task_list = list(tasks)
    status_by_id = {task.id: task.status for task in task_list}

    report = ReadinessReport()
    for task in sorted(task_list, key=lambda t: (t.created_at, t.id)):
        if task.status != TaskStatus.OPEN:
            continue
        if is_ready(task, status_by_id):
            report.ready.append(task)
        else:
            report.blocked.append(task)
    return report


class DependencyResolver:
    """Add and remove dependency edges and compute readiness."""

    def __init__(self, store: TaskStore, resolver: IdentifierResolver | None = None):
        """Initialize dependency resolver.

        Args:
            store: Persistence port holding the task graph
            resolver: Identifier resolver (default: one built on ``store``)
        """
        self.store = store
        self.resolver = resolver or IdentifierResolver(store)

    async def _load_tasks(self) -> list[Task]:
        return cast(list[Task], await self.store.load_all(EntityKind.TASK))

    async def add_dependency(self, blocked: str, blocker: str) -> Task:
        """Make ``blocked`` wait for ``blocker``.

        Adding an edge that already exists is a no-op and leaves
        ``updated_at`` untouched.

        Raises:
            NotFoundError: Either identifier does not resolve
            AmbiguousIdentifierError: Either identifier is ambiguous
            CycleError: The edge would create a circular wait
        """
        task = await self.resolver.resolve_task(blocked)
        blocker_task = await self.resolver.resolve_task(blocker)

        if task.id == blocker_task.id:
            raise CycleError(task.id, blocker_task.id)

        if blocker_task.id in task.blocked_by:
            logger.debug("dependency_exists", task_id=task.id, blocker_id=blocker_task.id)
            return task

        graph = {t.id: t.blocked_by for t in await self._load_tasks()}
        if would_create_cycle(task.id, blocker_task.id, graph):
            logger.warning(
                "dependency_cycle_rejected", task_id=task.id, blocker_id=blocker_task.id
            )
            raise CycleError(task.id, blocker_task.id)

        task.blocked_by = [*task.blocked_by, blocker_task.id]
        task.touch()
        await self.store.save(task)

        logger.info("dependency_added", task_id=task.id, blocker_id=blocker_task.id)
        return task

    async def remove_dependency(self, blocked: str, blocker: str) -> Task:
        """Remove the edge ``blocked -> blocker``.

        Raises:
            NotFoundError: Either identifier does not resolve
            NoSuchEdgeError: The edge does not exist
        """
        task = await self.resolver.resolve_task(blocked)
        blocker_task = await self.resolver.resolve_task(blocker)

        if blocker_task.id not in task.blocked_by:
            raise NoSuchEdgeError(task.id, blocker_task.id)

        task.blocked_by = [bid for bid in task.blocked_by if bid != blocker_task.id]
        task.touch()
        await self.store.save(task)

        logger.info("dependency_removed", task_id=task.id, blocker_id=blocker_task.id)
        return task

    async def get_blockers(self, identifier: str) -> list[Task]:
        """Get the existing, not yet closed tasks blocking a task."""
        task = await self.resolver.resolve_task(identifier)
        blockers = []
        for blocker_id in task.blocked_by:
            blocker = await self.store.load_by_id(EntityKind.TASK, blocker_id)
            if isinstance(blocker, Task) and blocker.status != TaskStatus.CLOSED:
                blockers.append(blocker)
        return blockers

    async def readiness_report(self) -> ReadinessReport:
        return classify_readiness(await self._load_tasks())

    async def get_ready_tasks(self) -> list[Task]:
        """Get open tasks whose blockers are all closed."""
        report = await self.readiness_report()
        return report.ready

    async def get_blocked_tasks(self) -> list[Task]:
        """Get open tasks with at least one unclosed blocker."""
        report = await self.readiness_report()
        return report.blocked
