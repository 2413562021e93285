"""Task lifecycle management.

State machine:

    start   open                         -> in_progress
    done    any                          -> closed
    reopen  closed|in_progress|review    -> open   (clears reason and consumption)
    retry   in_progress + consumed       -> open   (clears consumption)

``update(status=...)`` sets the field directly and bypasses these rules.
"""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, cast

from pydantic import ValidationError

from fuel.domain.models import (
    EntityKind,
    Task,
    TaskComplexity,
    TaskDeletion,
    TaskSize,
    TaskStatus,
    TaskType,
    utcnow,
)
from fuel.domain.ports.task_store import TaskStore
from fuel.infrastructure.config import TaskDefaultsConfig
from fuel.infrastructure.exceptions import FieldValidationError, FuelError, InvalidTransitionError
from fuel.infrastructure.id_generator import IdGenerator
from fuel.infrastructure.logger import get_logger
from fuel.services.identifier_resolver import IdentifierResolver
from fuel.services.run_service import DEFAULT_OUTPUT_MAX_BYTES, truncate_tail

logger = get_logger(__name__)

REOPENABLE_STATUSES = frozenset({TaskStatus.CLOSED, TaskStatus.IN_PROGRESS, TaskStatus.REVIEW})
CLAIMABLE_STATUSES = frozenset({TaskStatus.OPEN, TaskStatus.IN_PROGRESS})


@dataclass
class BatchFailure:
    """One identifier that failed inside a batch operation."""

    identifier: str
    error: FuelError


@dataclass
class BatchResult:
    """Outcome of applying one transition to several identifiers."""

    succeeded: list[Task] = field(default_factory=list)
    failures: list[BatchFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class TaskService:
    """Create, mutate and delete tasks."""

    def __init__(
        self,
        store: TaskStore,
        id_generator: IdGenerator | None = None,
        resolver: IdentifierResolver | None = None,
        defaults: TaskDefaultsConfig | None = None,
        output_max_bytes: int = DEFAULT_OUTPUT_MAX_BYTES,
    ):
        """Initialize task service.

        Args:
            store: Persistence port
            id_generator: Generator for new task IDs
            resolver: Identifier resolver (default: one built on ``store``)
            defaults: Default priority, type and complexity for new tasks
            output_max_bytes: Limit for recorded agent output
        """
        self.store = store
        self.id_generator = id_generator or IdGenerator()
        self.resolver = resolver or IdentifierResolver(store)
        self.defaults = defaults or TaskDefaultsConfig()
        self.output_max_bytes = output_max_bytes

    async def _load_tasks(self) -> list[Task]:
        return cast(list[Task], await self.store.load_all(EntityKind.TASK))

    async def _save(self, task: Task) -> Task:
        task.touch()
        await self.store.save(task)
        return task

    async def _resolve_blockers(self, blocked_by: Iterable[str]) -> list[str]:
        return [(await self.resolver.resolve_task(blocker)).id for blocker in blocked_by]

    async def new_task_id(self) -> str:
        existing = {task.id for task in await self._load_tasks()}
        return self.id_generator.for_kind(EntityKind.TASK, existing)

    async def build_task(
        self,
        task_id: str,
        title: str,
        description: str | None = None,
        type: TaskType | str | None = None,
        priority: int | None = None,
        labels: Iterable[str] | None = None,
        size: TaskSize | str | None = None,
        complexity: TaskComplexity | str | None = None,
        blocked_by: Iterable[str] | None = None,
        epic: str | None = None,
    ) -> Task:
        """Resolve references and validate a new task without persisting it.

        Raises:
            NotFoundError: A blocker or the epic does not resolve
            FieldValidationError: A field value is malformed
        """
        blocker_ids = await self._resolve_blockers(blocked_by or [])
        epic_id = (await self.resolver.resolve_epic(epic)).id if epic else None

        try:
            return Task(
                id=task_id,
                title=title,
                description=description,
                type=type or self.defaults.default_type,
                priority=self.defaults.default_priority if priority is None else priority,
                labels=list(labels or []),
                size=size,
                complexity=complexity or self.defaults.default_complexity,
                blocked_by=blocker_ids,
                epic_id=epic_id,
            )
        except ValidationError as e:
            raise FieldValidationError(f"Invalid task: {e}") from e

    async def create(self, title: str, **fields: Any) -> Task:
        """Create an open task.

        Keyword arguments are those of :meth:`build_task`. Blocker and epic
        identifiers may be partial.
        """
        task = await self.build_task(await self.new_task_id(), title, **fields)
        await self.store.save(task)
        logger.info(
            "task_created",
            task_id=task.id,
            priority=task.priority,
            blocked_by=task.blocked_by,
            epic_id=task.epic_id,
        )
        return task

    async def get(self, identifier: str) -> Task:
        return await self.resolver.resolve_task(identifier)

    async def list_tasks(
        self,
        status: TaskStatus | str | None = None,
        epic: str | None = None,
        type: TaskType | str | None = None,
        label: str | None = None,
    ) -> list[Task]:
        """List tasks ordered by creation time, optionally filtered."""
        try:
            wanted_status = TaskStatus(status) if status else None
            wanted_type = TaskType(type) if type else None
        except ValueError as e:
            raise FieldValidationError(str(e)) from e
        epic_id = (await self.resolver.resolve_epic(epic)).id if epic else None

        tasks = await self._load_tasks()
        return [
            task
            for task in tasks
            if (wanted_status is None or task.status == wanted_status)
            and (epic_id is None or task.epic_id == epic_id)
            and (wanted_type is None or task.type == wanted_type)
            and (label is None or label in task.labels)
        ]

    async def update(
        self,
        identifier: str,
        *,
        title: str | None = None,
        description: str | None = None,
        type: TaskType | str | None = None,
        priority: int | None = None,
        size: TaskSize | str | None = None,
        complexity: TaskComplexity | str | None = None,
        status: TaskStatus | str | None = None,
        epic: str | None = None,
        clear_epic: bool = False,
        add_labels: Iterable[str] | None = None,
        remove_labels: Iterable[str] | None = None,
    ) -> Task:
        """Update task fields.

        Setting ``status`` is a plain field assignment with none of the
        transition side effects.

        Raises:
            NotFoundError: Task or epic does not resolve
            FieldValidationError: A field value is malformed
        """
        task = await self.resolver.resolve_task(identifier)
        epic_id = (await self.resolver.resolve_epic(epic)).id if epic else None

        try:
            if title is not None:
                task.title = title
            if description is not None:
                task.description = description
            if type is not None:
                task.type = type
            if priority is not None:
                task.priority = priority
            if size is not None:
                task.size = size
            if complexity is not None:
                task.complexity = complexity
            if status is not None:
                task.status = status
            if epic_id is not None:
                task.epic_id = epic_id
            elif clear_epic:
                task.epic_id = None
            if add_labels:
                task.labels = [*task.labels, *add_labels]
            if remove_labels:
                dropped = {label.strip() for label in remove_labels}
                task.labels = [label for label in task.labels if label not in dropped]
        except ValidationError as e:
            raise FieldValidationError(f"Invalid value for task {task.id}: {e}") from e

        await self._save(task)
        logger.info("task_updated", task_id=task.id, status=task.status.value)
        return task

    async def start(self, identifier: str) -> Task:
        """Move an open task to in_progress."""
        task = await self.resolver.resolve_task(identifier)
        if task.status != TaskStatus.OPEN:
            raise InvalidTransitionError(
                task.id, f"cannot be started from status '{task.status.value}'"
            )

        task.status = TaskStatus.IN_PROGRESS
        await self._save(task)
        logger.info("task_started", task_id=task.id)
        return task

    async def done(
        self, identifier: str, reason: str | None = None, commit_hash: str | None = None
    ) -> Task:
        """Close a task from any status."""
        task = await self.resolver.resolve_task(identifier)

        task.status = TaskStatus.CLOSED
        if reason is not None:
            task.reason = reason
        if commit_hash is not None:
            task.commit_hash = commit_hash
        await self._save(task)
        logger.info("task_closed", task_id=task.id, commit_hash=task.commit_hash)
        return task

    async def reopen(self, identifier: str) -> Task:
        """Reopen a closed, in-progress or review task.

        Clears ``reason`` and every consumption field. ``commit_hash`` is kept.
        """
        task = await self.resolver.resolve_task(identifier)
        if task.status not in REOPENABLE_STATUSES:
            raise InvalidTransitionError(task.id, "is not closed, in_progress, or review")

        previous = task.status
        task.status = TaskStatus.OPEN
        task.reason = None
        task.clear_consumption()
        await self._save(task)
        logger.info("task_reopened", task_id=task.id, previous_status=previous.value)
        return task

    async def retry(self, identifier: str) -> Task:
        """Return a consumed in-progress task to open so it can be picked up again."""
        task = await self.resolver.resolve_task(identifier)
        if task.status != TaskStatus.IN_PROGRESS or not task.consumed:
            raise InvalidTransitionError(task.id, "is not a consumed in_progress task")

        exit_code = task.consumed_exit_code
        task.status = TaskStatus.OPEN
        task.clear_consumption()
        await self._save(task)
        logger.info("task_retried", task_id=task.id, previous_exit_code=exit_code)
        return task

    async def delete(self, identifier: str) -> TaskDeletion:
        """Delete a task and remove it from every other task's blocked_by."""
        task = await self.resolver.resolve_task(identifier)
        await self.store.delete(EntityKind.TASK, task.id)

        cleaned = []
        for other in await self._load_tasks():
            if task.id in other.blocked_by:
                other.blocked_by = [bid for bid in other.blocked_by if bid != task.id]
                await self._save(other)
                cleaned.append(other.id)

        logger.info("task_deleted", task_id=task.id, cleaned_task_ids=cleaned)
        return TaskDeletion(task=task, cleaned_task_ids=cleaned)

    async def claim(self, identifier: str, pid: int) -> Task:
        """Record that an agent process has picked up a task."""
        task = await self.resolver.resolve_task(identifier)
        if task.status not in CLAIMABLE_STATUSES:
            raise InvalidTransitionError(
                task.id, f"cannot be claimed from status '{task.status.value}'"
            )

        task.clear_consumption()
        task.status = TaskStatus.IN_PROGRESS
        task.consumed = True
        task.consumed_at = utcnow()
        task.consume_pid = pid
        await self._save(task)
        logger.info("task_claimed", task_id=task.id, pid=pid)
        return task

    async def record_exit(
        self, identifier: str, exit_code: int, output: str | None = None
    ) -> Task:
        """Record how the agent process working a task ended.

        The task stays in its current status. Output keeps only its last
        ``output_max_bytes`` bytes.
        """
        task = await self.resolver.resolve_task(identifier)
        if not task.consumed:
            raise InvalidTransitionError(task.id, "has not been claimed by an agent process")

        task.consumed_exit_code = exit_code
        task.consumed_output = truncate_tail(output, self.output_max_bytes)
        task.consume_pid = None
        await self._save(task)
        log = logger.warning if exit_code != 0 else logger.info
        log("task_process_exited", task_id=task.id, exit_code=exit_code)
        return task

    async def _apply_many(
        self, identifiers: Iterable[str], operation: Callable[[str], Awaitable[Task]]
    ) -> BatchResult:
        result = BatchResult()
        for identifier in identifiers:
            try:
                result.succeeded.append(await operation(identifier))
            except FuelError as e:
                logger.warning("batch_item_failed", identifier=identifier, error=str(e))
                result.failures.append(BatchFailure(identifier=identifier, error=e))
        return result

    async def done_many(
        self,
        identifiers: Iterable[str],
        reason: str | None = None,
        commit_hash: str | None = None,
    ) -> BatchResult:
        """Close several tasks, collecting per-identifier failures."""
        return await self._apply_many(
            identifiers, lambda identifier: self.done(identifier, reason, commit_hash)
        )

    async def reopen_many(self, identifiers: Iterable[str]) -> BatchResult:
        return await self._apply_many(identifiers, self.reopen)

    async def retry_many(self, identifiers: Iterable[str]) -> BatchResult:
        return await self._apply_many(identifiers, self.retry)
