"""Detection of in-progress tasks whose agent process has gone away."""

from collections.abc import Iterable
from typing import cast

from fuel.domain.models import (
    BoardSummary,
    EntityKind,
    StuckReason,
    StuckTask,
    Task,
    TaskStatus,
)
from fuel.domain.ports.process_probe import ProcessProbe
from fuel.domain.ports.task_store import TaskStore
from fuel.infrastructure.logger import get_logger
from fuel.infrastructure.process_probe import PsutilProcessProbe
from fuel.services.dependency_resolver import classify_readiness

logger = get_logger(__name__)


def stuck_reason(task: Task, probe: ProcessProbe) -> StuckReason | None:
    """Classify why a task is stuck, or None if it is not.

    A task is stuck when it is in progress and either its consumed process
    exited with a non-zero code or its recorded PID is no longer alive.
    """
    if task.status != TaskStatus.IN_PROGRESS:
        return None
    if task.consumed and task.consumed_exit_code not in (None, 0):
        return StuckReason.NON_ZERO_EXIT
    if task.consume_pid is not None and not probe.is_process_alive(task.consume_pid):
        return StuckReason.DEAD_PROCESS
    return None


def is_retryable(task: Task) -> bool:
    """Any consumed in-progress task can be retried, whatever its exit code."""
    return task.status == TaskStatus.IN_PROGRESS and task.consumed


def summarize_board(tasks: Iterable[Task], probe: ProcessProbe) -> BoardSummary:
    """Count tasks per board column. Stuck tasks also count as in progress."""
    task_list = list(tasks)
    readiness = classify_readiness(task_list)
    return BoardSummary(
        ready=len(readiness.ready),
        blocked=len(readiness.blocked),
        in_progress=sum(1 for t in task_list if t.status == TaskStatus.IN_PROGRESS),
        review=sum(1 for t in task_list if t.status == TaskStatus.REVIEW),
        closed=sum(1 for t in task_list if t.status == TaskStatus.CLOSED),
        stuck=sum(1 for t in task_list if stuck_reason(t, probe) is not None),
    )


class StuckDetector:
    """Read-only views over task consumption state."""

    def __init__(self, store: TaskStore, probe: ProcessProbe | None = None):
        """Initialize stuck detector.

        Args:
            store: Persistence port
            probe: Process liveness check (default: psutil)
        """
        self.store = store
        self.probe = probe or PsutilProcessProbe()

    async def _load_tasks(self) -> list[Task]:
        return cast(list[Task], await self.store.load_all(EntityKind.TASK))

    async def find_stuck(self) -> list[StuckTask]:
        stuck = []
        for task in await self._load_tasks():
            reason = stuck_reason(task, self.probe)
            if reason is not None:
                stuck.append(StuckTask(task=task, reason=reason))

        if stuck:
            logger.debug("stuck_tasks_found", count=len(stuck))
        return stuck

    async def find_retryable(self) -> list[Task]:
        """List consumed in-progress tasks, including ones that exited cleanly."""
        return [task for task in await self._load_tasks() if is_retryable(task)]

    async def board_summary(self) -> BoardSummary:
        return summarize_board(await self._load_tasks(), self.probe)
