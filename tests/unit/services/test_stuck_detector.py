"""Unit tests for stuck and retryable task detection."""

from datetime import datetime, timezone

import pytest
from fuel.domain.models import StuckReason, Task, TaskStatus
from fuel.services.stuck_detector import StuckDetector, is_retryable, stuck_reason
from fuel.services.task_service import TaskService


class StaticProbe:
    def __init__(self, alive: bool) -> None:
        self.alive = alive

    def is_process_alive(self, pid: int) -> bool:
        return self.alive


def _task(**fields) -> Task:
    return Task(id="f-000001", title="Agent task", **fields)


class TestStuckReason:
    def test_non_zero_exit(self) -> None:
        task = _task(status=TaskStatus.IN_PROGRESS, consumed=True, consumed_exit_code=1)
        assert stuck_reason(task, StaticProbe(alive=True)) == StuckReason.NON_ZERO_EXIT

    def test_dead_process(self) -> None:
        task = _task(status=TaskStatus.IN_PROGRESS, consumed=True, consume_pid=4242)
        assert stuck_reason(task, StaticProbe(alive=False)) == StuckReason.DEAD_PROCESS

    def test_running_process_is_not_stuck(self) -> None:
        task = _task(status=TaskStatus.IN_PROGRESS, consumed=True, consume_pid=4242)
        assert stuck_reason(task, StaticProbe(alive=True)) is None

    def test_clean_exit_is_not_stuck(self) -> None:
        task = _task(status=TaskStatus.IN_PROGRESS, consumed=True, consumed_exit_code=0)
        assert stuck_reason(task, StaticProbe(alive=False)) is None

    def test_only_in_progress_tasks_can_be_stuck(self) -> None:
        task = _task(status=TaskStatus.REVIEW, consumed=True, consumed_exit_code=1)
        assert stuck_reason(task, StaticProbe(alive=False)) is None

    def test_clean_exit_is_still_retryable(self) -> None:
        task = _task(status=TaskStatus.IN_PROGRESS, consumed=True, consumed_exit_code=0)
        assert is_retryable(task) is True
        assert is_retryable(_task(status=TaskStatus.IN_PROGRESS)) is False


@pytest.mark.asyncio
class TestStuckDetector:
    async def test_find_stuck_then_retry(
        self, stuck_detector: StuckDetector, task_service: TaskService, save_task
    ):
        """A consumed task that exited 1 is stuck until retried."""
        await save_task(
            id="f-000001",
            status=TaskStatus.IN_PROGRESS,
            consumed=True,
            consumed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            consumed_exit_code=1,
            consumed_output="error",
        )

        stuck = await stuck_detector.find_stuck()
        assert [(s.task.id, s.reason) for s in stuck] == [
            ("f-000001", StuckReason.NON_ZERO_EXIT)
        ]

        task = await task_service.retry("f-000001")

        assert task.status == TaskStatus.OPEN
        assert task.consumed is False
        assert task.consumed_at is None
        assert task.consumed_exit_code is None
        assert task.consumed_output is None
        assert await stuck_detector.find_stuck() == []

    async def test_dead_pid_detected(self, stuck_detector: StuckDetector, process_probe, save_task):
        await save_task(id="f-000001", status=TaskStatus.IN_PROGRESS, consumed=True, consume_pid=11)
        await save_task(id="f-000002", status=TaskStatus.IN_PROGRESS, consumed=True, consume_pid=22)
        process_probe.alive = {22}

        stuck = await stuck_detector.find_stuck()

        assert [(s.task.id, s.reason) for s in stuck] == [("f-000001", StuckReason.DEAD_PROCESS)]

    async def test_find_retryable(self, stuck_detector: StuckDetector, save_task):
        await save_task(
            id="f-000001", status=TaskStatus.IN_PROGRESS, consumed=True, consumed_exit_code=0
        )
        await save_task(id="f-000002", status=TaskStatus.IN_PROGRESS)

        assert [t.id for t in await stuck_detector.find_retryable()] == ["f-000001"]

    async def test_board_summary(self, stuck_detector: StuckDetector, save_task):
        await save_task(id="f-000001")
        await save_task(id="f-000002", blocked_by=["f-000001"])
        await save_task(
            id="f-000003", status=TaskStatus.IN_PROGRESS, consumed=True, consumed_exit_code=2
        )
        await save_task(id="f-000004", status=TaskStatus.REVIEW)
        await save_task(id="f-000005", status=TaskStatus.CLOSED)

        summary = await stuck_detector.board_summary()

        assert summary.ready == 1
        assert summary.blocked == 1
        assert summary.in_progress == 1
        assert summary.review == 1
        assert summary.closed == 1
        assert summary.stuck == 1
