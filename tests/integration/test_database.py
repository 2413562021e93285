"""Integration tests for the SQLite task store."""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fuel.domain.models import (
    BacklogItem,
    EntityKind,
    Epic,
    Run,
    Task,
    TaskComplexity,
    TaskSize,
    TaskStatus,
    TaskType,
)
from fuel.infrastructure.database import Database


@pytest.mark.asyncio
class TestDatabase:
    async def test_wal_mode_enabled(self, file_db: Database):
        async with file_db._get_connection() as conn:
            cursor = await conn.execute("PRAGMA journal_mode")
            row = await cursor.fetchone()
        assert row[0] == "wal"

    async def test_task_round_trip_preserves_every_field(self, file_db: Database):
        task = Task(
            id="f-abc123",
            title="Full task",
            description="All the fields",
            type=TaskType.FEATURE,
            priority=1,
            labels=["api", "backend"],
            size=TaskSize.L,
            complexity=TaskComplexity.COMPLEX,
            status=TaskStatus.IN_PROGRESS,
            blocked_by=["f-000001"],
            epic_id="e-000001",
            reason="why",
            commit_hash="deadbeef",
            consumed=True,
            consumed_at=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
            consumed_exit_code=3,
            consumed_output="stderr",
            consume_pid=999,
        )

        await file_db.save(task)
        loaded = await file_db.load_by_id(EntityKind.TASK, "f-abc123")

        assert loaded == task

    async def test_save_is_an_upsert(self, file_db: Database):
        task = Task(id="f-abc123", title="Before")
        await file_db.save(task)

        task.title = "After"
        await file_db.save(task)

        tasks = await file_db.load_all(EntityKind.TASK)
        assert [t.title for t in tasks] == ["After"]

    async def test_kinds_are_stored_separately(self, file_db: Database):
        await file_db.save(Task(id="f-000001", title="Task"))
        await file_db.save(Epic(id="e-000001", title="Epic"))
        await file_db.save(BacklogItem(id="b-000001", title="Idea"))

        assert [e.id for e in await file_db.load_all(EntityKind.TASK)] == ["f-000001"]
        assert [e.id for e in await file_db.load_all(EntityKind.EPIC)] == ["e-000001"]
        assert [e.id for e in await file_db.load_all(EntityKind.BACKLOG)] == ["b-000001"]
        assert await file_db.load_by_id(EntityKind.EPIC, "f-000001") is None

    async def test_delete(self, file_db: Database):
        await file_db.save(Epic(id="e-000001", title="Epic"))

        assert await file_db.delete(EntityKind.EPIC, "e-000001") is True
        assert await file_db.delete(EntityKind.EPIC, "e-000001") is False

    async def test_runs_append_only(self, file_db: Database):
        first = Run(run_id="run-000001", task_id="f-000001", exit_code=1, cost_usd=0.5)
        second = Run(run_id="run-000002", task_id="f-000001", exit_code=0)
        await file_db.append_run(first)
        await file_db.append_run(second)
        await file_db.append_run(Run(run_id="run-000003", task_id="f-000002"))

        assert await file_db.list_runs("f-000001") == [first, second]
        assert sorted(await file_db.list_run_ids()) == ["run-000001", "run-000002", "run-000003"]

        with pytest.raises(sqlite3.IntegrityError):
            await file_db.append_run(first)

    async def test_data_persists_across_instances(self, tmp_path: Path):
        db_path = tmp_path / "fuel.db"
        first = Database(db_path)
        await first.initialize()
        await first.save(Task(id="f-000001", title="Persistent"))

        second = Database(db_path)
        await second.initialize()

        loaded = await second.load_by_id(EntityKind.TASK, "f-000001")
        assert loaded is not None
        assert loaded.title == "Persistent"

    async def test_memory_database_shares_connection(self, memory_db: Database):
        await memory_db.save(Task(id="f-000001", title="In memory"))
        assert len(await memory_db.load_all(EntityKind.TASK)) == 1
