"""Database infrastructure using SQLite with WAL mode."""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
from aiosqlite import Connection

from fuel.domain.models import (
    BacklogItem,
    Entity,
    EntityKind,
    Epic,
    Run,
    Task,
    TaskComplexity,
    TaskSize,
    TaskStatus,
    TaskType,
)
from fuel.domain.ports.task_store import TaskStore
from fuel.infrastructure.logger import get_logger

logger = get_logger(__name__)

_TABLES = {
    EntityKind.TASK: "tasks",
    EntityKind.EPIC: "epics",
    EntityKind.BACKLOG: "backlog_items",
}

TASK_COLUMNS = (
    "id",
    "title",
    "description",
    "type",
    "priority",
    "labels",
    "size",
    "complexity",
    "status",
    "blocked_by",
    "epic_id",
    "reason",
    "commit_hash",
    "consumed",
    "consumed_at",
    "consumed_exit_code",
    "consumed_output",
    "consume_pid",
    "created_at",
    "updated_at",
)

EPIC_COLUMNS = ("id", "title", "description", "created_at")

BACKLOG_COLUMNS = ("id", "title", "description", "created_at")

RUN_COLUMNS = (
    "run_id",
    "task_id",
    "agent",
    "model",
    "started_at",
    "ended_at",
    "exit_code",
    "output",
    "cost_usd",
    "session_id",
)


def _upsert_sql(table: str, columns: tuple[str, ...]) -> str:
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{col} = excluded.{col}" for col in columns if col != "id")
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}"
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class Database(TaskStore):
    """SQLite database with WAL mode for concurrent access."""

    def __init__(self, db_path: Path, busy_timeout_ms: int = 5000) -> None:
        """Initialize database.

        Args:
            db_path: Path to SQLite database file, or ``:memory:``
            busy_timeout_ms: How long a writer waits for the lock before failing
        """
        self.db_path = db_path
        self.busy_timeout_ms = busy_timeout_ms
        self._initialized = False
        self._shared_conn: Connection | None = None  # For :memory: databases

    async def initialize(self) -> None:
        """Initialize database schema and settings."""
        if self._initialized:
            return

        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with self._get_connection() as conn:
            # Enable WAL mode for concurrent reads
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA synchronous=NORMAL")
            await self._create_tables(conn)
            await conn.commit()

        self._initialized = True
        logger.debug("database_initialized", db_path=str(self.db_path))

    async def close(self) -> None:
        """Close the database connection.

        Only needed for :memory: databases to clean up the shared connection.
        File-based databases close connections automatically.
        """
        if self._shared_conn is not None:
            await self._shared_conn.close()
            self._shared_conn = None
            self._initialized = False

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[Connection]:
        """Get database connection with proper settings.

        For :memory: databases, maintains a shared connection to preserve data
        across multiple operations. For file databases, creates a new connection
        each time.
        """
        if str(self.db_path) == ":memory:":
            if self._shared_conn is None:
                self._shared_conn = await aiosqlite.connect(":memory:")
                self._shared_conn.row_factory = aiosqlite.Row
            yield self._shared_conn
        else:
            async with aiosqlite.connect(
                str(self.db_path), timeout=self.busy_timeout_ms / 1000
            ) as conn:
                conn.row_factory = aiosqlite.Row
                await conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
                yield conn

    async def _create_tables(self, conn: Connection) -> None:
        """Create database tables."""
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                type TEXT NOT NULL DEFAULT 'task',
                priority INTEGER NOT NULL DEFAULT 2,
                labels TEXT NOT NULL DEFAULT '[]',
                size TEXT,
                complexity TEXT NOT NULL DEFAULT 'simple',
                status TEXT NOT NULL DEFAULT 'open',
                blocked_by TEXT NOT NULL DEFAULT '[]',
                epic_id TEXT,
                reason TEXT,
                commit_hash TEXT,
                consumed INTEGER NOT NULL DEFAULT 0,
                consumed_at TIMESTAMP,
                consumed_exit_code INTEGER,
                consumed_output TEXT,
                consume_pid INTEGER,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
            """
        )

        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS epics (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                created_at TIMESTAMP NOT NULL
            )
            """
        )

        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS backlog_items (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                created_at TIMESTAMP NOT NULL
            )
            """
        )

        # Runs are append-only and outlive their task
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS runs (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id TEXT NOT NULL UNIQUE,
                task_id TEXT NOT NULL,
                agent TEXT,
                model TEXT,
                started_at TIMESTAMP NOT NULL,
                ended_at TIMESTAMP,
                exit_code INTEGER,
                output TEXT,
                cost_usd REAL,
                session_id TEXT
            )
            """
        )

        await conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_epic ON tasks(epic_id)")
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_runs_task ON runs(task_id, seq)")

    # Entity operations

    async def load_all(self, kind: EntityKind) -> list[Entity]:
        """Load every entity of a kind, ordered by creation time then ID."""
        table = _TABLES[kind]
        async with self._get_connection() as conn:
            cursor = await conn.execute(f"SELECT * FROM {table} ORDER BY created_at, id")
            rows = await cursor.fetchall()
            return [self._row_to_entity(kind, row) for row in rows]

    async def load_by_id(self, kind: EntityKind, entity_id: str) -> Entity | None:
        table = _TABLES[kind]
        async with self._get_connection() as conn:
            cursor = await conn.execute(f"SELECT * FROM {table} WHERE id = ?", (entity_id,))
            row = await cursor.fetchone()
            return self._row_to_entity(kind, row) if row else None

    async def save(self, entity: Entity) -> None:
        """Insert or replace a whole record."""
        if isinstance(entity, Task):
            sql, params = _upsert_sql("tasks", TASK_COLUMNS), self._task_to_row(entity)
        elif isinstance(entity, Epic):
            sql = _upsert_sql("epics", EPIC_COLUMNS)
            params = (entity.id, entity.title, entity.description, _iso(entity.created_at))
        elif isinstance(entity, BacklogItem):
            sql = _upsert_sql("backlog_items", BACKLOG_COLUMNS)
            params = (entity.id, entity.title, entity.description, _iso(entity.created_at))
        else:
            raise TypeError(f"Cannot persist {type(entity).__name__}")

        async with self._get_connection() as conn:
            await conn.execute(sql, params)
            await conn.commit()

    async def delete(self, kind: EntityKind, entity_id: str) -> bool:
        """Delete an entity.

        Returns:
            True if a row was deleted
        """
        table = _TABLES[kind]
        async with self._get_connection() as conn:
            cursor = await conn.execute(f"DELETE FROM {table} WHERE id = ?", (entity_id,))
            await conn.commit()
            return cursor.rowcount > 0

    # Run operations

    async def append_run(self, run: Run) -> None:
        async with self._get_connection() as conn:
            await conn.execute(
                f"""
                INSERT INTO runs ({", ".join(RUN_COLUMNS)})
                VALUES ({", ".join("?" for _ in RUN_COLUMNS)})
                """,
                (
                    run.run_id,
                    run.task_id,
                    run.agent,
                    run.model,
                    _iso(run.started_at),
                    _iso(run.ended_at),
                    run.exit_code,
                    run.output,
                    run.cost_usd,
                    run.session_id,
                ),
            )
            await conn.commit()

    async def list_runs(self, task_id: str) -> list[Run]:
        """List runs for a task in insertion order."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM runs WHERE task_id = ? ORDER BY seq", (task_id,)
            )
            rows = await cursor.fetchall()
            return [self._row_to_run(row) for row in rows]

    async def list_run_ids(self) -> list[str]:
        async with self._get_connection() as conn:
            cursor = await conn.execute("SELECT run_id FROM runs")
            rows = await cursor.fetchall()
            return [row["run_id"] for row in rows]

    # Row conversion

    def _task_to_row(self, task: Task) -> tuple[Any, ...]:
        return (
            task.id,
            task.title,
            task.description,
            task.type.value,
            task.priority,
            json.dumps(task.labels),
            task.size.value if task.size else None,
            task.complexity.value,
            task.status.value,
            json.dumps(task.blocked_by),
            task.epic_id,
            task.reason,
            task.commit_hash,
            int(task.consumed),
            _iso(task.consumed_at),
            task.consumed_exit_code,
            task.consumed_output,
            task.consume_pid,
            _iso(task.created_at),
            _iso(task.updated_at),
        )

    def _row_to_entity(self, kind: EntityKind, row: aiosqlite.Row) -> Entity:
        if kind is EntityKind.TASK:
            return self._row_to_task(row)
        if kind is EntityKind.EPIC:
            return Epic(
                id=row["id"],
                title=row["title"],
                description=row["description"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
        return BacklogItem(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_task(self, row: aiosqlite.Row) -> Task:
        """Convert database row to Task model."""
        row_dict = dict(row)

        return Task(
            id=row_dict["id"],
            title=row_dict["title"],
            description=row_dict["description"],
            type=TaskType(row_dict["type"]),
            priority=row_dict["priority"],
            labels=json.loads(row_dict["labels"]) if row_dict["labels"] else [],
            size=TaskSize(row_dict["size"]) if row_dict["size"] else None,
            complexity=TaskComplexity(row_dict["complexity"]),
            status=TaskStatus(row_dict["status"]),
            blocked_by=json.loads(row_dict["blocked_by"]) if row_dict["blocked_by"] else [],
            epic_id=row_dict["epic_id"],
            reason=row_dict["reason"],
            commit_hash=row_dict["commit_hash"],
            consumed=bool(row_dict["consumed"]),
            consumed_at=_parse_dt(row_dict["consumed_at"]),
            consumed_exit_code=row_dict["consumed_exit_code"],
            consumed_output=row_dict["consumed_output"],
            consume_pid=row_dict["consume_pid"],
            created_at=datetime.fromisoformat(row_dict["created_at"]),
            updated_at=datetime.fromisoformat(row_dict["updated_at"]),
        )

    def _row_to_run(self, row: aiosqlite.Row) -> Run:
        """Convert database row to Run model."""
        return Run(
            run_id=row["run_id"],
            task_id=row["task_id"],
            agent=row["agent"],
            model=row["model"],
            started_at=datetime.fromisoformat(row["started_at"]),
            ended_at=_parse_dt(row["ended_at"]),
            exit_code=row["exit_code"],
            output=row["output"],
            cost_usd=row["cost_usd"],
            session_id=row["session_id"],
        )
