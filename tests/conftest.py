"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest
from fuel.domain.models import Task
from fuel.domain.ports.process_probe import ProcessProbe
from fuel.infrastructure.database import Database
from fuel.infrastructure.id_generator import IdGenerator
from fuel.services import (
    BacklogService,
    DependencyResolver,
    EpicService,
    IdentifierResolver,
    RunService,
    StuckDetector,
    TaskService,
)


class FakeProcessProbe(ProcessProbe):
    """Process probe that reports only the configured PIDs as alive."""

    def __init__(self, alive: set[int] | None = None) -> None:
        self.alive = alive or set()

    def is_process_alive(self, pid: int) -> bool:
        return pid in self.alive


# Database fixtures
@pytest.fixture
async def memory_db() -> AsyncGenerator[Database, None]:
    """Create in-memory database for fast tests."""
    db = Database(Path(":memory:"))
    await db.initialize()
    yield db
    # Cleanup: close the shared connection for :memory: databases
    await db.close()


@pytest.fixture
async def file_db(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Create file-based database for persistence tests."""
    db = Database(tmp_path / ".fuel" / "fuel.db")
    await db.initialize()
    yield db


@pytest.fixture
def save_task(memory_db: Database) -> Callable[..., Awaitable[Task]]:
    """Persist a Task built directly from keyword arguments, bypassing services."""

    async def _save(**fields: Any) -> Task:
        fields.setdefault("title", f"Task {fields['id']}")
        task = Task(**fields)
        await memory_db.save(task)
        return task

    return _save


# Service fixtures
@pytest.fixture
def id_generator() -> IdGenerator:
    return IdGenerator()


@pytest.fixture
def resolver(memory_db: Database) -> IdentifierResolver:
    return IdentifierResolver(memory_db)


@pytest.fixture
def task_service(
    memory_db: Database, id_generator: IdGenerator, resolver: IdentifierResolver
) -> TaskService:
    return TaskService(memory_db, id_generator=id_generator, resolver=resolver)


@pytest.fixture
def dependency_resolver(memory_db: Database, resolver: IdentifierResolver) -> DependencyResolver:
    return DependencyResolver(memory_db, resolver)


@pytest.fixture
def epic_service(
    memory_db: Database, id_generator: IdGenerator, resolver: IdentifierResolver
) -> EpicService:
    return EpicService(memory_db, id_generator=id_generator, resolver=resolver)


@pytest.fixture
def backlog_service(
    memory_db: Database,
    task_service: TaskService,
    id_generator: IdGenerator,
    resolver: IdentifierResolver,
) -> BacklogService:
    return BacklogService(
        memory_db, task_service=task_service, id_generator=id_generator, resolver=resolver
    )


@pytest.fixture
def run_service(
    memory_db: Database, id_generator: IdGenerator, resolver: IdentifierResolver
) -> RunService:
    return RunService(memory_db, id_generator=id_generator, resolver=resolver)


@pytest.fixture
def process_probe() -> FakeProcessProbe:
    return FakeProcessProbe()


@pytest.fixture
def stuck_detector(memory_db: Database, process_probe: FakeProcessProbe) -> StuckDetector:
    return StuckDetector(memory_db, probe=process_probe)
