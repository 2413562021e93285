"""Core domain models for Fuel."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class EntityKind(str, Enum):
    """Kinds of top-level records, each with its own ID prefix."""

    TASK = "task"
    EPIC = "epic"
    BACKLOG = "backlog"

    @property
    def prefix(self) -> str:
        return _KIND_PREFIXES[self]

    @property
    def label(self) -> str:
        """Human-readable name used in error messages."""
        return "backlog item" if self is EntityKind.BACKLOG else self.value


_KIND_PREFIXES = {
    EntityKind.TASK: "f",
    EntityKind.EPIC: "e",
    EntityKind.BACKLOG: "b",
}

RUN_ID_PREFIX = "run"


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    CLOSED = "closed"


class TaskType(str, Enum):
    """Kind of work a task represents."""

    TASK = "task"
    BUG = "bug"
    FEATURE = "feature"
    CHORE = "chore"
    EPIC = "epic"
    TEST = "test"


class TaskSize(str, Enum):
    """T-shirt size estimate."""

    XS = "xs"
    S = "s"
    M = "m"
    L = "l"
    XL = "xl"


class TaskComplexity(str, Enum):
    """Complexity estimate, used to pick an agent/model."""

    TRIVIAL = "trivial"
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class EpicStatus(str, Enum):
    """Epic status, always derived from linked tasks and never stored."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    REVIEW_PENDING = "review_pending"


class StuckReason(str, Enum):
    """Why an in-progress task is considered stuck."""

    NON_ZERO_EXIT = "non_zero_exit"
    DEAD_PROCESS = "dead_process"


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("title must not be empty")
    return value


class Task(BaseModel):
    """A unit of work.

    Attributes:
        id: Immutable identifier of the form ``f-<hash>``
        blocked_by: IDs of tasks that must be closed before this one is ready
        consumed: Whether an agent process has picked up this task
        consumed_exit_code: Exit code of the last agent process (None while running)
        consume_pid: PID of the agent process currently working the task
    """

    id: str = Field(pattern=r"^f-\w+$")
    title: str
    description: str | None = None
    type: TaskType = TaskType.TASK
    priority: int = Field(default=2, ge=0, le=4)
    labels: list[str] = Field(default_factory=list)
    size: TaskSize | None = None
    complexity: TaskComplexity = TaskComplexity.SIMPLE
    status: TaskStatus = TaskStatus.OPEN
    blocked_by: list[str] = Field(default_factory=list)
    epic_id: str | None = None
    reason: str | None = None
    commit_hash: str | None = None

    consumed: bool = False
    consumed_at: datetime | None = None
    consumed_exit_code: int | None = None
    consumed_output: str | None = None
    consume_pid: int | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("labels", "blocked_by")
    @classmethod
    def dedupe_values(cls, v: list[str]) -> list[str]:
        """Strip, drop blanks and remove duplicates while keeping first-seen order."""
        return _dedupe(v)

    @field_validator("complexity", mode="before")
    @classmethod
    def default_complexity(cls, v: Any) -> Any:
        return TaskComplexity.SIMPLE if v is None else v

    @model_validator(mode="after")
    def validate_not_self_blocked(self) -> "Task":
        if self.id in self.blocked_by:
            raise ValueError(f"task {self.id} cannot be blocked by itself")
        return self

    def touch(self) -> None:
        """Refresh updated_at after a mutation."""
        self.updated_at = utcnow()

    def clear_consumption(self) -> None:
        """Forget everything recorded about the last agent process."""
        self.consumed = False
        self.consumed_at = None
        self.consumed_exit_code = None
        self.consumed_output = None
        self.consume_pid = None


class Epic(BaseModel):
    """A named grouping of tasks. Has no stored status."""

    id: str = Field(pattern=r"^e-\w+$")
    title: str
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _require_text(v)


class BacklogItem(BaseModel):
    """An unscheduled idea without any task-specific fields."""

    id: str = Field(pattern=r"^b-\w+$")
    title: str
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _require_text(v)


Entity = Task | Epic | BacklogItem


def backlog_item_from_task(task: Task, item_id: str) -> BacklogItem:
    """Build a backlog item from a task, dropping all task-only fields."""
    return BacklogItem(id=item_id, title=task.title, description=task.description)


class Run(BaseModel):
    """Immutable record of one execution attempt against a task."""

    run_id: str = Field(pattern=rf"^{RUN_ID_PREFIX}-\w+$")
    task_id: str
    agent: str | None = None
    model: str | None = None
    started_at: datetime = Field(default_factory=utcnow)
    ended_at: datetime | None = None
    exit_code: int | None = None
    output: str | None = None
    cost_usd: float | None = Field(default=None, ge=0)
    session_id: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def duration_seconds(self) -> int | None:
        if self.ended_at is None:
            return None
        return int((self.ended_at - self.started_at).total_seconds())


class TaskDeletion(BaseModel):
    """Result of deleting a task."""

    task: Task
    cleaned_task_ids: list[str] = Field(
        default_factory=list,
        description="Tasks whose blocked_by referenced the deleted task",
    )


class EpicDeletion(BaseModel):
    """Result of deleting an epic."""

    epic: Epic
    unlinked_task_ids: list[str] = Field(default_factory=list)


class EpicView(BaseModel):
    """An epic together with its derived status and linked tasks."""

    epic: Epic
    status: EpicStatus
    tasks: list[Task] = Field(default_factory=list)


class ReadinessReport(BaseModel):
    """Partition of open tasks into ready and blocked."""

    ready: list[Task] = Field(default_factory=list)
    blocked: list[Task] = Field(default_factory=list)

    @property
    def available_count(self) -> int:
        """Available work is the count of ready tasks only."""
        return len(self.ready)


class StuckTask(BaseModel):
    """An in-progress task whose agent process ended without closing it."""

    task: Task
    reason: StuckReason


class BoardSummary(BaseModel):
    """Task counts per board column."""

    ready: int = 0
    blocked: int = 0
    in_progress: int = 0
    review: int = 0
    closed: int = 0
    stuck: int = 0
