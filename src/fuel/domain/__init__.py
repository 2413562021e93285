"""Domain models for Fuel."""

from fuel.domain.models import (
    BacklogItem,
    Epic,
    EpicStatus,
    EntityKind,
    Run,
    Task,
    TaskStatus,
)

__all__ = [
    "BacklogItem",
    "EntityKind",
    "Epic",
    "EpicStatus",
    "Run",
    "Task",
    "TaskStatus",
]
