"""Ports (abstract collaborators) used by the engine services."""

from fuel.domain.ports.process_probe import ProcessProbe
from fuel.domain.ports.task_store import TaskStore

__all__ = ["ProcessProbe", "TaskStore"]
