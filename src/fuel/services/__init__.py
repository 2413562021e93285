"""Engine services for tasks, epics, backlog items and runs."""

from fuel.services.backlog_service import BacklogService
from fuel.services.dependency_resolver import DependencyResolver
from fuel.services.epic_service import EpicService
from fuel.services.identifier_resolver import IdentifierResolver
from fuel.services.run_service import RunService
from fuel.services.stuck_detector import StuckDetector
from fuel.services.task_service import BatchResult, TaskService

__all__ = [
    "BacklogService",
    "BatchResult",
    "DependencyResolver",
    "EpicService",
    "IdentifierResolver",
    "RunService",
    "StuckDetector",
    "TaskService",
]
