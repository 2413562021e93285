"""Custom exception hierarchy for Fuel task engine errors."""


class FuelError(Exception):
    """Base exception for all Fuel errors.

    Attributes:
        message: Error message describing what went wrong
        remediation: Optional guidance on how to fix the issue
    """

    def __init__(self, message: str, remediation: str | None = None):
        """Initialize Fuel error.

        Args:
            message: Error message
            remediation: Optional remediation guidance
        """
        super().__init__(message)
        self.remediation = remediation

    def __str__(self) -> str:
        """Return formatted error message with remediation if available."""
        if self.remediation:
            return f"{self.args[0]}\n\nRemediation: {self.remediation}"
        return str(self.args[0])


class NotFoundError(FuelError):
    """No entity of the requested kind matches the identifier.

    Attributes:
        kind: Entity kind that was searched ("task", "epic", "backlog item", "run")
        identifier: The identifier supplied by the caller
    """

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind.capitalize()} '{identifier}' not found")
        self.kind = kind
        self.identifier = identifier


class AmbiguousIdentifierError(FuelError):
    """A partial identifier matches more than one entity.

    Attributes:
        kind: Entity kind that was searched
        identifier: The partial identifier supplied by the caller
        matches: Matching IDs, sorted
    """

    def __init__(self, kind: str, identifier: str, matches: list[str]):
        super().__init__(
            f"Ambiguous {kind} ID '{identifier}'. Matches: {', '.join(matches)}",
            remediation="Provide a longer identifier to uniquely identify the entity",
        )
        self.kind = kind
        self.identifier = identifier
        self.matches = matches


class CycleError(FuelError):
    """Adding a dependency would create a circular wait."""

    def __init__(self, blocked_id: str, blocker_id: str):
        if blocked_id == blocker_id:
            message = f"Task {blocked_id} cannot depend on itself"
        else:
            message = (
                f"Circular dependency detected: {blocker_id} already depends on "
                f"{blocked_id}, so {blocked_id} cannot depend on {blocker_id}"
            )
        super().__init__(message)
        self.blocked_id = blocked_id
        self.blocker_id = blocker_id


class NoSuchEdgeError(FuelError):
    """Dependency removal requested for an edge that does not exist."""

    def __init__(self, blocked_id: str, blocker_id: str):
        super().__init__(
            f"No dependency exists between these tasks: {blocked_id} is not blocked by {blocker_id}"
        )
        self.blocked_id = blocked_id
        self.blocker_id = blocker_id


class InvalidTransitionError(FuelError):
    """State machine operation requested from a state that does not permit it."""

    def __init__(self, task_id: str, message: str):
        super().__init__(f"Task {task_id} {message}")
        self.task_id = task_id


class FieldValidationError(FuelError):
    """Malformed field value (priority out of range, unknown enum value, ...)."""

    pass
