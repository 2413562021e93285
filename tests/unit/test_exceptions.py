"""Unit tests for custom exception hierarchy."""

from fuel.infrastructure.exceptions import (
    AmbiguousIdentifierError,
    CycleError,
    FieldValidationError,
    FuelError,
    InvalidTransitionError,
    NoSuchEdgeError,
    NotFoundError,
)


class TestExceptionHierarchy:
    """Test custom exception hierarchy."""

    def test_fuel_error_is_base_exception(self) -> None:
        error = FuelError("Test error")
        assert isinstance(error, Exception)
        assert str(error) == "Test error"

    def test_all_errors_inherit_from_fuel_error(self) -> None:
        errors = [
            NotFoundError("task", "f-abc"),
            AmbiguousIdentifierError("task", "a", ["f-a1", "f-a2"]),
            CycleError("f-a", "f-b"),
            NoSuchEdgeError("f-a", "f-b"),
            InvalidTransitionError("f-a", "is not closed"),
            FieldValidationError("bad value"),
        ]
        for error in errors:
            assert isinstance(error, FuelError)

    def test_remediation_is_appended(self) -> None:
        error = FuelError("Broken", remediation="Run: fuel init")

        assert error.remediation == "Run: fuel init"
        assert str(error) == "Broken\n\nRemediation: Run: fuel init"

    def test_no_remediation(self) -> None:
        assert "Remediation:" not in str(FuelError("Broken"))


class TestErrorMessages:
    def test_not_found(self) -> None:
        error = NotFoundError("backlog item", "b-xyz")

        assert str(error) == "Backlog item 'b-xyz' not found"
        assert error.kind == "backlog item"
        assert error.identifier == "b-xyz"

    def test_ambiguous_lists_matches(self) -> None:
        error = AmbiguousIdentifierError("task", "ab", ["f-ab1111", "f-ab2222"])

        assert "Ambiguous task ID 'ab'" in str(error)
        assert "f-ab1111, f-ab2222" in str(error)
        assert error.remediation is not None

    def test_self_dependency_message(self) -> None:
        assert "cannot depend on itself" in str(CycleError("f-aaaaaa", "f-aaaaaa"))

    def test_cycle_message(self) -> None:
        error = CycleError("f-aaaaaa", "f-bbbbbb")

        assert str(error).startswith("Circular dependency detected")
        assert error.blocked_id == "f-aaaaaa"
        assert error.blocker_id == "f-bbbbbb"

    def test_no_such_edge_message(self) -> None:
        assert "No dependency exists between these tasks" in str(
            NoSuchEdgeError("f-aaaaaa", "f-bbbbbb")
        )

    def test_invalid_transition_message(self) -> None:
        error = InvalidTransitionError("f-aaaaaa", "is not closed, in_progress, or review")

        assert str(error) == "Task f-aaaaaa is not closed, in_progress, or review"
        assert error.task_id == "f-aaaaaa"
