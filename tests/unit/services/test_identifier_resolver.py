"""Unit tests for partial identifier resolution."""

import pytest
from fuel.domain.models import BacklogItem, EntityKind, Epic
from fuel.infrastructure.exceptions import AmbiguousIdentifierError, NotFoundError
from fuel.services.identifier_resolver import IdentifierResolver, match_identifier

TASK_IDS = ["f-3a9c1e", "f-3a0000", "f-b7d2f4", "f-abc123"]


class TestMatchIdentifier:
    """Tests for the pure matching rules."""

    def test_exact_match_wins(self) -> None:
        assert match_identifier(EntityKind.TASK, "f-3a9c1e", TASK_IDS) == "f-3a9c1e"

    def test_exact_match_short_circuits_longer_ids(self) -> None:
        ids = ["f-abc", "f-abcdef"]
        assert match_identifier(EntityKind.TASK, "f-abc", ids) == "f-abc"

    def test_prefixed_input_matches_id_prefix(self) -> None:
        assert match_identifier(EntityKind.TASK, "f-b7", TASK_IDS) == "f-b7d2f4"

    def test_bare_input_matches_inside_hash(self) -> None:
        assert match_identifier(EntityKind.TASK, "d2f", TASK_IDS) == "f-b7d2f4"

    def test_bare_input_does_not_match_prefix_letter(self) -> None:
        # "f" appears only as the kind prefix of most IDs, and inside f-b7d2f4's hash
        assert match_identifier(EntityKind.TASK, "f", TASK_IDS) == "f-b7d2f4"

    def test_matching_is_case_sensitive(self) -> None:
        with pytest.raises(NotFoundError):
            match_identifier(EntityKind.TASK, "ABC", TASK_IDS)

    def test_ambiguous_lists_sorted_matches(self) -> None:
        with pytest.raises(AmbiguousIdentifierError) as exc_info:
            match_identifier(EntityKind.TASK, "3a", TASK_IDS)

        assert exc_info.value.matches == ["f-3a0000", "f-3a9c1e"]
        assert "Ambiguous task ID '3a'" in str(exc_info.value)

    def test_no_match(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            match_identifier(EntityKind.TASK, "zzz", TASK_IDS)

        assert str(exc_info.value) == "Task 'zzz' not found"

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank_input_is_not_found(self, blank: str) -> None:
        with pytest.raises(NotFoundError):
            match_identifier(EntityKind.TASK, blank, TASK_IDS)

    def test_wrong_kind_prefix_does_not_match(self) -> None:
        with pytest.raises(NotFoundError):
            match_identifier(EntityKind.EPIC, "f-3a9", ["e-3a9c1e"])

    def test_deterministic(self) -> None:
        results = {match_identifier(EntityKind.TASK, "b7", TASK_IDS) for _ in range(10)}
        assert results == {"f-b7d2f4"}


@pytest.mark.asyncio
class TestIdentifierResolver:
    """Tests for store-backed resolution."""

    async def test_resolve_task_by_partial_id(self, resolver: IdentifierResolver, save_task):
        await save_task(id="f-3a9c1e")
        await save_task(id="f-b7d2f4")

        task = await resolver.resolve_task("3a9")

        assert task.id == "f-3a9c1e"

    async def test_resolve_only_searches_requested_kind(
        self, resolver: IdentifierResolver, memory_db, save_task
    ):
        await save_task(id="f-abc123")
        await memory_db.save(Epic(id="e-abc999", title="Epic"))

        epic = await resolver.resolve_epic("abc")

        assert epic.id == "e-abc999"

    async def test_resolve_backlog_item(self, resolver: IdentifierResolver, memory_db):
        await memory_db.save(BacklogItem(id="b-123456", title="Idea"))

        item = await resolver.resolve_backlog_item("b-12")

        assert item.title == "Idea"

    async def test_missing_backlog_item_uses_readable_label(self, resolver: IdentifierResolver):
        with pytest.raises(NotFoundError, match="Backlog item 'b-nope' not found"):
            await resolver.resolve_backlog_item("b-nope")

    async def test_ambiguous_against_store(self, resolver: IdentifierResolver, save_task):
        await save_task(id="f-aa1111")
        await save_task(id="f-aa2222")

        with pytest.raises(AmbiguousIdentifierError):
            await resolver.resolve(EntityKind.TASK, "aa")

    async def test_resolve_id(self, resolver: IdentifierResolver, save_task):
        await save_task(id="f-c0ffee")
        assert await resolver.resolve_id(EntityKind.TASK, "c0f") == "f-c0ffee"
