"""Partial identifier resolution for tasks, epics and backlog items.

Users rarely type a full ``f-3a9c1e`` ID. Resolution rules, in order:

1. An exact full-ID match wins immediately.
2. Input starting with the kind prefix (``f-``, ``e-``, ``b-``) matches stored
   IDs that start with it.
3. Anything else is matched as a case-sensitive substring of the hash
   segment (the part after the first ``-``).

Exactly one match resolves. Zero matches raise NotFoundError and several
raise AmbiguousIdentifierError listing every candidate in sorted order.
"""

from collections.abc import Iterable
from typing import cast

from fuel.domain.models import BacklogItem, Entity, EntityKind, Epic, Task
from fuel.domain.ports.task_store import TaskStore
from fuel.infrastructure.exceptions import AmbiguousIdentifierError, NotFoundError


def _hash_segment(entity_id: str) -> str:
    _, _, suffix = entity_id.partition("-")
    return suffix


def match_identifier(kind: EntityKind, identifier: str, candidate_ids: Iterable[str]) -> str:
    """Resolve a partial identifier against a set of full IDs.

    Args:
        kind: Kind being resolved (determines the ID prefix and error labels)
        identifier: Full or partial ID supplied by the user
        candidate_ids: Full IDs of every stored entity of that kind

    Returns:
        The single matching full ID

    Raises:
        NotFoundError: Blank input or no match
        AmbiguousIdentifierError: More than one match
    """
    needle = identifier.strip()
    if not needle:
        raise NotFoundError(kind.label, identifier)

    ids = list(candidate_ids)
    if needle in ids:
        return needle

    if needle.startswith(f"{kind.prefix}-"):
        matches = [cid for cid in ids if cid.startswith(needle)]
    else:
        matches = [cid for cid in ids if needle in _hash_segment(cid)]

    if not matches:
        raise NotFoundError(kind.label, identifier)
    if len(matches) > 1:
        raise AmbiguousIdentifierError(kind.label, identifier, sorted(matches))
    return matches[0]


class IdentifierResolver:
    """Resolve user-supplied identifiers to stored entities."""

    def __init__(self, store: TaskStore) -> None:
        self.store = store

    async def resolve(self, kind: EntityKind, identifier: str) -> Entity:
        """Resolve an identifier to the entity it names."""
        entity = await self.store.load_by_id(kind, identifier.strip())
        if entity is not None:
            return entity

        entities = await self.store.load_all(kind)
        by_id = {entity.id: entity for entity in entities}
        return by_id[match_identifier(kind, identifier, by_id)]

    async def resolve_id(self, kind: EntityKind, identifier: str) -> str:
        entity = await self.resolve(kind, identifier)
        return entity.id

    async def resolve_task(self, identifier: str) -> Task:
        return cast(Task, await self.resolve(EntityKind.TASK, identifier))

    async def resolve_epic(self, identifier: str) -> Epic:
        return cast(Epic, await self.resolve(EntityKind.EPIC, identifier))

    async def resolve_backlog_item(self, identifier: str) -> BacklogItem:
        return cast(BacklogItem, await self.resolve(EntityKind.BACKLOG, identifier))
