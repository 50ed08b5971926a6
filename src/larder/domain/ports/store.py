"""Ports for the remote entity store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from larder.domain.model import Entity, EntityKind, ImportRecord


@runtime_checkable
class EntityStore(Protocol):
    """CRUD surface of the store, one entity kind at a time.

    Implementations raise ``StoreError`` (or a subclass) on remote failures and
    ``RecordRejectedError`` when a record cannot be translated into a request.
    """

    def list_entities(self, kind: EntityKind) -> list[Entity]:
        """Return every entity of ``kind``; pagination is the adapter's concern."""
        ...

    def create(self, kind: EntityKind, record: ImportRecord) -> Entity: ...

    def update(
        self,
        kind: EntityKind,
        entity_id: str,
        changes: Mapping[str, object],
    ) -> Entity:
        """Apply only ``changes`` (attribute name -> new value) to the entity."""
        ...

    def delete(self, kind: EntityKind, entity_id: str) -> None: ...


@runtime_checkable
class UsageCounter(Protocol):
    """Tells how many other records reference an entity."""

    def count_usage(self, kind: EntityKind, entity_id: str) -> int:
        """Raise ``UsageQueryError`` when the answer is unknown."""
        ...
