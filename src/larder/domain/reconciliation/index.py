"""Lookup index over the store's current entities of one kind.

The index is built once per run. After that it only grows: entities created
during the run (or simulated ones in a dry run) are added so later records can
match, and conflict, against them.

Priority is encoded in insertion order: every primary name is registered before
any plural name, and plural names before unit abbreviations. When two entities
claim the same key the first writer keeps it. Under the store's own uniqueness
rules this never happens; when it does, the collision is recorded and logged,
or raised when the index is strict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from larder.domain.errors import IndexConsistencyError
from larder.domain.model import Entity

from .normalize import normalize_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from larder.domain.model import EntityKind, ImportRecord

log = logging.getLogger(__name__)

SIMULATED_ID_PREFIX = "simulated-"


@dataclass(slots=True, frozen=True)
class IndexCollision:
    """Two entities claimed the same key; ``kept`` won, ``dropped`` did not."""

    key: str
    space: str
    kept: Entity
    dropped: Entity


@dataclass(slots=True)
class LookupIndex:
    kind: EntityKind
    strict: bool = False
    by_id: dict[str, Entity] = field(default_factory=dict["str", "Entity"])
    by_name: dict[str, Entity] = field(default_factory=dict["str", "Entity"])
    by_alias: dict[str, Entity] = field(default_factory=dict["str", "Entity"])
    collisions: list[IndexCollision] = field(default_factory=list["IndexCollision"])

    @classmethod
    def build(
        cls,
        kind: EntityKind,
        entities: Iterable[Entity],
        *,
        strict: bool = False,
    ) -> LookupIndex:
        index = cls(kind=kind, strict=strict)
        items = list(entities)
        for entity in items:
            index.by_id.setdefault(entity.id, entity)
        for entity in items:
            index._register(index.by_name, "name", entity.name, entity)
        for entity in items:
            index._register(index.by_name, "name", entity.plural_name, entity)
        if kind.has_abbreviations:
            for entity in items:
                index._register(index.by_name, "name", entity.abbreviation, entity)
                index._register(index.by_name, "name", entity.plural_abbreviation, entity)
        for entity in items:
            for alias in entity.aliases:
                index._register(index.by_alias, "alias", alias, entity)
        log.debug(
            "Built %s index: ids=%s names=%s aliases=%s collisions=%s",
            kind,
            len(index.by_id),
            len(index.by_name),
            len(index.by_alias),
            len(index.collisions),
        )
        return index

    def add(self, entity: Entity) -> None:
        """Insert an entity that appeared during this run."""

        self.by_id.setdefault(entity.id, entity)
        for _field, value in entity.name_values():
            self._register(self.by_name, "name", value, entity)
        for alias in entity.aliases:
            self._register(self.by_alias, "alias", alias, entity)

    def register_simulated(self, record: ImportRecord) -> str:
        """Fabricate an entity for ``record`` without a store round-trip."""

        entity_id = f"{SIMULATED_ID_PREFIX}{uuid4()}"
        self.add(
            Entity(
                id=entity_id,
                kind=record.kind,
                name=record.name,
                plural_name=record.plural_name,
                description=record.description,
                abbreviation=record.abbreviation,
                plural_abbreviation=record.plural_abbreviation,
                use_abbreviation=record.use_abbreviation,
                fraction=record.fraction,
                aliases=record.aliases,
                label=record.label,
                households=record.households,
                simulated=True,
            )
        )
        return entity_id

    def get_id(self, entity_id: str | None) -> Entity | None:
        if not entity_id:
            return None
        return self.by_id.get(entity_id.strip())

    def get_name(self, value: str | None) -> Entity | None:
        key = normalize_key(value)
        return self.by_name.get(key) if key else None

    def get_alias(self, value: str | None) -> Entity | None:
        key = normalize_key(value)
        return self.by_alias.get(key) if key else None

    def existing_entities(self) -> list[Entity]:
        """Entities that exist in the store, excluding simulated ones."""

        return [entity for entity in self.by_id.values() if not entity.simulated]

    def _register(
        self,
        mapping: dict[str, Entity],
        space: str,
        value: str | None,
        entity: Entity,
    ) -> None:
        key = normalize_key(value)
        if not key:
            return
        current = mapping.get(key)
        if current is None:
            mapping[key] = entity
            return
        if current.id == entity.id:
            return
        collision = IndexCollision(key=key, space=space, kept=current, dropped=entity)
        if self.strict:
            raise IndexConsistencyError(
                f"{self.kind} {space} key {key!r} is claimed by both "
                f"{current.name!r} ({current.id}) and {entity.name!r} ({entity.id})"
            )
        self.collisions.append(collision)
        log.warning(
            "Ambiguous %s %s key %r: keeping %r (%s), ignoring %r (%s)",
            self.kind,
            space,
            key,
            current.name,
            current.id,
            entity.name,
            entity.id,
        )
