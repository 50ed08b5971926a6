"""
Base building blocks:
stored entities, incoming import records and the batches that carry them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from larder.domain.model.enums import EntityKind


@dataclass(slots=True, kw_only=True)
class EntityFields:
    """Observable fields shared by stored entities and import records.

    ``aliases`` and ``households`` are always plain strings; payload shapes such
    as ``{"name": ...}`` are flattened by the adapters before reaching here.
    """

    kind: EntityKind
    name: str
    plural_name: str | None = None
    description: str | None = None
    abbreviation: str | None = None
    plural_abbreviation: str | None = None
    use_abbreviation: bool | None = None
    fraction: bool | None = None
    aliases: tuple[str, ...] = ()
    label: str | None = None
    households: tuple[str, ...] = ()

    def name_values(self) -> Iterator[tuple[str, str]]:
        """Yield ``(field, literal)`` for every name-like key of this item.

        Order is significant: primary name, plural name, then (units only) the
        abbreviations. Aliases are not included.
        """

        yield "name", self.name
        if self.plural_name:
            yield "pluralName", self.plural_name
        if self.kind.has_abbreviations:
            if self.abbreviation:
                yield "abbreviation", self.abbreviation
            if self.plural_abbreviation:
                yield "pluralAbbreviation", self.plural_abbreviation


@dataclass(slots=True, kw_only=True)
class Entity(EntityFields):
    """A record held by the remote store.

    ``simulated`` entities were fabricated during the current run (dry-run
    creations) and never exist remotely.
    """

    id: str
    label_id: str | None = None
    simulated: bool = False


@dataclass(slots=True, kw_only=True)
class ImportRecord(EntityFields):
    """Incoming, not yet persisted description of an entity."""

    id: str | None = None
    source: str = ""
    position: int = 0

    @property
    def display(self) -> str:
        return f"{self.source}#{self.position} ({self.name!r})"


@dataclass(slots=True, kw_only=True)
class RecordBatch:
    """Ordered records read from one input file."""

    name: str
    kind: EntityKind
    records: tuple[ImportRecord, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ImportRecord]:
        return iter(self.records)
