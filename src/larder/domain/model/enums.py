"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    """Closed set of entity types the store knows about."""

    FOOD = "food"
    UNIT = "unit"
    CATEGORY = "category"
    TAG = "tag"
    TOOL = "tool"

    @property
    def has_abbreviations(self) -> bool:
        return self is EntityKind.UNIT

    @property
    def has_aliases(self) -> bool:
        return self in (EntityKind.FOOD, EntityKind.UNIT)

    @property
    def has_label(self) -> bool:
        return self is EntityKind.FOOD

    @property
    def household_scoped(self) -> bool:
        return self in (EntityKind.FOOD, EntityKind.TOOL)

    @property
    def is_organizer(self) -> bool:
        return self in (EntityKind.CATEGORY, EntityKind.TAG, EntityKind.TOOL)

    @property
    def envelope_type(self) -> str:
        """Discriminator used by the batch file envelope (``$type``)."""

        return _ENVELOPE_TYPES[self]

    @classmethod
    def from_envelope_type(cls, value: str) -> EntityKind:
        for kind, envelope_type in _ENVELOPE_TYPES.items():
            if envelope_type.casefold() == value.strip().casefold():
                return kind
        raise ValueError(f"Unknown batch type: {value!r}")


_ENVELOPE_TYPES: dict[EntityKind, str] = {
    EntityKind.FOOD: "Foods",
    EntityKind.UNIT: "Units",
    EntityKind.CATEGORY: "Categories",
    EntityKind.TAG: "Tags",
    EntityKind.TOOL: "Tools",
}


class AliasMode(StrEnum):
    """How incoming aliases combine with the ones already stored."""

    MERGE = "merge"
    REPLACE = "replace"


class RunMode(StrEnum):
    IMPORT = "import"
    MIRROR = "mirror"
