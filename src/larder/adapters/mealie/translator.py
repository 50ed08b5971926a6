"""Translate between Mealie payloads and domain entities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from larder.domain.model import Entity, EntityKind

from .schema import FoodPayload, OrganizerPayload, ToolPayload, UnitPayload

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_PAYLOAD_KEYS: dict[str, str] = {
    "name": "name",
    "plural_name": "pluralName",
    "description": "description",
    "abbreviation": "abbreviation",
    "plural_abbreviation": "pluralAbbreviation",
    "use_abbreviation": "useAbbreviation",
    "fraction": "fraction",
}

_HOUSEHOLD_KEYS: dict[EntityKind, str] = {
    EntityKind.FOOD: "householdsWithIngredientFood",
    EntityKind.TOOL: "householdsWithTool",
}


def parse_entity(kind: EntityKind, payload: Mapping[str, object]) -> Entity:
    """Build a domain entity from one API item."""

    match kind:
        case EntityKind.FOOD:
            food = FoodPayload.model_validate(payload)
            return Entity(
                id=food.id,
                kind=kind,
                name=food.name,
                plural_name=food.plural_name,
                description=food.description,
                aliases=_strings(food.aliases),
                label=food.label.name if food.label is not None else None,
                label_id=food.label.id if food.label is not None else food.label_id,
                households=_strings(food.households),
            )
        case EntityKind.UNIT:
            unit = UnitPayload.model_validate(payload)
            return Entity(
                id=unit.id,
                kind=kind,
                name=unit.name,
                plural_name=unit.plural_name,
                description=unit.description,
                abbreviation=unit.abbreviation,
                plural_abbreviation=unit.plural_abbreviation,
                use_abbreviation=unit.use_abbreviation,
                fraction=unit.fraction,
                aliases=_strings(unit.aliases),
            )
        case EntityKind.TOOL:
            tool = ToolPayload.model_validate(payload)
            return Entity(
                id=tool.id,
                kind=kind,
                name=tool.name,
                households=_strings(tool.households),
            )
        case EntityKind.CATEGORY | EntityKind.TAG:
            organizer = OrganizerPayload.model_validate(payload)
            return Entity(id=organizer.id, kind=kind, name=organizer.name)


def build_payload(
    kind: EntityKind,
    fields: Mapping[str, object],
    *,
    label_id: str | None = None,
    household_slugs: Iterable[str] | None = None,
) -> dict[str, object]:
    """Request body for the given attribute values.

    ``fields`` uses domain attribute names; ``None`` values are left out so only
    specified fields reach the store. The label and households travel already
    resolved to store references.
    """

    payload: dict[str, object] = {}
    for attribute, key in _PAYLOAD_KEYS.items():
        if attribute not in fields:
            continue
        if attribute in ("abbreviation", "plural_abbreviation", "use_abbreviation", "fraction"):
            if kind is not EntityKind.UNIT:
                continue
        value = fields[attribute]
        if value is not None:
            payload[key] = value
    if kind.is_organizer:
        payload = {"name": payload["name"]} if "name" in payload else {}
    if kind.has_aliases and "aliases" in fields:
        aliases = fields["aliases"]
        if isinstance(aliases, (list, tuple)):
            payload["aliases"] = [{"name": alias} for alias in aliases]
    if kind.has_label and label_id is not None:
        payload["labelId"] = label_id
    if kind.household_scoped and household_slugs is not None:
        payload[_HOUSEHOLD_KEYS[kind]] = list(household_slugs)
    return payload


def _strings(values: Iterable[str | None]) -> tuple[str, ...]:
    return tuple(value.strip() for value in values if value and value.strip())
