"""Field-level change detection and alias merging for matched pairs.

Scalars compare with ``same_text``: trimmed, case-folded, then ordinal. An
incoming scalar that is absent means "not specified" and never counts as a
change, because the store only receives non-null fields. Booleans compare with
their store defaults filled in on both sides.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from larder.domain.model import AliasMode

from .normalize import (
    clean_text,
    dedupe_preserving_first,
    normalize_key,
    normalized_sorted,
    same_text,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from larder.domain.model import Entity, EntityFields, ImportRecord

USE_ABBREVIATION_DEFAULT = False
FRACTION_DEFAULT = True

_SCALAR_FIELDS = ("name", "plural_name", "description")
_UNIT_SCALAR_FIELDS = ("abbreviation", "plural_abbreviation")


def merge_aliases(
    existing: EntityFields,
    incoming: EntityFields,
    mode: AliasMode = AliasMode.MERGE,
) -> tuple[str, ...]:
    """Alias set the entity should end up with.

    ``merge`` keeps existing aliases and appends new incoming ones (existing
    spelling wins on case-insensitive collisions). ``replace`` keeps only the
    incoming aliases. Either way aliases equal to the resulting name or plural
    name are dropped, since the store would strip them anyway.
    """

    if mode is AliasMode.REPLACE:
        candidates: Iterable[str] = incoming.aliases
    else:
        candidates = (*existing.aliases, *incoming.aliases)
    name = clean_text(incoming.name) or existing.name
    plural_name = clean_text(incoming.plural_name) or existing.plural_name
    reserved = {normalize_key(name), normalize_key(plural_name)} - {""}
    return tuple(
        alias
        for alias in dedupe_preserving_first(candidates)
        if normalize_key(alias) not in reserved
    )


def aliases_equal(left: Iterable[str], right: Iterable[str]) -> bool:
    """Order- and case-insensitive comparison of two alias collections."""

    return normalized_sorted(left) == normalized_sorted(right)


def detect_changes(
    existing: Entity,
    incoming: ImportRecord,
    merged_aliases: Iterable[str],
) -> dict[str, object]:
    """Changed fields keyed by attribute name, holding the incoming value."""

    changes: dict[str, object] = {}
    scalar_fields = _SCALAR_FIELDS
    if existing.kind.has_abbreviations:
        scalar_fields += _UNIT_SCALAR_FIELDS
    if existing.kind.has_label:
        scalar_fields += ("label",)
    for attribute in scalar_fields:
        new_value = clean_text(getattr(incoming, attribute))
        if new_value is None:
            continue
        if not same_text(getattr(existing, attribute), new_value):
            changes[attribute] = new_value

    if existing.kind.has_abbreviations:
        use_abbreviation = _flag(incoming.use_abbreviation, USE_ABBREVIATION_DEFAULT)
        if _flag(existing.use_abbreviation, USE_ABBREVIATION_DEFAULT) != use_abbreviation:
            changes["use_abbreviation"] = use_abbreviation
        fraction = _flag(incoming.fraction, FRACTION_DEFAULT)
        if _flag(existing.fraction, FRACTION_DEFAULT) != fraction:
            changes["fraction"] = fraction

    if existing.kind.has_aliases:
        aliases = tuple(merged_aliases)
        if not aliases_equal(existing.aliases, aliases):
            changes["aliases"] = aliases

    if existing.kind.household_scoped and incoming.households:
        if not aliases_equal(existing.households, incoming.households):
            changes["households"] = dedupe_preserving_first(incoming.households)

    return changes


def has_changed(
    existing: Entity,
    incoming: ImportRecord,
    merged_aliases: Iterable[str],
) -> bool:
    return bool(detect_changes(existing, incoming, merged_aliases))


def _flag(value: bool | None, default: bool) -> bool:
    return default if value is None else value
