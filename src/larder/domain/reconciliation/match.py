"""Resolve one import record against the lookup index.

Key spaces are tried in a fixed order and the first hit wins:

1. record id against ids (authoritative even if names have drifted)
2. name against names
3. plural name against names, then against aliases
4. units only: abbreviation, then plural abbreviation, against names
5. name against aliases
6. each alias, in input order, against names then aliases

Later steps are fallbacks ordered by how likely a false positive is. No hit is
not an error: it means the record describes a new entity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .normalize import normalize_key

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from larder.domain.model import Entity, ImportRecord

    from .index import LookupIndex


class MatchMethod(StrEnum):
    """Which incoming field matched which existing key space."""

    ID = "id"
    NAME = "name"
    PLURAL_NAME = "pluralName"
    PLURAL_NAME_ALIAS = "pluralName->alias"
    ABBREVIATION = "abbreviation"
    PLURAL_ABBREVIATION = "pluralAbbreviation"
    NAME_ALIAS = "name->alias"
    ALIAS_NAME = "alias->name"
    ALIAS_ALIAS = "alias->alias"


@dataclass(slots=True, frozen=True, kw_only=True)
class Match:
    entity: Entity
    method: MatchMethod
    incoming_value: str
    existing_value: str

    def describe(self) -> str:
        return (
            f"{self.method}: {self.incoming_value!r} matched "
            f"{self.entity.name!r} via {self.existing_value!r}"
        )


type _Lookup = Callable[[str | None], Entity | None]


def resolve(record: ImportRecord, index: LookupIndex) -> Match | None:
    """Return the existing entity ``record`` refers to, or ``None``."""

    for method, incoming, lookup, existing_field in _candidates(record, index):
        entity = lookup(incoming)
        if entity is None:
            continue
        return Match(
            entity=entity,
            method=method,
            incoming_value=incoming,
            existing_value=existing_field(entity, incoming),
        )
    return None


def _candidates(
    record: ImportRecord,
    index: LookupIndex,
) -> Iterator[tuple[MatchMethod, str, _Lookup, Callable[[Entity, str], str]]]:
    if record.id:
        yield MatchMethod.ID, record.id, index.get_id, _literal_id
    yield MatchMethod.NAME, record.name, index.get_name, _literal_name
    if record.plural_name:
        yield MatchMethod.PLURAL_NAME, record.plural_name, index.get_name, _literal_name
        yield (
            MatchMethod.PLURAL_NAME_ALIAS,
            record.plural_name,
            index.get_alias,
            _literal_alias,
        )
    if index.kind.has_abbreviations:
        if record.abbreviation:
            yield MatchMethod.ABBREVIATION, record.abbreviation, index.get_name, _literal_name
        if record.plural_abbreviation:
            yield (
                MatchMethod.PLURAL_ABBREVIATION,
                record.plural_abbreviation,
                index.get_name,
                _literal_name,
            )
    yield MatchMethod.NAME_ALIAS, record.name, index.get_alias, _literal_alias
    for alias in record.aliases:
        yield MatchMethod.ALIAS_NAME, alias, index.get_name, _literal_name
        yield MatchMethod.ALIAS_ALIAS, alias, index.get_alias, _literal_alias


def _literal_id(entity: Entity, _incoming: str) -> str:
    return entity.id


def _literal_name(entity: Entity, incoming: str) -> str:
    key = normalize_key(incoming)
    for _field, value in entity.name_values():
        if normalize_key(value) == key:
            return value
    return entity.name


def _literal_alias(entity: Entity, incoming: str) -> str:
    key = normalize_key(incoming)
    for alias in entity.aliases:
        if normalize_key(alias) == key:
            return alias
    return incoming


@dataclass(slots=True)
class MatchRegistry:
    """Which import record claimed which entity during this run.

    Two records resolving to the same entity is a batch-internal conflict. The
    registry also holds entities created earlier in the run so a later record
    matching one of them is caught the same way.
    """

    _claims: dict[str, ImportRecord] = field(default_factory=dict["str", "ImportRecord"])

    def claim(self, entity_id: str, record: ImportRecord) -> ImportRecord | None:
        """Claim ``entity_id`` for ``record``.

        Returns the earlier claimant when the entity is already taken; the
        registry is left unchanged in that case.
        """

        previous = self._claims.get(entity_id)
        if previous is not None and previous is not record:
            return previous
        self._claims[entity_id] = record
        return None

    def claimant(self, entity_id: str) -> ImportRecord | None:
        return self._claims.get(entity_id)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._claims

    def __len__(self) -> int:
        return len(self._claims)
