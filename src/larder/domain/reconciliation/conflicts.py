"""Pre-flight conflict detection across one or more input batches.

Every name-like value of every record (name, plural name, aliases and, for
units, both abbreviations) is normalized into one multi-map. A value claimed by
two or more distinct records is a conflict: importing such input would either
merge two real-world entities or make the result depend on record order.

The check runs before any store call. One conflict aborts the whole batch set.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from larder.domain.errors import BatchConflictError, BatchValidationError

from .normalize import normalize_key

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from larder.domain.model import EntityKind, ImportRecord, RecordBatch

log = logging.getLogger(__name__)


class ConflictScope(StrEnum):
    WITHIN_FILE = "WithinFile"
    CROSS_FILE = "CrossFile"


@dataclass(slots=True, frozen=True, kw_only=True)
class Occurrence:
    """One place a normalized value appeared in the input."""

    batch: str
    batch_index: int
    field: str
    position: int
    record_name: str
    literal: str

    @property
    def record_identity(self) -> tuple[int, int]:
        return (self.batch_index, self.position)

    def describe(self) -> str:
        return f"{self.batch}#{self.position} {self.field}={self.literal!r} ({self.record_name!r})"


@dataclass(slots=True, frozen=True, kw_only=True)
class KeyConflict:
    value: str
    scope: ConflictScope
    occurrences: tuple[Occurrence, ...]

    @property
    def record_count(self) -> int:
        return len({occurrence.record_identity for occurrence in self.occurrences})

    def describe(self) -> str:
        claimants = ", ".join(occurrence.describe() for occurrence in self.occurrences)
        return f"{self.value!r} [{self.scope}] claimed by {claimants}"


def find_conflicts(batches: Sequence[RecordBatch], kind: EntityKind) -> list[KeyConflict]:
    """Return every normalized value claimed by more than one record, sorted by value."""

    _check_kinds(batches, kind)
    occurrences_by_value: dict[str, list[Occurrence]] = defaultdict(list)
    # the same file passed twice must still conflict with itself
    for batch_index, batch in enumerate(batches):
        for record in batch.records:
            for occurrence in _occurrences(batch.name, batch_index, record):
                occurrences_by_value[normalize_key(occurrence.literal)].append(occurrence)

    conflicts: list[KeyConflict] = []
    for value in sorted(occurrences_by_value):
        occurrences = occurrences_by_value[value]
        records = {occurrence.record_identity for occurrence in occurrences}
        if len(records) < 2:
            continue
        batch_indexes = {occurrence.batch_index for occurrence in occurrences}
        scope = ConflictScope.WITHIN_FILE if len(batch_indexes) == 1 else ConflictScope.CROSS_FILE
        conflicts.append(
            KeyConflict(value=value, scope=scope, occurrences=tuple(occurrences))
        )
    return conflicts


def ensure_no_conflicts(batches: Sequence[RecordBatch], kind: EntityKind) -> None:
    """Raise ``BatchConflictError`` when ``find_conflicts`` reports anything."""

    conflicts = find_conflicts(batches, kind)
    if not conflicts:
        return
    for conflict in conflicts:
        log.error("Conflicting %s key %s", kind, conflict.describe())
    raise BatchConflictError(conflicts)


def _check_kinds(batches: Sequence[RecordBatch], kind: EntityKind) -> None:
    for batch in batches:
        if batch.kind is not kind:
            raise BatchValidationError(
                f"Batch {batch.name!r} holds {batch.kind} records, expected {kind}"
            )


def _occurrences(batch_name: str, batch_index: int, record: ImportRecord) -> Iterator[Occurrence]:
    values = [*record.name_values(), *(("alias", alias) for alias in record.aliases)]
    for field_name, literal in values:
        if not normalize_key(literal):
            continue
        yield Occurrence(
            batch=batch_name,
            batch_index=batch_index,
            field=field_name,
            position=record.position,
            record_name=record.name,
            literal=literal,
        )
