"""Reconciliation (mirror) engine.

One run takes one or more batches of a single entity kind and walks them in
order:

1) pre-flight: kind check and conflict detection, no store traffic yet
2) build the lookup index from the store's current entities
3) per record: match, claim, then create / skip / update / leave unchanged
4) mirror runs only: compute orphans, pass them through the usage guard,
   delete the ones it clears

Per-record failures are counted and logged; the run moves on. Nothing is rolled
back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from larder.domain.errors import IndexConsistencyError, RecordRejectedError, StoreError

from .changes import detect_changes, merge_aliases
from .conflicts import ensure_no_conflicts
from .contracts import (
    OrphanReport,
    ReconcileOptions,
    ReconcileResult,
    RecordOutcome,
    RecordState,
)
from .index import LookupIndex
from .match import MatchRegistry, resolve
from .normalize import normalize_key

if TYPE_CHECKING:
    from collections.abc import Sequence

    from larder.domain.model import Entity, EntityKind, ImportRecord, RecordBatch
    from larder.domain.ports import EntityStore

    from .guard import UsageGuard
    from .match import Match

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _RunState:
    index: LookupIndex
    registry: MatchRegistry = field(default_factory=MatchRegistry)


@dataclass(slots=True, kw_only=True)
class ReconciliationEngine:
    """Reconcile import batches of one entity kind against ``store``."""

    store: EntityStore
    kind: EntityKind
    options: ReconcileOptions = field(default_factory=ReconcileOptions)
    guard: UsageGuard | None = None
    strict_index: bool = False

    def run(self, batches: Sequence[RecordBatch]) -> ReconcileResult:
        ensure_no_conflicts(batches, self.kind)
        if self.options.deletes_orphans and self.guard is None:
            raise ValueError("Mirror runs need a usage guard")

        result = ReconcileResult(kind=self.kind, options=self.options)
        existing = self.store.list_entities(self.kind)
        state = _RunState(index=LookupIndex.build(self.kind, existing, strict=self.strict_index))
        log.info(
            "Reconciling %s %s record(s) from %s batch(es) against %s existing "
            "(mode=%s, update=%s, aliases=%s, dry_run=%s)",
            sum(len(batch) for batch in batches),
            self.kind,
            len(batches),
            len(existing),
            self.options.mode,
            self.options.update_existing,
            self.options.alias_mode,
            self.options.dry_run,
        )

        records = [record for batch in batches for record in batch.records]
        total = len(records)
        for counter, record in enumerate(records, start=1):
            outcome = self._process(record, state, counter=counter, total=total)
            result.outcomes.append(outcome)
            result.stats.record(outcome.state)

        if self.options.deletes_orphans:
            result.orphans = self._reconcile_orphans(existing, records, state)
            result.stats.deleted = len(result.orphans.deleted)
            result.stats.blocked = len(result.orphans.blocked)
            result.stats.errors += len(result.orphans.failed)

        log.info("Finished %s reconciliation: %s", self.kind, result.stats.summary())
        return result

    def _process(
        self,
        record: ImportRecord,
        state: _RunState,
        *,
        counter: int,
        total: int,
    ) -> RecordOutcome:
        position = f"[{counter}/{total}]"
        match = resolve(record, state.index)
        if match is not None:
            previous = state.registry.claim(match.entity.id, record)
            if previous is not None:
                message = (
                    f"{match.describe()}, but {previous.display} already claimed "
                    f"{match.entity.name!r}"
                )
                log.warning("%s Conflict for %s: %s", position, record.display, message)
                return RecordOutcome(
                    record=record,
                    state=RecordState.CONFLICT,
                    match=match,
                    entity_id=match.entity.id,
                    message=message,
                )

        try:
            if match is None:
                return self._create(record, state, position=position)
            if not self.options.update_existing:
                log.debug("%s Skipping %s: %s", position, record.display, match.describe())
                return RecordOutcome(
                    record=record,
                    state=RecordState.SKIP,
                    match=match,
                    entity_id=match.entity.id,
                )
            return self._update(record, match, position=position)
        except (StoreError, RecordRejectedError, IndexConsistencyError) as exc:
            log.error("%s Failed %s: %s", position, record.display, exc)  # noqa: TRY400
            return RecordOutcome(
                record=record,
                state=RecordState.ERROR,
                match=match,
                entity_id=match.entity.id if match is not None else None,
                message=str(exc),
            )

    def _create(self, record: ImportRecord, state: _RunState, *, position: str) -> RecordOutcome:
        if self.options.dry_run:
            entity_id = state.index.register_simulated(record)
            log.info("%s Would create %s", position, record.display)
        else:
            created = self.store.create(self.kind, record)
            entity_id = created.id
            try:
                state.index.add(created)
            except IndexConsistencyError as exc:
                # already created remotely: a record error, not a fatal one
                state.registry.claim(entity_id, record)
                log.error(  # noqa: TRY400
                    "%s Created %s as %s but cannot index it: %s",
                    position,
                    record.display,
                    entity_id,
                    exc,
                )
                return RecordOutcome(
                    record=record,
                    state=RecordState.ERROR,
                    entity_id=entity_id,
                    message=str(exc),
                )
            log.info("%s Created %s as %s", position, record.display, entity_id)
        state.registry.claim(entity_id, record)
        return RecordOutcome(record=record, state=RecordState.CREATE, entity_id=entity_id)

    def _update(self, record: ImportRecord, match: Match, *, position: str) -> RecordOutcome:
        existing = match.entity
        merged = merge_aliases(existing, record, self.options.alias_mode)
        changes = detect_changes(existing, record, merged)
        if not changes:
            log.debug("%s Unchanged %s", position, record.display)
            return RecordOutcome(
                record=record,
                state=RecordState.UNCHANGED,
                match=match,
                entity_id=existing.id,
            )

        changed_fields = ", ".join(sorted(changes))
        if self.options.dry_run:
            log.info("%s Would update %s (%s)", position, record.display, changed_fields)
        else:
            self.store.update(self.kind, existing.id, changes)
            log.info("%s Updated %s (%s)", position, record.display, changed_fields)
        return RecordOutcome(
            record=record,
            state=RecordState.UPDATE,
            match=match,
            entity_id=existing.id,
            changes=changes,
        )

    def _reconcile_orphans(
        self,
        existing: Sequence[Entity],
        records: Sequence[ImportRecord],
        state: _RunState,
    ) -> OrphanReport:
        report = OrphanReport()
        orphans = find_orphans(existing, records, claimed=state.registry)
        if not orphans:
            return report
        if self.guard is None:
            raise ValueError("Mirror runs need a usage guard")

        log.info("Found %s orphaned %s(s); checking usage", len(orphans), self.kind)
        verdict = self.guard.partition(orphans)
        report.blocked = list(verdict.blocked)
        report.warnings = list(verdict.warnings)
        for blocked in verdict.blocked:
            log.warning("Not deleting %s %s", self.kind, blocked.describe())

        for entity in verdict.clear:
            if self.options.dry_run:
                log.info("Would delete %s %r (%s)", self.kind, entity.name, entity.id)
                report.deleted.append(entity)
                continue
            try:
                self.store.delete(self.kind, entity.id)
            except StoreError as exc:
                log.error(  # noqa: TRY400
                    "Failed to delete %s %r (%s): %s", self.kind, entity.name, entity.id, exc
                )
                report.failed.append(entity)
                continue
            log.info("Deleted %s %r (%s)", self.kind, entity.name, entity.id)
            report.deleted.append(entity)
        return report


def find_orphans(
    existing: Sequence[Entity],
    records: Sequence[ImportRecord],
    *,
    claimed: MatchRegistry | None = None,
) -> list[Entity]:
    """Existing entities nothing in ``records`` refers to.

    An entity survives when a record carries its id, when a record's name or
    plural name equals its name or plural name (legacy input without ids), or
    when a record was matched to it during the run.
    """

    record_ids = {record.id.strip() for record in records if record.id}
    record_names = {
        normalize_key(value)
        for record in records
        for value in (record.name, record.plural_name)
        if normalize_key(value)
    }
    orphans: list[Entity] = []
    for entity in existing:
        if entity.simulated or entity.id in record_ids:
            continue
        if claimed is not None and entity.id in claimed:
            continue
        entity_names = {normalize_key(entity.name), normalize_key(entity.plural_name)} - {""}
        if entity_names & record_names:
            continue
        orphans.append(entity)
    return orphans
