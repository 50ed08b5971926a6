"""Result types shared by the reconciliation engine and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from larder.domain.model import AliasMode, RunMode

if TYPE_CHECKING:
    from larder.domain.model import Entity, EntityKind, ImportRecord

    from .guard import BlockedOrphan
    from .match import Match


class RecordState(StrEnum):
    """Terminal state of one import record."""

    CREATE = "create"
    UPDATE = "update"
    UNCHANGED = "unchanged"
    SKIP = "skip"
    CONFLICT = "conflict"
    ERROR = "error"


@dataclass(slots=True, kw_only=True)
class ReconcileOptions:
    mode: RunMode = RunMode.IMPORT
    update_existing: bool = False
    alias_mode: AliasMode = AliasMode.MERGE
    dry_run: bool = False

    @property
    def deletes_orphans(self) -> bool:
        return self.mode is RunMode.MIRROR


@dataclass(slots=True)
class RunStats:
    """Counters for one run. In a dry run they describe planned actions."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    errors: int = 0
    conflicts: int = 0
    deleted: int = 0
    blocked: int = 0

    def record(self, state: RecordState) -> None:
        match state:
            case RecordState.CREATE:
                self.created += 1
            case RecordState.UPDATE:
                self.updated += 1
            case RecordState.UNCHANGED:
                self.unchanged += 1
            case RecordState.SKIP:
                self.skipped += 1
            case RecordState.CONFLICT:
                self.conflicts += 1
            case RecordState.ERROR:
                self.errors += 1

    @property
    def has_errors(self) -> bool:
        return self.errors > 0

    def summary(self) -> str:
        return (
            f"created={self.created}, updated={self.updated}, unchanged={self.unchanged}, "
            f"skipped={self.skipped}, conflicts={self.conflicts}, errors={self.errors}, "
            f"deleted={self.deleted}, blocked={self.blocked}"
        )


@dataclass(slots=True, kw_only=True)
class RecordOutcome:
    record: ImportRecord
    state: RecordState
    match: Match | None = None
    entity_id: str | None = None
    changes: dict[str, object] = field(default_factory=dict["str", "object"])
    message: str | None = None


@dataclass(slots=True)
class OrphanReport:
    """What the orphan pass decided; empty unless orphans were requested."""

    deleted: list[Entity] = field(default_factory=list["Entity"])
    blocked: list[BlockedOrphan] = field(default_factory=list["BlockedOrphan"])
    failed: list[Entity] = field(default_factory=list["Entity"])
    warnings: list[str] = field(default_factory=list["str"])


@dataclass(slots=True, kw_only=True)
class ReconcileResult:
    kind: EntityKind
    options: ReconcileOptions
    stats: RunStats = field(default_factory=RunStats)
    outcomes: list[RecordOutcome] = field(default_factory=list["RecordOutcome"])
    orphans: OrphanReport = field(default_factory=OrphanReport)

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    @property
    def partial_failure(self) -> bool:
        return self.stats.has_errors

    def outcomes_in(self, state: RecordState) -> list[RecordOutcome]:
        return [outcome for outcome in self.outcomes if outcome.state is state]
