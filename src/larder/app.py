"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from larder.adapters.batch_file import read_batch, write_batch
from larder.adapters.mealie import MealieStore
from larder.config import get_sync_config
from larder.domain.errors import BatchValidationError
from larder.domain.model import AliasMode, RunMode
from larder.domain.reconciliation import (
    ReconcileOptions,
    ReconciliationEngine,
    UsageGuard,
    find_conflicts,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from larder.config import SyncConfig
    from larder.domain.model import EntityKind, RecordBatch
    from larder.domain.reconciliation import KeyConflict, ReconcileResult

StoreFactory = Callable[[], MealieStore]

log = getLogger(__name__)


def load_batches(kind: EntityKind, paths: Sequence[Path | str]) -> list[RecordBatch]:
    """Read every batch file, failing before any store traffic on bad input."""

    if not paths:
        raise BatchValidationError("At least one input file is required")
    return [read_batch(path, kind=kind) for path in paths]


def check_files(kind: EntityKind, paths: Sequence[Path | str]) -> list[KeyConflict]:
    """Validate batch files and report key conflicts without contacting the store."""

    batches = load_batches(kind, paths)
    conflicts = find_conflicts(batches, kind)
    log.info(
        "Checked %s %s record(s) in %s file(s): %s conflict(s)",
        sum(len(batch) for batch in batches),
        kind,
        len(batches),
        len(conflicts),
    )
    return conflicts


def reconcile_files(
    kind: EntityKind,
    paths: Sequence[Path | str],
    *,
    mode: RunMode = RunMode.IMPORT,
    update_existing: bool = False,
    alias_mode: AliasMode | None = None,
    dry_run: bool = False,
    store_factory: StoreFactory | None = None,
    sync_config: SyncConfig | None = None,
) -> ReconcileResult:
    """Import (or mirror) batch files of one entity kind into Mealie."""

    settings = sync_config or get_sync_config()
    batches = load_batches(kind, paths)
    options = ReconcileOptions(
        mode=mode,
        update_existing=update_existing,
        alias_mode=alias_mode or settings.alias_mode,
        dry_run=dry_run,
    )
    effective_factory = store_factory or MealieStore
    log.info(
        "Starting %s %s: files=%s, update=%s, aliases=%s, dry_run=%s",
        kind,
        mode,
        len(batches),
        options.update_existing,
        options.alias_mode,
        dry_run,
    )

    with effective_factory() as store:
        engine = ReconciliationEngine(
            store=store,
            kind=kind,
            options=options,
            guard=UsageGuard(store, kind, fail_open=settings.usage_guard_fail_open),
            strict_index=settings.strict_index,
        )
        return engine.run(batches)


def export_entities(
    kind: EntityKind,
    path: Path | str,
    *,
    store_factory: StoreFactory | None = None,
) -> int:
    """Write the store's current entities of ``kind`` as a batch file."""

    effective_factory = store_factory or MealieStore
    with effective_factory() as store:
        entities = store.list_entities(kind)
    return write_batch(path, kind, entities)
