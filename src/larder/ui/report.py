"""Plain-text run reports for the CLI."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from larder.domain.reconciliation import RecordState

if TYPE_CHECKING:
    from collections.abc import Sequence

    from larder.domain.reconciliation import KeyConflict, ReconcileResult

log = logging.getLogger(__name__)


def report_conflicts(conflicts: Sequence[KeyConflict]) -> None:
    for conflict in conflicts:
        log.error("Conflict on %r (%s):", conflict.value, conflict.scope)
        for occurrence in conflict.occurrences:
            log.error("    %s", occurrence.describe())


def report_result(result: ReconcileResult) -> None:
    prefix = "[dry run] " if result.dry_run else ""
    stats = result.stats
    log.info("%s%s %s summary: %s", prefix, result.kind, result.options.mode, stats.summary())

    for outcome in result.outcomes_in(RecordState.CONFLICT):
        log.warning("%sConflict: %s: %s", prefix, outcome.record.display, outcome.message)
    for outcome in result.outcomes_in(RecordState.ERROR):
        log.error("%sError: %s: %s", prefix, outcome.record.display, outcome.message)
    for blocked in result.orphans.blocked:
        log.warning("%sKept in use: %s", prefix, blocked.describe())
    for warning in result.orphans.warnings:
        log.warning("%s%s", prefix, warning)
    if result.partial_failure:
        log.warning(
            "%s%s record(s) failed; the rest of the batch was applied", prefix, stats.errors
        )
