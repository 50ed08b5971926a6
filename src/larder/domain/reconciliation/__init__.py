"""Reconciliation core: match import records against the store and apply them.

Layered flow of one run:
1) detect key conflicts across the input batches (pre-flight)
2) index the store's current entities
3) resolve each record to at most one existing entity
4) compute field changes, merging aliases
5) create / update, then (mirror runs) delete orphans the usage guard clears
"""

from __future__ import annotations

from .changes import aliases_equal, detect_changes, has_changed, merge_aliases
from .conflicts import ConflictScope, KeyConflict, Occurrence, ensure_no_conflicts, find_conflicts
from .contracts import (
    OrphanReport,
    ReconcileOptions,
    ReconcileResult,
    RecordOutcome,
    RecordState,
    RunStats,
)
from .engine import ReconciliationEngine, find_orphans
from .guard import BlockedOrphan, GuardResult, UsageGuard
from .index import IndexCollision, LookupIndex
from .match import Match, MatchMethod, MatchRegistry, resolve
from .normalize import normalize_key, same_text

__all__ = [
    "BlockedOrphan",
    "ConflictScope",
    "GuardResult",
    "IndexCollision",
    "KeyConflict",
    "LookupIndex",
    "Match",
    "MatchMethod",
    "MatchRegistry",
    "Occurrence",
    "OrphanReport",
    "ReconcileOptions",
    "ReconcileResult",
    "ReconciliationEngine",
    "RecordOutcome",
    "RecordState",
    "RunStats",
    "UsageGuard",
    "aliases_equal",
    "detect_changes",
    "ensure_no_conflicts",
    "find_conflicts",
    "find_orphans",
    "has_changed",
    "merge_aliases",
    "normalize_key",
    "resolve",
    "same_text",
]
