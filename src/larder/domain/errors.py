"""Domain error hierarchy.

Three classes of failure matter to callers:

- pre-flight problems (``BatchValidationError``) abort a run before any store
  traffic happens
- per-record problems (``StoreError``, ``RecordRejectedError``) are counted and
  the run continues with the next record
- usage queries failing (``UsageQueryError``) are downgraded to warnings by the
  usage guard
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from larder.domain.reconciliation.conflicts import KeyConflict


class LarderError(Exception):
    """Base class for errors raised by the reconciliation core."""


class BatchValidationError(LarderError):
    """Raised when input batches are unusable; nothing has been applied."""


class BatchConflictError(BatchValidationError):
    """Raised when normalized keys in the input resolve to different records."""

    def __init__(self, conflicts: Sequence[KeyConflict]) -> None:
        self.conflicts = tuple(conflicts)
        count = len(self.conflicts)
        details = "; ".join(conflict.describe() for conflict in self.conflicts[:5])
        if count > 5:
            details += f"; ... and {count - 5} more"
        super().__init__(f"{count} conflicting key(s) in input: {details}")


class StoreError(LarderError):
    """Raised when the remote store rejects or fails a call."""


class UsageQueryError(StoreError):
    """Raised when the store cannot tell whether an entity is referenced."""


class RecordRejectedError(LarderError):
    """Raised when one record cannot be written, e.g. it names an unknown label."""


class IndexConsistencyError(LarderError):
    """Raised by a strict lookup index when two entities claim the same key."""
