"""Public domain model surface."""

from __future__ import annotations

from larder.domain.model.entity import Entity, EntityFields, ImportRecord, RecordBatch
from larder.domain.model.enums import AliasMode, EntityKind, RunMode

__all__ = [
    "AliasMode",
    "Entity",
    "EntityFields",
    "EntityKind",
    "ImportRecord",
    "RecordBatch",
    "RunMode",
]
