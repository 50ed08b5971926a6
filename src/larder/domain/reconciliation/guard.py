"""Usage guard: veto deletion of orphans that other data still references.

A failing usage query fails open by default (the candidate is treated as
unreferenced and a warning is recorded). Blocking every deletion because of a
transient error is the worse outcome for a mirror run; operators who disagree
set ``fail_open=False`` and the candidate is blocked with an unknown count.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from larder.domain.errors import UsageQueryError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from larder.domain.model import Entity, EntityKind
    from larder.domain.ports import UsageCounter

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class BlockedOrphan:
    entity: Entity
    usage_count: int | None

    def describe(self) -> str:
        count = "unknown" if self.usage_count is None else str(self.usage_count)
        return f"{self.entity.name!r} ({self.entity.id}) referenced {count} time(s)"


@dataclass(slots=True)
class GuardResult:
    blocked: list[BlockedOrphan] = field(default_factory=list["BlockedOrphan"])
    clear: list[Entity] = field(default_factory=list["Entity"])
    warnings: list[str] = field(default_factory=list["str"])


@dataclass(slots=True)
class UsageGuard:
    counter: UsageCounter
    kind: EntityKind
    fail_open: bool = True

    def partition(self, candidates: Iterable[Entity]) -> GuardResult:
        result = GuardResult()
        for entity in candidates:
            try:
                usage_count: int | None = self.counter.count_usage(self.kind, entity.id)
            except UsageQueryError as exc:
                warning = f"Usage query failed for {self.kind} {entity.name!r} ({entity.id}): {exc}"
                result.warnings.append(warning)
                if self.fail_open:
                    log.warning("%s; treating it as unused", warning)
                    usage_count = 0
                else:
                    log.warning("%s; keeping it", warning)
                    usage_count = None

            if usage_count is None or usage_count > 0:
                result.blocked.append(BlockedOrphan(entity=entity, usage_count=usage_count))
            else:
                result.clear.append(entity)
        return result
