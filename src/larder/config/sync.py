"""Reconciliation defaults."""

from __future__ import annotations

from dataclasses import dataclass

from larder.domain.model import AliasMode

from .env import env_bool


@dataclass(frozen=True, slots=True)
class SyncConfig:
    alias_mode: AliasMode = AliasMode.MERGE
    usage_guard_fail_open: bool = True
    strict_index: bool = False


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        usage_guard_fail_open=env_bool("LARDER_USAGE_GUARD_FAIL_OPEN", default=True),
        strict_index=env_bool("LARDER_STRICT_INDEX", default=False),
    )
