from __future__ import annotations

from .store import EntityStore, UsageCounter

__all__ = ["EntityStore", "UsageCounter"]
