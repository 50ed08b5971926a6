"""Key normalization shared by every reconciliation stage.

Lookup keys are trimmed and case-folded. No Unicode folding is applied, so
``"creme"`` and ``"crème"`` stay different keys and different values: case
folding is a lookup convenience, never a reason to call two spellings equal.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def normalize_key(value: str | None) -> str:
    """Return the lookup key for ``value``; ``None`` and blanks become ``""``."""

    if value is None:
        return ""
    return value.strip().casefold()


def clean_text(value: str | None) -> str | None:
    """Trim ``value`` and map blanks to ``None``."""

    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def same_text(left: str | None, right: str | None) -> bool:
    """Ordinal comparison of two values after trimming and case folding."""

    return normalize_key(left) == normalize_key(right)


def normalized_sorted(values: Iterable[str]) -> tuple[str, ...]:
    """Normalized, de-blanked and sorted keys of ``values``."""

    return tuple(sorted(key for key in (normalize_key(value) for value in values) if key))


def dedupe_preserving_first(values: Iterable[str]) -> tuple[str, ...]:
    """Drop blanks and case-insensitive duplicates; the first spelling wins."""

    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        key = normalize_key(value)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(value.strip())
    return tuple(result)
