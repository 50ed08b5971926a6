"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import InvalidConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = _get(name)
        if value is None:
            missing.append(name)
            continue
        values[name] = value

    if missing:
        missing_list = ", ".join(sorted(missing))
        raise MissingConfigurationError(f"Missing configuration for: {missing_list}")

    return values


def env_float(name: str, default: float, *, minimum: float | None = None) -> float:
    value = _get(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError as exc:
        raise InvalidConfigurationError(name, value, "a number") from exc
    if minimum is not None and parsed < minimum:
        raise InvalidConfigurationError(name, value, f"a number >= {minimum}")
    return parsed


def env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    value = _get(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError as exc:
        raise InvalidConfigurationError(name, value, "an integer") from exc
    if minimum is not None and parsed < minimum:
        raise InvalidConfigurationError(name, value, f"an integer >= {minimum}")
    return parsed


def env_bool(name: str, default: bool) -> bool:  # noqa: FBT001
    value = _get(name)
    if value is None:
        return default
    lowered = value.casefold()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise InvalidConfigurationError(name, value, "a boolean")


def _get(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()
