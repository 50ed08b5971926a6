"""Public interface for the Mealie adapter."""

from __future__ import annotations

from .client import ENDPOINTS, USAGE_FILTERS, MealieAPIError, MealieStore
from .translator import build_payload, parse_entity

__all__ = [
    "ENDPOINTS",
    "USAGE_FILTERS",
    "MealieAPIError",
    "MealieStore",
    "build_payload",
    "parse_entity",
]
