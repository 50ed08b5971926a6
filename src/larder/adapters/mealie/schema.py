"""Pydantic models describing the Mealie API payloads."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _names(value: object) -> object:
    """Accept ``["a", {"name": "b"}]`` and return ``["a", "b"]``."""

    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, Sequence):
        return value
    names: list[object] = []
    for item in cast(Sequence[object], value):
        if isinstance(item, Mapping):
            names.append(cast(Mapping[str, object], item).get("name"))
        else:
            names.append(item)
    return names


class MealieBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LabelRef(MealieBaseModel):
    id: str
    name: str


class HouseholdPayload(MealieBaseModel):
    id: str
    name: str
    slug: str | None = None


class _NamedPayload(MealieBaseModel):
    id: str
    name: str


class FoodPayload(_NamedPayload):
    plural_name: str | None = Field(default=None, alias="pluralName")
    description: str | None = None
    aliases: list[str] = Field(default_factory=list)
    label: LabelRef | None = None
    label_id: str | None = Field(default=None, alias="labelId")
    households: list[str] = Field(default_factory=list, alias="householdsWithIngredientFood")

    _normalize_optional = field_validator("plural_name", "description", "label_id", mode="before")(
        _blank_to_none
    )
    _normalize_names = field_validator("aliases", "households", mode="before")(_names)


class UnitPayload(_NamedPayload):
    plural_name: str | None = Field(default=None, alias="pluralName")
    description: str | None = None
    abbreviation: str | None = None
    plural_abbreviation: str | None = Field(default=None, alias="pluralAbbreviation")
    use_abbreviation: bool | None = Field(default=None, alias="useAbbreviation")
    fraction: bool | None = None
    aliases: list[str] = Field(default_factory=list)

    _normalize_optional = field_validator(
        "plural_name", "description", "abbreviation", "plural_abbreviation", mode="before"
    )(_blank_to_none)
    _normalize_names = field_validator("aliases", mode="before")(_names)


class OrganizerPayload(_NamedPayload):
    slug: str | None = None


class ToolPayload(OrganizerPayload):
    households: list[str] = Field(default_factory=list, alias="householdsWithTool")

    _normalize_names = field_validator("households", mode="before")(_names)


class PagePayload(MealieBaseModel):
    page: int = 1
    per_page: int = Field(default=50, alias="perPage")
    total: int = 0
    total_pages: int = Field(default=1, alias="totalPages")
    items: list[dict[str, object]] = Field(default_factory=list)


class ErrorResponse(MealieBaseModel):
    detail: object = None

    @property
    def message(self) -> str:
        detail = self.detail
        if isinstance(detail, Mapping):
            mapping = cast(Mapping[str, object], detail)
            message = mapping.get("message")
            if message:
                return str(message)
        return str(detail) if detail is not None else "unknown error"
