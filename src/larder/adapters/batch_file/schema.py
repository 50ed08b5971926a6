"""Pydantic models for batch files.

A batch file wraps its records in an envelope naming the entity type and the
schema version::

    {"$type": "Foods", "$version": "1.0", "items": [{"name": "kumquat"}]}

Aliases, labels and households may be given as bare strings or as
``{"name": ...}`` objects; both shapes are flattened to strings here.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_VERSIONS = frozenset({"1.0"})


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _name_of(value: object) -> object:
    if isinstance(value, Mapping):
        return cast(Mapping[str, object], value).get("name")
    return value


def _name_list(value: object) -> object:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, Sequence):
        return value
    names: list[object] = []
    for item in cast(Sequence[object], value):
        name = _name_of(item)
        if not isinstance(name, str):
            # left in place so validation reports it
            names.append(name)
        elif name.strip():
            names.append(name.strip())
    return names


class BatchBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BatchEnvelope(BatchBaseModel):
    type: str = Field(alias="$type")
    version: str = Field(alias="$version")
    items: list[dict[str, object]] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: object) -> object:
        if isinstance(value, (int, float)):
            return f"{float(value):.1f}"
        return value


class OrganizerRecordModel(BatchBaseModel):
    id: str | None = None
    name: str

    _normalize_id = field_validator("id", mode="before")(_blank_to_none)

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped


class ToolRecordModel(OrganizerRecordModel):
    households: list[str] = Field(default_factory=list)

    _normalize_households = field_validator("households", mode="before")(_name_list)


class FoodRecordModel(OrganizerRecordModel):
    plural_name: str | None = Field(default=None, alias="pluralName")
    description: str | None = None
    aliases: list[str] = Field(default_factory=list)
    label: str | None = None
    households: list[str] = Field(default_factory=list)

    _normalize_optional = field_validator("plural_name", "description", mode="before")(
        _blank_to_none
    )
    _normalize_names = field_validator("aliases", "households", mode="before")(_name_list)

    @field_validator("label", mode="before")
    @classmethod
    def _label_name(cls, value: object) -> object:
        return _blank_to_none(_name_of(value))


class UnitRecordModel(OrganizerRecordModel):
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
    _normalize_names = field_validator("aliases", mode="before")(_name_list)


type RecordModel = FoodRecordModel | UnitRecordModel | ToolRecordModel | OrganizerRecordModel
