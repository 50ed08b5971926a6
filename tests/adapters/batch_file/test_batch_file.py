from __future__ import annotations

import json
from collections.abc import Callable  # noqa: TC003
from pathlib import Path

import pytest

from larder.adapters.batch_file import CURRENT_VERSION, parse_batch, read_batch, write_batch
from larder.domain.errors import BatchValidationError
from larder.domain.model import EntityKind
from tests.helpers.records import make_entity

type WriteBatch = Callable[..., Path]


def test_read_food_batch_flattens_aliases(write_batch_file: WriteBatch) -> None:
    path = write_batch_file(
        [
            {
                "name": " Potato ",
                "pluralName": "Potatoes",
                "aliases": ["Spud", {"name": "Tater"}, {"name": "  "}],
                "label": {"name": "Produce"},
                "households": [{"name": "Home"}],
            },
            {"id": "f2", "name": "Leek", "description": ""},
        ]
    )

    batch = read_batch(path, kind=EntityKind.FOOD)

    assert batch.kind is EntityKind.FOOD
    assert batch.name == str(path)
    potato, leek = batch.records
    assert potato.name == "Potato"
    assert potato.aliases == ("Spud", "Tater")
    assert potato.label == "Produce"
    assert potato.households == ("Home",)
    assert (potato.source, potato.position) == (str(path), 1)
    assert (leek.id, leek.position, leek.description) == ("f2", 2, None)


def test_read_unit_batch(write_batch_file: WriteBatch) -> None:
    path = write_batch_file(
        [{"name": "gram", "abbreviation": "g", "useAbbreviation": True, "aliases": ["gramme"]}],
        kind=EntityKind.UNIT,
    )

    (gram,) = read_batch(path).records

    assert gram.kind is EntityKind.UNIT
    assert gram.abbreviation == "g"
    assert gram.use_abbreviation is True
    assert gram.fraction is None
    assert gram.aliases == ("gramme",)


def test_organizer_records_ignore_food_fields(write_batch_file: WriteBatch) -> None:
    path = write_batch_file([{"name": "Soups", "aliases": ["broths"]}], kind=EntityKind.CATEGORY)

    (soups,) = read_batch(path).records

    assert soups.kind is EntityKind.CATEGORY
    assert soups.aliases == ()


def test_wrong_type_is_rejected(write_batch_file: WriteBatch) -> None:
    path = write_batch_file([{"name": "cup"}], kind=EntityKind.UNIT)

    with pytest.raises(BatchValidationError, match="expected 'Foods'"):
        read_batch(path, kind=EntityKind.FOOD)


def test_unknown_type_is_rejected() -> None:
    raw = {"$type": "Recipes", "$version": "1.0", "items": []}

    with pytest.raises(BatchValidationError, match="Unknown batch type"):
        parse_batch(raw, name="recipes.json")


def test_numeric_version_is_accepted(write_batch_file: WriteBatch) -> None:
    path = write_batch_file([{"name": "Tomato"}], version=1.0)

    assert len(read_batch(path)) == 1


def test_unsupported_version_is_rejected(write_batch_file: WriteBatch) -> None:
    path = write_batch_file([{"name": "Tomato"}], version="2.0")

    with pytest.raises(BatchValidationError, match="unsupported version '2.0'"):
        read_batch(path)


def test_missing_envelope_is_rejected() -> None:
    with pytest.raises(BatchValidationError, match="not a batch file"):
        parse_batch([{"name": "Tomato"}], name="bare.json")


def test_invalid_records_are_reported_together(write_batch_file: WriteBatch) -> None:
    path = write_batch_file([{"name": "ok"}, {"name": "   "}, {"description": "no name"}])

    with pytest.raises(BatchValidationError) as excinfo:
        read_batch(path)

    message = str(excinfo.value)
    assert "#2: name" in message
    assert "name must not be blank" in message
    assert "#3: name" in message


def test_invalid_json_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(BatchValidationError, match="not valid JSON"):
        read_batch(path)


def test_missing_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(BatchValidationError, match="Cannot read"):
        read_batch(tmp_path / "missing.json")


def test_write_batch_produces_readable_envelope(tmp_path: Path) -> None:
    path = tmp_path / "export.json"
    entities = [
        make_entity("tomato", entity_id="f2", aliases=["Love apple"], label="Produce"),
        make_entity("Basil", entity_id="f1", description=""),
    ]

    written = write_batch(path, EntityKind.FOOD, entities)

    document = json.loads(path.read_text(encoding="utf-8"))
    assert written == 2
    assert document["$type"] == "Foods"
    assert document["$version"] == CURRENT_VERSION
    assert document["items"] == [
        {"id": "f1", "name": "Basil"},
        {
            "id": "f2",
            "name": "tomato",
            "label": "Produce",
            "aliases": [{"name": "Love apple"}],
        },
    ]
    reread = read_batch(path, kind=EntityKind.FOOD)
    assert [record.id for record in reread.records] == ["f1", "f2"]
    assert reread.records[1].aliases == ("Love apple",)
