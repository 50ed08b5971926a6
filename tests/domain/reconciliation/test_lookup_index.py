from __future__ import annotations

import logging

import pytest

from larder.domain.errors import IndexConsistencyError
from larder.domain.model import EntityKind
from larder.domain.reconciliation.index import SIMULATED_ID_PREFIX, LookupIndex
from tests.helpers.records import make_entity, make_record


def test_build_registers_all_key_spaces() -> None:
    potato = make_entity("Potato", entity_id="f1", plural_name="Potatoes", aliases=["Spud"])
    index = LookupIndex.build(EntityKind.FOOD, [potato])

    assert index.get_id("f1") is potato
    assert index.get_name(" potato ") is potato
    assert index.get_name("POTATOES") is potato
    assert index.get_alias("spud") is potato
    assert index.get_alias("potato") is None


def test_blank_keys_are_never_registered() -> None:
    index = LookupIndex.build(EntityKind.FOOD, [make_entity("Salt", aliases=["  "])])

    assert index.by_alias == {}
    assert index.get_name("") is None
    assert index.get_id(None) is None


def test_primary_names_win_over_plural_names() -> None:
    first = make_entity("Leaves", entity_id="f1", plural_name="Greens")
    second = make_entity("Greens", entity_id="f2")

    index = LookupIndex.build(EntityKind.FOOD, [first, second])

    assert index.get_name("greens") is second
    assert [collision.dropped.id for collision in index.collisions] == ["f1"]


def test_first_writer_wins_and_logs_collision(caplog: pytest.LogCaptureFixture) -> None:
    first = make_entity("Onion", entity_id="f1", aliases=["allium"])
    second = make_entity("Shallot", entity_id="f2", aliases=["Allium"])

    with caplog.at_level(logging.WARNING):
        index = LookupIndex.build(EntityKind.FOOD, [first, second])

    assert index.get_alias("allium") is first
    assert len(index.collisions) == 1
    collision = index.collisions[0]
    assert (collision.key, collision.space) == ("allium", "alias")
    assert collision.kept is first
    assert collision.dropped is second
    assert "Ambiguous" in caplog.text


def test_strict_index_raises_on_collision() -> None:
    first = make_entity("Onion", entity_id="f1")
    second = make_entity("onion", entity_id="f2")

    with pytest.raises(IndexConsistencyError, match="onion"):
        LookupIndex.build(EntityKind.FOOD, [first, second], strict=True)


def test_unit_abbreviations_share_the_name_space() -> None:
    gram = make_entity(
        "gram",
        kind=EntityKind.UNIT,
        plural_name="grams",
        abbreviation="g",
        plural_abbreviation="gs",
    )
    index = LookupIndex.build(EntityKind.UNIT, [gram])

    assert index.get_name("G") is gram
    assert index.get_name("gs") is gram


def test_abbreviations_are_ignored_for_other_kinds() -> None:
    index = LookupIndex.build(EntityKind.FOOD, [make_entity("Garlic", abbreviation="g")])

    assert index.get_name("g") is None


def test_register_simulated_adds_pseudo_entity() -> None:
    index = LookupIndex.build(EntityKind.FOOD, [])
    record = make_record("Kumquat", plural_name="Kumquats", aliases=["Cumquat"])

    entity_id = index.register_simulated(record)

    assert entity_id.startswith(SIMULATED_ID_PREFIX)
    entity = index.get_id(entity_id)
    assert entity is not None
    assert entity.simulated
    assert index.get_name("kumquats") is entity
    assert index.get_alias("cumquat") is entity
    assert index.existing_entities() == []


def test_add_makes_created_entity_matchable() -> None:
    index = LookupIndex.build(EntityKind.TAG, [])
    created = make_entity("Dinner", kind=EntityKind.TAG, entity_id="t9")

    index.add(created)

    assert index.get_name("dinner") is created
    assert index.existing_entities() == [created]
