from __future__ import annotations

from dataclasses import replace

import pytest

from larder.domain.errors import BatchConflictError, StoreError
from larder.domain.model import AliasMode, Entity, EntityKind, ImportRecord, RunMode
from larder.domain.reconciliation import (
    MatchMethod,
    ReconcileOptions,
    ReconciliationEngine,
    RecordState,
    UsageGuard,
    find_orphans,
)
from larder.domain.reconciliation.match import MatchRegistry
from tests.helpers.records import make_batch, make_entity, make_record
from tests.support.fake_store import FakeStore


def _engine(
    store: FakeStore,
    *,
    kind: EntityKind = EntityKind.FOOD,
    fail_open: bool = True,
    **options: object,
) -> ReconciliationEngine:
    return ReconciliationEngine(
        store=store,
        kind=kind,
        options=ReconcileOptions(**options),  # type: ignore[arg-type]
        guard=UsageGuard(store, kind, fail_open=fail_open),
    )


def test_creates_missing_entity() -> None:
    store = FakeStore()

    result = _engine(store).run([make_batch(make_record("kumquat"))])

    assert (result.stats.created, result.stats.updated, result.stats.conflicts) == (1, 0, 0)
    assert store.by_name("kumquat").id == result.outcomes[0].entity_id


def test_update_merges_aliases() -> None:
    store = FakeStore([make_entity("potato", entity_id="f1", aliases=["spud"])])
    batch = make_batch(make_record("potato", aliases=["spuds"]))

    result = _engine(store, update_existing=True).run([batch])

    assert result.stats.updated == 1
    assert set(store.entities["f1"].aliases) == {"spud", "spuds"}
    assert store.mutations == [("update", ("f1", {"aliases": ("spud", "spuds")}))]


def test_replace_mode_drops_existing_aliases() -> None:
    store = FakeStore([make_entity("potato", entity_id="f1", aliases=["spud"])])
    batch = make_batch(make_record("potato", aliases=["tater"]))

    _engine(store, update_existing=True, alias_mode=AliasMode.REPLACE).run([batch])

    assert store.entities["f1"].aliases == ("tater",)


def test_matched_records_are_skipped_without_update_flag() -> None:
    store = FakeStore([make_entity("potato", entity_id="f1")])

    result = _engine(store).run([make_batch(make_record("Potato", description="starchy"))])

    assert result.stats.skipped == 1
    assert store.mutations == []


def test_unchanged_records_issue_no_update() -> None:
    store = FakeStore([make_entity("Potato", entity_id="f1", aliases=["spud"])])

    result = _engine(store, update_existing=True).run(
        [make_batch(make_record("potato", aliases=["SPUD"]))]
    )

    assert result.stats.unchanged == 1
    assert store.mutations == []


def test_within_file_conflict_aborts_before_store_traffic() -> None:
    store = FakeStore()
    batch = make_batch(make_record("tomato"), make_record("Tomato"))

    with pytest.raises(BatchConflictError) as excinfo:
        _engine(store).run([batch])

    assert [conflict.value for conflict in excinfo.value.conflicts] == ["tomato"]
    assert store.calls == []


def test_cross_file_alias_collision_aborts() -> None:
    store = FakeStore()
    first = make_batch(make_record("chives", aliases=["scallion"]), name="one.json")
    second = make_batch(make_record("leek", aliases=["chives"]), name="two.json")

    with pytest.raises(BatchConflictError) as excinfo:
        _engine(store).run([first, second])

    assert [conflict.value for conflict in excinfo.value.conflicts] == ["chives"]
    assert str(excinfo.value.conflicts[0].scope) == "CrossFile"
    assert store.calls == []


def test_mirror_blocks_deletion_of_referenced_orphan() -> None:
    referenced = make_entity("Saffron", entity_id="x")
    store = FakeStore([referenced], usage={"x": 1})

    result = _engine(store, mode=RunMode.MIRROR).run([make_batch(make_record("kumquat"))])

    assert [blocked.entity for blocked in result.orphans.blocked] == [referenced]
    assert (result.stats.deleted, result.stats.blocked) == (0, 1)
    assert "x" in store.entities


def test_mirror_deletes_unreferenced_orphans() -> None:
    store = FakeStore(
        [make_entity("Potato", entity_id="f1"), make_entity("Old", entity_id="f2")]
    )

    result = _engine(store, mode=RunMode.MIRROR).run([make_batch(make_record("potato"))])

    assert result.stats.deleted == 1
    assert [entity.id for entity in result.orphans.deleted] == ["f2"]
    assert set(store.entities) == {"f1"}


def test_mirror_keeps_entities_claimed_through_aliases() -> None:
    store = FakeStore([make_entity("Scallion", entity_id="f1", aliases=["green onion"])])

    result = _engine(store, mode=RunMode.MIRROR).run([make_batch(make_record("Green Onion"))])

    assert result.stats.skipped == 1
    assert result.stats.deleted == 0
    assert "f1" in store.entities


def test_id_wins_over_name() -> None:
    store = FakeStore(
        [make_entity("Tomato", entity_id="f1"), make_entity("Potato", entity_id="f2")]
    )
    batch = make_batch(make_record("Potato", id="f1"))

    result = _engine(store, update_existing=True).run([batch])

    outcome = result.outcomes[0]
    assert outcome.match is not None
    assert outcome.match.method is MatchMethod.ID
    assert outcome.entity_id == "f1"
    assert outcome.changes == {"name": "Potato"}


def test_two_records_claiming_one_entity_conflict() -> None:
    store = FakeStore([make_entity("Potato", entity_id="f1", aliases=["spud"])])
    batch = make_batch(make_record("potato"), make_record("Tater", aliases=["spud"]))

    result = _engine(store, update_existing=True).run([batch])

    assert [outcome.state for outcome in result.outcomes] == [
        RecordState.UNCHANGED,
        RecordState.CONFLICT,
    ]
    assert result.stats.conflicts == 1
    assert store.mutations == []


def test_dry_run_issues_no_mutating_call() -> None:
    store = FakeStore(
        [
            make_entity("Potato", entity_id="f1", aliases=["spud"]),
            make_entity("Old", entity_id="f2"),
            make_entity("Used", entity_id="f3"),
        ],
        usage={"f3": 2},
    )
    batch = make_batch(make_record("Potato", aliases=["spuds"]), make_record("Kumquat"))

    result = _engine(store, mode=RunMode.MIRROR, update_existing=True, dry_run=True).run([batch])

    stats = result.stats
    assert (stats.created, stats.updated, stats.deleted, stats.blocked) == (1, 1, 1, 1)
    assert result.dry_run
    assert store.mutations == []
    assert result.outcomes[1].entity_id is not None
    assert result.outcomes[1].entity_id.startswith("simulated-")


def test_store_error_is_counted_and_run_continues() -> None:
    store = FakeStore(failing_names=["durian"])
    batch = make_batch(make_record("durian"), make_record("kumquat"))

    result = _engine(store).run([batch])

    assert [outcome.state for outcome in result.outcomes] == [
        RecordState.ERROR,
        RecordState.CREATE,
    ]
    assert result.stats.errors == 1
    assert result.partial_failure
    assert "rejected" in (result.outcomes[0].message or "")
    assert store.by_name("kumquat")


def test_failed_delete_counts_as_error() -> None:
    store = FakeStore([make_entity("Durian", entity_id="f1")])
    store.delete = _raise_store_error  # type: ignore[method-assign]

    result = _engine(store, mode=RunMode.MIRROR).run([make_batch(make_record("kumquat"))])

    assert [entity.id for entity in result.orphans.failed] == ["f1"]
    assert result.stats.errors == 1
    assert result.stats.deleted == 0


def test_reimport_of_exported_entities_is_unchanged() -> None:
    store = FakeStore(
        [make_entity("Potato", entity_id="f1", plural_name="Potatoes", aliases=["spud"])]
    )
    exported = make_record("Potato", plural_name="Potatoes", aliases=["spud"])

    result = _engine(store, mode=RunMode.MIRROR, update_existing=True).run(
        [make_batch(exported)]
    )

    assert result.stats.unchanged == 1
    assert store.mutations == []


def test_mirror_requires_a_guard() -> None:
    engine = ReconciliationEngine(
        store=FakeStore(),
        kind=EntityKind.FOOD,
        options=ReconcileOptions(mode=RunMode.MIRROR),
    )

    with pytest.raises(ValueError, match="usage guard"):
        engine.run([make_batch(make_record("kumquat"))])


def test_find_orphans_respects_ids_names_and_claims() -> None:
    by_id = make_entity("Renamed", entity_id="f1")
    by_plural = make_entity("Leaf", entity_id="f2", plural_name="Leaves")
    claimed = make_entity("Scallion", entity_id="f3")
    orphan = make_entity("Old", entity_id="f4")
    records = [make_record("New name", id="f1"), make_record("leaves")]
    registry = MatchRegistry()
    registry.claim("f3", make_record("green onion"))

    orphans = find_orphans([by_id, by_plural, claimed, orphan], records, claimed=registry)

    assert orphans == [orphan]


def _raise_store_error(kind: EntityKind, entity_id: str) -> None:
    raise StoreError(f"cannot delete {entity_id}")


def test_repeated_input_file_aborts_before_store_traffic() -> None:
    store = FakeStore()
    first = make_batch(make_record("kumquat"), name="foods.json")
    second = make_batch(make_record("kumquat"), name="foods.json")

    with pytest.raises(BatchConflictError):
        _engine(store).run([first, second])

    assert store.calls == []


class _AliasLeakingStore(FakeStore):
    """Store that attaches an alias already owned by another entity."""

    def create(self, kind: EntityKind, record: ImportRecord) -> Entity:
        created = super().create(kind, record)
        leaked = replace(created, aliases=("spud",))
        self.entities[leaked.id] = leaked
        return leaked


def test_strict_index_collision_after_create_is_a_record_error() -> None:
    store = _AliasLeakingStore([make_entity("Potato", entity_id="f1", aliases=["spud"])])
    engine = ReconciliationEngine(
        store=store,
        kind=EntityKind.FOOD,
        options=ReconcileOptions(),
        strict_index=True,
    )
    batch = make_batch(make_record("Kumquat"), make_record("Yuzu"))

    result = engine.run([batch])

    assert [outcome.state for outcome in result.outcomes] == [
        RecordState.ERROR,
        RecordState.ERROR,
    ]
    assert result.stats.errors == 2
    assert result.outcomes[0].entity_id == "created-1"
    assert "spud" in (result.outcomes[0].message or "")
    assert [call[1] for call in store.mutations] == ["Kumquat", "Yuzu"]
