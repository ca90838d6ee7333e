"""Tests for the append-only ModificationLog and AdditionLog."""

from datetime import datetime, timedelta

from demonlist_audit.core.schemas import EntityKind
from demonlist_audit.time_machine.event_store import AdditionLog, ModificationLog
from demonlist_audit.time_machine.events import AdditionEntry, ModificationEntry

T = datetime(2024, 1, 1)


def make_modification(
    entity_id: int = 1,
    minutes: int = 0,
    diffs: dict | None = None,
    kind: EntityKind = EntityKind.DEMON,
    actor_id: int = 1,
) -> ModificationEntry:
    """Build a ModificationEntry ``minutes`` after T."""
    return ModificationEntry(
        kind=kind,
        entity_id=entity_id,
        actor_id=actor_id,
        timestamp=T + timedelta(minutes=minutes),
        diffs=diffs or {},
    )


def make_addition(entity_id: int = 1, minutes: int = 0, kind: EntityKind = EntityKind.DEMON) -> AdditionEntry:
    """Build an AdditionEntry ``minutes`` after T."""
    return AdditionEntry(kind=kind, entity_id=entity_id, actor_id=1, timestamp=T + timedelta(minutes=minutes))


# ---------------------------------------------------------------------------
# ModificationLog
# ---------------------------------------------------------------------------


def test_modification_log_has_no_mutation_methods():
    log = ModificationLog()
    for name in ("update", "delete", "remove", "truncate", "clear"):
        assert not hasattr(log, name)


def test_modification_log_orders_by_timestamp():
    log = ModificationLog()
    log.append(make_modification(minutes=30, entity_id=3))
    log.append(make_modification(minutes=10, entity_id=1))
    log.append(make_modification(minutes=20, entity_id=2))

    assert [e.entity_id for e in log.entries(EntityKind.DEMON)] == [1, 2, 3]


def test_modification_log_keeps_insertion_order_for_equal_timestamps():
    log = ModificationLog()
    log.append(make_modification(minutes=5, diffs={"position": 4}))
    log.append(make_modification(minutes=5, diffs={"position": 2}))

    entries = log.entries(EntityKind.DEMON)
    assert [e.diffs["position"] for e in entries] == [4, 2]


def test_modification_log_since_is_inclusive():
    log = ModificationLog()
    for minutes in (0, 10, 20):
        log.append(make_modification(minutes=minutes))

    result = log.entries(EntityKind.DEMON, since=T + timedelta(minutes=10))
    assert [e.timestamp for e in result] == [T + timedelta(minutes=10), T + timedelta(minutes=20)]


def test_modification_log_filters_entity_and_attribute():
    log = ModificationLog()
    log.append(make_modification(entity_id=1, minutes=1, diffs={"name": "Old"}))
    log.append(make_modification(entity_id=1, minutes=2, diffs={"position": 3}))
    log.append(make_modification(entity_id=2, minutes=3, diffs={"position": 7}))

    result = log.entries(EntityKind.DEMON, entity_id=1, attribute="position")
    assert len(result) == 1
    assert result[0].diffs == {"position": 3}


def test_modification_log_excludes_sentinel_values():
    log = ModificationLog()
    log.append(make_modification(minutes=1, diffs={"position": -1}))
    log.append(make_modification(minutes=2, diffs={"position": 4}))

    result = log.entries(EntityKind.DEMON, attribute="position", sentinel=-1)
    assert [e.diffs["position"] for e in result] == [4]


def test_modification_log_first_change_since():
    log = ModificationLog()
    log.append(make_modification(minutes=1, diffs={"position": 9}))
    log.append(make_modification(minutes=5, diffs={"position": -1}))
    log.append(make_modification(minutes=8, diffs={"position": 6}))

    first = log.first_change_since(EntityKind.DEMON, 1, "position", T + timedelta(minutes=2), sentinel=-1)
    assert first is not None
    assert first.diffs["position"] == 6


def test_modification_log_separates_kinds():
    log = ModificationLog()
    log.append(make_modification(kind=EntityKind.DEMON))
    log.append(make_modification(kind=EntityKind.RECORD))
    log.append(make_modification(kind=EntityKind.RECORD, minutes=1))

    assert log.count(EntityKind.DEMON) == 1
    assert log.count(EntityKind.RECORD) == 2
    assert log.entries(EntityKind.RECORD, entity_id=99) == []


# ---------------------------------------------------------------------------
# AdditionLog
# ---------------------------------------------------------------------------


def test_addition_log_created_at():
    log = AdditionLog()
    log.append(make_addition(entity_id=1, minutes=3))
    log.append(make_addition(entity_id=2, minutes=7))

    assert log.created_at(EntityKind.DEMON, 2) == T + timedelta(minutes=7)
    assert log.created_at(EntityKind.DEMON, 3) is None
    assert log.created_at(EntityKind.RECORD, 1) is None


def test_addition_log_added_since_is_inclusive():
    log = AdditionLog()
    log.append(make_addition(entity_id=1, minutes=5))

    assert log.added_since(EntityKind.DEMON, 1, T + timedelta(minutes=5))
    assert log.added_since(EntityKind.DEMON, 1, T)
    assert not log.added_since(EntityKind.DEMON, 1, T + timedelta(minutes=6))


def test_addition_log_any_readdition_counts():
    log = AdditionLog()
    log.append(make_addition(entity_id=1, minutes=0))
    log.append(make_addition(entity_id=1, minutes=60))

    assert log.created_at(EntityKind.DEMON, 1) == T
    assert log.added_since(EntityKind.DEMON, 1, T + timedelta(minutes=30))
    assert log.count(EntityKind.DEMON) == 2
