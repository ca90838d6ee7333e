"""Tests for sparse diff computation and modification entry building."""

from datetime import datetime

import pytest

from demonlist_audit.core.schemas import Actor, EntityKind, TrackedEntity, spec_for
from demonlist_audit.errors import MissingActorError
from demonlist_audit.time_machine.diff import build_modification, compute_diffs
from tests.conftest import make_demon_attributes

DEMON_TRACKED = spec_for(EntityKind.DEMON).tracked


def _demon(entity_id: int = 1, **overrides: object) -> TrackedEntity:
    attributes = spec_for(EntityKind.DEMON).validate(make_demon_attributes(**overrides))
    return TrackedEntity(id=entity_id, kind=EntityKind.DEMON, attributes=attributes)


class TestComputeDiffs:
    """compute_diffs keeps only changed tracked attributes, with old values."""

    def test_records_previous_value_not_new(self) -> None:
        diffs = compute_diffs({"position": 5}, {"position": 3}, ["position"])
        assert diffs == {"position": 5}

    def test_unchanged_attributes_are_absent(self) -> None:
        before = {"position": 5, "name": "Bloodbath"}
        after = {"position": 5, "name": "Bloodlust"}
        assert compute_diffs(before, after, ["position", "name"]) == {"name": "Bloodbath"}

    def test_identical_states_give_empty_diff(self) -> None:
        state = make_demon_attributes()
        assert compute_diffs(state, dict(state), DEMON_TRACKED) == {}

    def test_untracked_attributes_are_ignored(self) -> None:
        before = make_demon_attributes(level_id=1)
        after = make_demon_attributes(level_id=2)
        assert compute_diffs(before, after, DEMON_TRACKED) == {}

    def test_previous_none_is_kept_as_present(self) -> None:
        diffs = compute_diffs({"video": None}, {"video": "https://v"}, ["video"])
        assert "video" in diffs
        assert diffs["video"] is None


class TestBuildModification:
    """build_modification attributes one entry per update to the actor."""

    def test_builds_entry_with_actor_and_timestamp(self) -> None:
        when = datetime(2024, 5, 1)
        entry = build_modification(
            _demon(position=5), _demon(position=3), DEMON_TRACKED, Actor(id=9), when
        )
        assert entry.kind == EntityKind.DEMON
        assert entry.entity_id == 1
        assert entry.actor_id == 9
        assert entry.timestamp == when
        assert entry.diffs == {"position": 5}

    def test_no_change_still_builds_empty_entry(self) -> None:
        entry = build_modification(_demon(), _demon(), DEMON_TRACKED, Actor(id=9), datetime(2024, 5, 1))
        assert entry.diffs == {}

    def test_missing_actor_raises(self) -> None:
        with pytest.raises(MissingActorError):
            build_modification(_demon(), _demon(), DEMON_TRACKED, None, datetime(2024, 5, 1))

    def test_different_entities_raise(self) -> None:
        with pytest.raises(ValueError):
            build_modification(
                _demon(entity_id=1), _demon(entity_id=2), DEMON_TRACKED, Actor(id=9), datetime(2024, 5, 1)
            )

    def test_entry_is_immutable(self) -> None:
        entry = build_modification(_demon(), _demon(position=2), DEMON_TRACKED, Actor(id=9), datetime(2024, 5, 1))
        with pytest.raises(Exception):
            entry.actor_id = 10  # type: ignore[misc]
