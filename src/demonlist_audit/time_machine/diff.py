"""Sparse field-level diffing of tracked entity attributes."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from demonlist_audit.core.schemas import Actor, TrackedEntity
from demonlist_audit.errors import MissingActorError
from demonlist_audit.time_machine.events import ModificationEntry


def compute_diffs(
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    tracked: Iterable[str],
) -> dict[str, Any]:
    """Return the previous value of every tracked attribute that changed.

    Args:
        before: Attribute values immediately before the update.
        after: Attribute values immediately after the update.
        tracked: Attribute names to compare. Others are ignored.

    Returns:
        ``{attribute: before[attribute]}`` for each tracked attribute whose
        value differs. Unchanged attributes are absent.
    """
    return {
        attribute: before.get(attribute)
        for attribute in tracked
        if before.get(attribute) != after.get(attribute)
    }


def build_modification(
    before: TrackedEntity,
    after: TrackedEntity,
    tracked: Iterable[str],
    actor: Actor | None,
    timestamp: datetime,
) -> ModificationEntry:
    """Build the single audit entry for an update of ``before`` into ``after``.

    Raises:
        MissingActorError: If no actor is supplied.
        ValueError: If ``before`` and ``after`` are different entities.
    """
    if actor is None:
        raise MissingActorError("update")
    if before.id != after.id or before.kind != after.kind:
        raise ValueError(
            f"Cannot diff {before.kind.value} {before.id} against {after.kind.value} {after.id}"
        )

    return ModificationEntry(
        kind=after.kind,
        entity_id=after.id,
        actor_id=actor.id,
        timestamp=timestamp,
        diffs=compute_diffs(before.attributes, after.attributes, tracked),
    )
