"""Append-only in-memory logs for the time machine.

ModificationLog holds one ModificationEntry per tracked update and
AdditionLog holds one AdditionEntry per entity creation, both keyed by
entity kind and sorted by timestamp. Neither exposes an update or delete
operation.

The SQLAlchemy adapter in adapters/repositories.py is the durable
counterpart. These stores back the in-memory unit of work and keep tests
hermetic.
"""

from __future__ import annotations

import bisect
from datetime import datetime
from typing import Any

from demonlist_audit.core.schemas import EntityKind
from demonlist_audit.time_machine.events import AdditionEntry, ModificationEntry


class ModificationLog:
    """Append-only store of ModificationEntry instances.

    Maintains per-kind entry lists sorted by timestamp. Entries with equal
    timestamps keep their insertion order, so "first at or after T" is
    well defined.
    """

    def __init__(self) -> None:
        """Initialize an empty log."""
        # { kind: list[ModificationEntry] } sorted by timestamp ascending
        self._entries: dict[EntityKind, list[ModificationEntry]] = {}
        # Parallel timestamp lists for bisect operations
        self._timestamps: dict[EntityKind, list[datetime]] = {}

    def append(self, entry: ModificationEntry) -> None:
        """Append an entry, keeping timestamp order.

        Uses bisect_right so an entry never lands before an existing entry
        with the same timestamp.

        Args:
            entry: The immutable ModificationEntry to store.
        """
        kind = entry.kind
        if kind not in self._entries:
            self._entries[kind] = []
            self._timestamps[kind] = []

        index = bisect.bisect_right(self._timestamps[kind], entry.timestamp)
        self._entries[kind].insert(index, entry)
        self._timestamps[kind].insert(index, entry.timestamp)

    def entries(
        self,
        kind: EntityKind,
        entity_id: int | None = None,
        attribute: str | None = None,
        since: datetime | None = None,
        sentinel: Any | None = None,
    ) -> list[ModificationEntry]:
        """Return entries for a kind in timestamp ascending order.

        Args:
            kind: The entity kind to query.
            entity_id: Restrict to one entity. None means kind-wide.
            attribute: Only entries that changed this attribute.
            since: Lower bound timestamp (inclusive).
            sentinel: With ``attribute``, also drop entries whose recorded
                previous value equals this sentinel.

        Returns:
            Matching entries, oldest first.
        """
        if kind not in self._entries:
            return []

        low = 0 if since is None else bisect.bisect_left(self._timestamps[kind], since)
        result = self._entries[kind][low:]

        if entity_id is not None:
            result = [e for e in result if e.entity_id == entity_id]
        if attribute is not None:
            result = [e for e in result if e.carries(attribute, sentinel)]
        return result

    def first_change_since(
        self,
        kind: EntityKind,
        entity_id: int,
        attribute: str,
        since: datetime,
        sentinel: Any | None = None,
    ) -> ModificationEntry | None:
        """Return the earliest entry at or after ``since`` carrying ``attribute``."""
        matches = self.entries(kind, entity_id, attribute, since, sentinel)
        return matches[0] if matches else None

    def count(self, kind: EntityKind) -> int:
        return len(self._entries.get(kind, []))


class AdditionLog:
    """Append-only store of AdditionEntry instances."""

    def __init__(self) -> None:
        """Initialize an empty log."""
        self._entries: dict[EntityKind, list[AdditionEntry]] = {}
        self._timestamps: dict[EntityKind, list[datetime]] = {}

    def append(self, entry: AdditionEntry) -> None:
        """Append an addition entry, keeping timestamp order."""
        kind = entry.kind
        if kind not in self._entries:
            self._entries[kind] = []
            self._timestamps[kind] = []

        index = bisect.bisect_right(self._timestamps[kind], entry.timestamp)
        self._entries[kind].insert(index, entry)
        self._timestamps[kind].insert(index, entry.timestamp)

    def entries(self, kind: EntityKind, since: datetime | None = None) -> list[AdditionEntry]:
        """Return additions for a kind at or after ``since``, oldest first."""
        if kind not in self._entries:
            return []
        low = 0 if since is None else bisect.bisect_left(self._timestamps[kind], since)
        return self._entries[kind][low:]

    def created_at(self, kind: EntityKind, entity_id: int) -> datetime | None:
        """Return when the entity was first created, or None if never."""
        for entry in self._entries.get(kind, []):
            if entry.entity_id == entity_id:
                return entry.timestamp
        return None

    def added_since(self, kind: EntityKind, entity_id: int, cutoff: datetime) -> bool:
        """True if any addition of the entity happened at or after ``cutoff``."""
        return any(e.entity_id == entity_id for e in self.entries(kind, since=cutoff))

    def count(self, kind: EntityKind) -> int:
        return len(self._entries.get(kind, []))
