"""Point-in-time reconstruction for the time machine.

Derives what an ordered attribute (typically a demon's ``position``) looked
like at any past instant from the modification log, the addition log and
current live state. No snapshots are stored.

For each entity the first modification at or after the target time that
carries a non-sentinel previous value of the attribute is the change that
ended the state in force at that time, so its recorded previous value is the
historical value. With no such modification the attribute has not changed
since, and the live value is the historical value. Entities added at or
after the target time are left out.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from demonlist_audit.core.schemas import EntityKind, TrackedEntity, spec_for
from demonlist_audit.observability import get_logger
from demonlist_audit.time_machine.clock import as_naive_utc
from demonlist_audit.time_machine.events import (
    AdditionEntry,
    HistoricalEntry,
    ModificationEntry,
    Movement,
)

if TYPE_CHECKING:
    from demonlist_audit.core.interfaces import IUnitOfWork

logger = get_logger(__name__)


def _order_key(
    row: HistoricalEntry, rank: Callable[[Any], Any] | None = None
) -> tuple[bool, Any, int]:
    # None sorts last, ties go to the lower id
    value = row.historical_value
    if value is None:
        return (True, 0, row.entity_id)
    return (False, rank(value) if rank is not None else value, row.entity_id)


def reconstruct(
    entities: Iterable[TrackedEntity],
    modifications: Iterable[ModificationEntry],
    additions: Iterable[AdditionEntry],
    timestamp: datetime,
    attribute: str,
    sentinel: Any | None = None,
    rank: Callable[[Any], Any] | None = None,
) -> list[HistoricalEntry]:
    """Reconstruct the ordering of ``entities`` by ``attribute`` at ``timestamp``.

    Args:
        entities: Entities in their current live state.
        modifications: Modification entries of the same kind. Order does not
            matter, entries with equal timestamps keep their relative order.
        additions: Addition entries of the same kind.
        timestamp: Target instant, naive UTC.
        attribute: The attribute to reconstruct and order by.
        sentinel: Previous value that never counts as historical.
        rank: Maps a value to its sort key, for closed sets whose order is
            not alphabetical.

    Returns:
        HistoricalEntry rows sorted by historical value ascending.
    """
    added_after = {entry.entity_id for entry in additions if entry.timestamp >= timestamp}

    first_change: dict[int, ModificationEntry] = {}
    for entry in sorted(modifications, key=lambda e: e.timestamp):
        if entry.timestamp < timestamp or not entry.carries(attribute, sentinel):
            continue
        first_change.setdefault(entry.entity_id, entry)

    rows: list[HistoricalEntry] = []
    for entity in entities:
        if entity.id in added_after:
            continue
        current = entity.value(attribute)
        change = first_change.get(entity.id)
        historical = change.diffs[attribute] if change is not None else current
        rows.append(
            HistoricalEntry(entity=entity, historical_value=historical, current_value=current)
        )

    rows.sort(key=lambda row: _order_key(row, rank))
    return rows


class ReconstructionEngine:
    """Answers "what did this set of entities look like at time T?".

    Reads happen inside one read-only snapshot of the unit of work, so a
    reconstruction never sees a modification entry without its entity
    mutation or the other way round.

    Args:
        unit_of_work: Storage providing entities and both audit logs.
    """

    def __init__(self, unit_of_work: IUnitOfWork) -> None:
        """Initialize with a unit of work.

        Args:
            unit_of_work: The storage adapter to read from.
        """
        self._uow = unit_of_work

    async def reconstruct_at(
        self,
        kind: EntityKind | str,
        timestamp: datetime,
        attribute: str = "position",
    ) -> list[HistoricalEntry]:
        """Reconstruct the ordering of a kind by ``attribute`` at ``timestamp``.

        Timestamps before any recorded history or in the future are valid.
        The former falls back to live values for entities without later
        changes, the latter returns current live state.

        Args:
            kind: Entity kind to reconstruct.
            timestamp: Target instant. Naive values are taken as UTC.
            attribute: Tracked attribute to reconstruct and order by.

        Returns:
            HistoricalEntry rows sorted by historical value ascending, each
            carrying the entity's current value for comparison.

        Raises:
            UnknownAttributeError: If the attribute is not tracked for kind.
        """
        spec = spec_for(kind)
        spec.require_tracked(attribute)
        sentinel = spec.sentinel_for(attribute)
        target = as_naive_utc(timestamp)

        async with self._uow.snapshot() as tx:
            entities = await tx.list_entities(spec.kind)
            modifications = await tx.modifications(
                spec.kind, attribute=attribute, since=target, sentinel=sentinel
            )
            additions = await tx.additions(spec.kind, since=target)

        rows = reconstruct(
            entities,
            modifications,
            additions,
            target,
            attribute,
            sentinel,
            rank=spec.rank_for(attribute),
        )
        logger.debug(
            "Reconstructed historical ordering",
            kind=spec.kind.value,
            attribute=attribute,
            target=target.isoformat(),
            entities=len(rows),
        )
        return rows

    async def query(
        self,
        entity_kind: EntityKind | str,
        timestamp: datetime,
        attribute: str,
    ) -> list[HistoricalEntry]:
        """Alias of reconstruct_at with the attribute given explicitly."""
        return await self.reconstruct_at(entity_kind, timestamp, attribute)

    async def movements(
        self,
        kind: EntityKind | str,
        from_ts: datetime,
        to_ts: datetime,
        attribute: str = "position",
    ) -> dict[str, list[Any]]:
        """Return what changed for ``attribute`` between two instants.

        Args:
            kind: Entity kind to compare.
            from_ts: The earlier instant.
            to_ts: The later instant.
            attribute: Tracked attribute to compare.

        Returns:
            A dict with keys "added" (HistoricalEntry rows present at
            ``to_ts`` only) and "moved" (Movement rows for entities present
            at both instants whose value differs), each ordered by the value
            at ``to_ts``.

        Raises:
            ValueError: If ``from_ts`` is not earlier than ``to_ts``.
        """
        if as_naive_utc(from_ts) >= as_naive_utc(to_ts):
            raise ValueError("from_ts must be earlier than to_ts")

        before = {row.entity_id: row for row in await self.reconstruct_at(kind, from_ts, attribute)}
        after = await self.reconstruct_at(kind, to_ts, attribute)

        added: list[HistoricalEntry] = []
        moved: list[Movement] = []
        for row in after:
            previous = before.get(row.entity_id)
            if previous is None:
                added.append(row)
            elif previous.historical_value != row.historical_value:
                moved.append(
                    Movement(
                        entity=row.entity,
                        from_value=previous.historical_value,
                        to_value=row.historical_value,
                    )
                )

        return {"added": added, "moved": moved}
