"""In-memory unit of work.

Holds live entities alongside a ModificationLog and an AdditionLog. Writes
made through a transaction are staged and only published when the
transaction exits cleanly, under a lock shared with snapshot readers. A
raised exception discards the staged writes, so no partial audit state is
ever visible.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from demonlist_audit.core.schemas import EntityKind, TrackedEntity
from demonlist_audit.errors import UnknownEntityError
from demonlist_audit.observability import get_logger
from demonlist_audit.time_machine.event_store import AdditionLog, ModificationLog
from demonlist_audit.time_machine.events import AdditionEntry, ModificationEntry

logger = get_logger(__name__)


class InMemoryTransaction:
    """Staging view over an InMemoryUnitOfWork.

    Reads see committed state overlaid with this transaction's own staged
    entity writes. Log queries only see committed entries.
    """

    def __init__(self, store: InMemoryUnitOfWork, read_only: bool = False) -> None:
        self._store = store
        self._read_only = read_only
        self._entities: dict[EntityKind, dict[int, TrackedEntity]] = {}
        self._modifications: list[ModificationEntry] = []
        self._additions: list[AdditionEntry] = []

    def _check_writable(self) -> None:
        if self._read_only:
            raise RuntimeError("Cannot write through a read-only snapshot")

    def _lookup(self, kind: EntityKind, entity_id: int) -> TrackedEntity | None:
        staged = self._entities.get(kind, {})
        if entity_id in staged:
            return staged[entity_id]
        return self._store.entities[kind].get(entity_id)

    def _require(self, kind: EntityKind, entity_id: int) -> None:
        if self._lookup(kind, entity_id) is None:
            raise UnknownEntityError(kind.value, entity_id)

    async def get_entity(
        self,
        kind: EntityKind,
        entity_id: int,
        for_update: bool = False,
    ) -> TrackedEntity | None:
        # Write transactions already hold the store lock
        return self._lookup(kind, entity_id)

    async def list_entities(self, kind: EntityKind) -> list[TrackedEntity]:
        merged = {**self._store.entities[kind], **self._entities.get(kind, {})}
        return [merged[entity_id] for entity_id in sorted(merged)]

    async def insert_entity(self, kind: EntityKind, attributes: dict[str, Any]) -> TrackedEntity:
        self._check_writable()
        entity = TrackedEntity(id=self._store.allocate_id(kind), kind=kind, attributes=attributes)
        self._entities.setdefault(kind, {})[entity.id] = entity
        return entity

    async def save_entity(self, entity: TrackedEntity) -> None:
        self._check_writable()
        self._require(entity.kind, entity.id)
        self._entities.setdefault(entity.kind, {})[entity.id] = entity

    async def append_modification(self, entry: ModificationEntry) -> None:
        self._check_writable()
        self._require(entry.kind, entry.entity_id)
        self._modifications.append(entry)

    async def append_addition(self, entry: AdditionEntry) -> None:
        self._check_writable()
        self._require(entry.kind, entry.entity_id)
        self._additions.append(entry)

    async def modifications(
        self,
        kind: EntityKind,
        entity_id: int | None = None,
        attribute: str | None = None,
        since: datetime | None = None,
        sentinel: Any | None = None,
    ) -> list[ModificationEntry]:
        return self._store.modification_log.entries(kind, entity_id, attribute, since, sentinel)

    async def additions(self, kind: EntityKind, since: datetime | None = None) -> list[AdditionEntry]:
        return self._store.addition_log.entries(kind, since)

    def commit(self) -> None:
        """Publish staged writes to the store. Called by the unit of work only."""
        for kind, entities in self._entities.items():
            self._store.entities[kind].update(entities)
        for modification in self._modifications:
            self._store.modification_log.append(modification)
        for addition in self._additions:
            self._store.addition_log.append(addition)


class InMemoryUnitOfWork:
    """Unit of work over in-process dicts and append-only logs.

    Attributes:
        entities: Committed live state, keyed by kind then id.
        modification_log: Committed modification entries.
        addition_log: Committed addition entries.
    """

    def __init__(self) -> None:
        """Initialize empty live state and logs."""
        self.entities: dict[EntityKind, dict[int, TrackedEntity]] = {kind: {} for kind in EntityKind}
        self.modification_log = ModificationLog()
        self.addition_log = AdditionLog()
        self._next_ids: dict[EntityKind, int] = {kind: 1 for kind in EntityKind}
        self._lock = asyncio.Lock()

    def allocate_id(self, kind: EntityKind) -> int:
        """Reserve the next id for a kind. Ids of rolled back inserts are not reused."""
        entity_id = self._next_ids[kind]
        self._next_ids[kind] = entity_id + 1
        return entity_id

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[InMemoryTransaction, None]:
        """Open a write transaction; staged writes publish only on clean exit."""
        async with self._lock:
            tx = InMemoryTransaction(self)
            try:
                yield tx
            except Exception:
                logger.debug("In-memory transaction rolled back")
                raise
            tx.commit()

    @asynccontextmanager
    async def snapshot(self) -> AsyncGenerator[InMemoryTransaction, None]:
        """Open a read-only view of committed state."""
        async with self._lock:
            yield InMemoryTransaction(self, read_only=True)
