"""Abstract interfaces (Protocol classes) for demonlist-audit.

Services and the time machine depend on these protocols, never on a
concrete storage adapter. Two adapters implement them:
- adapters/memory.py        — in-memory, used in tests and tooling
- adapters/repositories.py  — SQLAlchemy over PostgreSQL

Protocols defined:
- IHistoryTransaction
- IUnitOfWork
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Protocol

from demonlist_audit.core.schemas import EntityKind, TrackedEntity
from demonlist_audit.time_machine.events import AdditionEntry, ModificationEntry


class IHistoryTransaction(Protocol):
    """Operations available inside one atomic unit of work.

    Either every write made through a transaction becomes visible, or none
    does. Write methods raise on read-only (snapshot) transactions.
    """

    async def get_entity(
        self,
        kind: EntityKind,
        entity_id: int,
        for_update: bool = False,
    ) -> TrackedEntity | None:
        """Return the entity with the given id, or None if it does not exist.

        With ``for_update`` the entity stays locked against other writers
        until the transaction ends, so a read-modify-write sees the value
        immediately before its own change.
        """
        ...

    async def list_entities(self, kind: EntityKind) -> list[TrackedEntity]:
        """Return every live entity of a kind, ordered by id."""
        ...

    async def insert_entity(self, kind: EntityKind, attributes: dict[str, Any]) -> TrackedEntity:
        """Insert a new entity and return it with its assigned id."""
        ...

    async def save_entity(self, entity: TrackedEntity) -> None:
        """Overwrite the attributes of an existing entity.

        Raises:
            UnknownEntityError: If the entity does not exist.
        """
        ...

    async def append_modification(self, entry: ModificationEntry) -> None:
        """Append an entry to the modification log.

        Raises:
            UnknownEntityError: If the entry references a missing entity.
        """
        ...

    async def append_addition(self, entry: AdditionEntry) -> None:
        """Append an entry to the addition log.

        Raises:
            UnknownEntityError: If the entry references a missing entity.
        """
        ...

    async def modifications(
        self,
        kind: EntityKind,
        entity_id: int | None = None,
        attribute: str | None = None,
        since: datetime | None = None,
        sentinel: Any | None = None,
    ) -> list[ModificationEntry]:
        """Return modification entries, oldest first, with optional filters."""
        ...

    async def additions(
        self,
        kind: EntityKind,
        since: datetime | None = None,
    ) -> list[AdditionEntry]:
        """Return addition entries, oldest first."""
        ...


class IUnitOfWork(Protocol):
    """Factory for atomic write transactions and consistent read snapshots."""

    def transaction(self) -> AbstractAsyncContextManager[IHistoryTransaction]:
        """Open a write transaction. An exception inside discards all writes."""
        ...

    def snapshot(self) -> AbstractAsyncContextManager[IHistoryTransaction]:
        """Open a read-only view of committed state."""
        ...
