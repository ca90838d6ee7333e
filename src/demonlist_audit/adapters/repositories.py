"""SQLAlchemy unit of work for demonlist-audit.

Each write transaction is a single ``session.begin()`` block. The entity
mutation and its modification or addition row are flushed in it together,
so a failed or cancelled write leaves neither behind. Snapshots run at the
configured isolation level so a reconstruction sees entities and audit logs
as of one consistent point. An update locks the entity row (SELECT ... FOR
UPDATE) before reading it, so concurrent updates of one entity serialize and
each diff holds the value immediately before its own change.

The modification and addition tables are only ever inserted into and
selected from. No method here updates or deletes a log row. Attribute and
sentinel filters on modifications run in SQL against the JSONB diff column.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import literal, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from demonlist_audit.core.models import KIND_TABLES
from demonlist_audit.core.schemas import EntityKind, TrackedEntity, spec_for
from demonlist_audit.errors import UnknownEntityError
from demonlist_audit.observability import get_logger
from demonlist_audit.time_machine.events import AdditionEntry, ModificationEntry

logger = get_logger(__name__)


def _plain(value: Any) -> Any:
    # Enum columns load as members, entities carry their string values
    return value.value if isinstance(value, Enum) else value


def _row_to_entity(kind: EntityKind, row: Any) -> TrackedEntity:
    fields = spec_for(kind).schema.model_fields
    return TrackedEntity(
        id=row.id,
        kind=kind,
        attributes={name: _plain(getattr(row, name)) for name in fields},
    )


class SqlHistoryTransaction:
    """IHistoryTransaction over one SQLAlchemy async session.

    Args:
        session: Session with an open transaction.
        read_only: Reject writes when True.
    """

    def __init__(self, session: AsyncSession, read_only: bool = False) -> None:
        self._session = session
        self._read_only = read_only

    def _check_writable(self) -> None:
        if self._read_only:
            raise RuntimeError("Cannot write through a read-only snapshot")

    async def _require_row(self, kind: EntityKind, entity_id: int) -> Any:
        live, _, _ = KIND_TABLES[kind]
        row = await self._session.get(live, entity_id)
        if row is None:
            raise UnknownEntityError(kind.value, entity_id)
        return row

    async def get_entity(
        self,
        kind: EntityKind,
        entity_id: int,
        for_update: bool = False,
    ) -> TrackedEntity | None:
        live, _, _ = KIND_TABLES[kind]
        if for_update:
            self._check_writable()
            # SELECT ... FOR UPDATE, held until the transaction ends
            row = await self._session.get(live, entity_id, with_for_update=True)
        else:
            row = await self._session.get(live, entity_id)
        return None if row is None else _row_to_entity(kind, row)

    async def list_entities(self, kind: EntityKind) -> list[TrackedEntity]:
        live, _, _ = KIND_TABLES[kind]
        result = await self._session.execute(select(live).order_by(live.id))
        return [_row_to_entity(kind, row) for row in result.scalars().all()]

    async def insert_entity(self, kind: EntityKind, attributes: dict[str, Any]) -> TrackedEntity:
        self._check_writable()
        live, _, _ = KIND_TABLES[kind]
        row = live(**attributes)
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return _row_to_entity(kind, row)

    async def save_entity(self, entity: TrackedEntity) -> None:
        self._check_writable()
        row = await self._require_row(entity.kind, entity.id)
        for name, value in entity.attributes.items():
            setattr(row, name, value)
        await self._session.flush()

    async def append_modification(self, entry: ModificationEntry) -> None:
        self._check_writable()
        await self._require_row(entry.kind, entry.entity_id)
        _, modification, _ = KIND_TABLES[entry.kind]
        self._session.add(
            modification(
                entity_id=entry.entity_id,
                actor_id=entry.actor_id,
                time=entry.timestamp,
                diffs=dict(entry.diffs),
            )
        )
        await self._session.flush()

    async def append_addition(self, entry: AdditionEntry) -> None:
        self._check_writable()
        await self._require_row(entry.kind, entry.entity_id)
        _, _, addition = KIND_TABLES[entry.kind]
        self._session.add(
            addition(
                entity_id=entry.entity_id,
                actor_id=entry.actor_id,
                time=entry.timestamp,
            )
        )
        await self._session.flush()

    async def modifications(
        self,
        kind: EntityKind,
        entity_id: int | None = None,
        attribute: str | None = None,
        since: datetime | None = None,
        sentinel: Any | None = None,
    ) -> list[ModificationEntry]:
        _, modification, _ = KIND_TABLES[kind]
        stmt = select(modification)
        if entity_id is not None:
            stmt = stmt.where(modification.entity_id == entity_id)
        if since is not None:
            stmt = stmt.where(modification.time >= since)
        if attribute is not None:
            stmt = stmt.where(modification.diffs.has_key(attribute))
            if sentinel is not None:
                stmt = stmt.where(modification.diffs[attribute] != literal(sentinel, JSONB))
        stmt = stmt.order_by(modification.time, modification.seq)

        result = await self._session.execute(stmt)
        return [
            ModificationEntry(
                kind=kind,
                entity_id=row.entity_id,
                actor_id=row.actor_id,
                timestamp=row.time,
                diffs=row.diffs or {},
            )
            for row in result.scalars().all()
        ]

    async def additions(self, kind: EntityKind, since: datetime | None = None) -> list[AdditionEntry]:
        _, _, addition = KIND_TABLES[kind]
        stmt = select(addition)
        if since is not None:
            stmt = stmt.where(addition.time >= since)
        stmt = stmt.order_by(addition.time, addition.seq)

        result = await self._session.execute(stmt)
        return [
            AdditionEntry(
                kind=kind,
                entity_id=row.entity_id,
                actor_id=row.actor_id,
                timestamp=row.time,
            )
            for row in result.scalars().all()
        ]


class SqlUnitOfWork:
    """IUnitOfWork backed by an async SQLAlchemy session factory.

    Args:
        session_factory: Factory from adapters.database.get_session_factory().
        isolation_level: Isolation level for snapshot reads.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        isolation_level: str = "REPEATABLE READ",
    ) -> None:
        self._session_factory = session_factory
        self._isolation_level = isolation_level

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[SqlHistoryTransaction, None]:
        """Open a write transaction, committed on clean exit, rolled back otherwise."""
        async with self._session_factory() as session:
            async with session.begin():
                yield SqlHistoryTransaction(session)

    @asynccontextmanager
    async def snapshot(self) -> AsyncGenerator[SqlHistoryTransaction, None]:
        """Open a read-only transaction at the configured isolation level."""
        async with self._session_factory() as session:
            async with session.begin():
                await session.connection(
                    execution_options={"isolation_level": self._isolation_level}
                )
                yield SqlHistoryTransaction(session, read_only=True)
