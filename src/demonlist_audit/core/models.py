"""SQLAlchemy ORM models for demonlist-audit.

Live entities and both audit logs share one database so an entity mutation
and its audit entry commit in the same transaction.

Models:
- Demon               — ranked demon, live state
- Record              — player progress record, live state
- DemonModification   — append-only sparse diff log for demons
- RecordModification  — append-only sparse diff log for records
- DemonAddition       — append-only creation log for demons
- RecordAddition      — append-only creation log for records

Modification rows store their diff as a JSONB object mapping each changed
attribute to its previous value. A key that is absent means "unchanged".

Timestamps are TIMESTAMP WITHOUT TIME ZONE holding UTC.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, SmallInteger, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from demonlist_audit.core.schemas import Difficulty, EntityKind, RecordStatus


def _enum_values(enum: type) -> list[str]:
    return [member.value for member in enum]


class Base(DeclarativeBase):
    """Declarative base for all demonlist-audit tables."""


class Demon(Base):
    """A demon on the list. ``position`` is -1 while unranked."""

    __tablename__ = "demons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    position: Mapped[int] = mapped_column(SmallInteger, nullable=False, index=True)
    requirement: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    video: Mapped[str | None] = mapped_column(String(200), nullable=True)
    thumbnail: Mapped[str] = mapped_column(Text, nullable=False, default="")
    verifier: Mapped[int] = mapped_column(Integer, nullable=False)
    publisher: Mapped[int] = mapped_column(Integer, nullable=False)
    level_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    difficulty: Mapped[Difficulty] = mapped_column(
        SAEnum(Difficulty, name="level_difficulty", values_callable=_enum_values),
        nullable=False,
        comment="Declaration order is tier order, hardest first",
    )


class Record(Base):
    """A player's progress record on a demon."""

    __tablename__ = "records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    progress: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    video: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[RecordStatus] = mapped_column(
        SAEnum(RecordStatus, name="record_status", values_callable=_enum_values),
        nullable=False,
        default=RecordStatus.SUBMITTED,
    )
    player: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    demon: Mapped[int] = mapped_column(Integer, ForeignKey("demons.id"), nullable=False, index=True)
    enjoyment: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)


class DemonModification(Base):
    """One row per demon update. Never updated or deleted."""

    __tablename__ = "demon_modifications"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_id: Mapped[int] = mapped_column(Integer, ForeignKey("demons.id"), nullable=False, index=True)
    actor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, index=True)
    diffs: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)


class RecordModification(Base):
    """One row per record update. Never updated or deleted."""

    __tablename__ = "record_modifications"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_id: Mapped[int] = mapped_column(Integer, ForeignKey("records.id"), nullable=False, index=True)
    actor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, index=True)
    diffs: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)


class DemonAddition(Base):
    """Creation event of a demon."""

    __tablename__ = "demon_additions"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_id: Mapped[int] = mapped_column(Integer, ForeignKey("demons.id"), nullable=False, index=True)
    actor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, index=True)


class RecordAddition(Base):
    """Creation event of a record."""

    __tablename__ = "record_additions"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_id: Mapped[int] = mapped_column(Integer, ForeignKey("records.id"), nullable=False, index=True)
    actor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, index=True)


# { kind: (live table, modification log, addition log) }
KIND_TABLES: dict[EntityKind, tuple[type[Base], type[Base], type[Base]]] = {
    EntityKind.DEMON: (Demon, DemonModification, DemonAddition),
    EntityKind.RECORD: (Record, RecordModification, RecordAddition),
}
