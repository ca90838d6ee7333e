"""Audit log entry schemas for the time machine.

Every tracked update produces exactly one immutable ModificationEntry and
every entity creation produces one AdditionEntry. Reconstruction results are
returned as HistoricalEntry rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from demonlist_audit.core.schemas import EntityKind, TrackedEntity


class ModificationEntry(BaseModel):
    """Sparse record of one update to a tracked entity.

    ``diffs`` only holds attributes that changed. The presence of a key is
    the "changed" tag, and its value is the attribute's value *before* the
    update (which may itself be None). An update that changed nothing still
    produces an entry with empty ``diffs``.

    Attributes:
        kind: Kind of the modified entity.
        entity_id: Id of the modified entity.
        actor_id: Id of the user the update is attributed to.
        timestamp: Naive UTC time of the update.
        diffs: Mapping of changed attribute name to its previous value.
    """

    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    entity_id: int
    actor_id: int
    timestamp: datetime
    diffs: dict[str, Any] = Field(default_factory=dict)

    def changed(self, attribute: str) -> bool:
        return attribute in self.diffs

    def carries(self, attribute: str, sentinel: Any | None = None) -> bool:
        """True if this entry records a usable previous value for attribute.

        Values equal to ``sentinel`` do not count.
        """
        if not self.changed(attribute):
            return False
        return sentinel is None or self.diffs[attribute] != sentinel


class AdditionEntry(BaseModel):
    """Record of an entity's creation. Written once, never mutated."""

    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    entity_id: int
    actor_id: int
    timestamp: datetime


class HistoricalEntry(BaseModel):
    """One row of a reconstructed ordering.

    Attributes:
        entity: The entity in its current live state.
        historical_value: Value of the queried attribute at the target time.
        current_value: Current live value of the queried attribute.
    """

    model_config = ConfigDict(frozen=True)

    entity: TrackedEntity
    historical_value: Any
    current_value: Any

    @property
    def entity_id(self) -> int:
        return self.entity.id

    @property
    def changed_since(self) -> bool:
        return self.historical_value != self.current_value


class Movement(BaseModel):
    """An entity whose reconstructed value differs between two instants."""

    model_config = ConfigDict(frozen=True)

    entity: TrackedEntity
    from_value: Any
    to_value: Any
