"""Pydantic schemas for tracked demonlist entities.

The schema layer is the boundary where closed-set classifications and value
ranges are enforced. Everything behind it (diffing, audit logs, the time
machine) assumes the values it receives already satisfy these constraints.

Kinds:
- demon   — a ranked level on the list, ordered by ``position``
- record  — a player's progress record on a demon
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from demonlist_audit.errors import ConstraintViolationError, UnknownAttributeError

# Position value of a demon that is unranked or has been removed from the list.
UNRANKED_POSITION = -1


class EntityKind(str, Enum):
    """Kinds of tracked entity."""

    DEMON = "demon"
    RECORD = "record"


class Difficulty(str, Enum):
    """The difficulty tiers a demon can be in, hardest first."""

    SILENT = "silent"
    LEGENDARY = "legendary"
    EXTREME = "extreme"
    MYTHICAL = "mythical"
    INSANE = "insane"
    HARD = "hard"
    MEDIUM = "medium"
    EASY = "easy"
    BEGINNER = "beginner"


class RecordStatus(str, Enum):
    """Review state of a record."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    UNDER_CONSIDERATION = "under_consideration"


def _lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class DemonAttributes(BaseModel):
    """Mutable attributes of a demon.

    Attributes:
        name: Geometry Dash level name. Not required to be unique.
        position: 1-based list position, or -1 when unranked.
        requirement: Minimal progress (percent) for a record to be accepted.
        video: Optional verification video URL.
        thumbnail: Thumbnail URL.
        verifier: Player id of the verifier.
        publisher: Player id of the publisher.
        level_id: Optional in-game level id. Not audited.
        difficulty: Difficulty tier.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    position: int
    requirement: int = Field(..., ge=0, le=100)
    video: str | None = Field(default=None, max_length=200)
    thumbnail: str = ""
    verifier: int
    publisher: int
    level_id: int | None = Field(default=None, ge=1)
    difficulty: Difficulty

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: Any) -> Any:
        return _lower(value)

    @field_validator("position")
    @classmethod
    def check_position(cls, value: int) -> int:
        if value != UNRANKED_POSITION and value < 1:
            raise ValueError(f"position must be {UNRANKED_POSITION} or a positive integer")
        return value


class RecordAttributes(BaseModel):
    """Mutable attributes of a record.

    Attributes:
        progress: Percent progress achieved (0-100).
        video: Optional proof video URL.
        status: Review state.
        player: Player id the record belongs to.
        demon: Demon id the record is on.
        enjoyment: Optional enjoyment rating, 0-10.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    progress: int = Field(..., ge=0, le=100)
    video: str | None = Field(default=None, max_length=200)
    status: RecordStatus = RecordStatus.SUBMITTED
    player: int
    demon: int
    enjoyment: int | None = Field(default=None, ge=0, le=10)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> Any:
        return _lower(value)


@dataclass(frozen=True)
class KindSpec:
    """Registry entry describing how one entity kind is tracked.

    Attributes:
        kind: The entity kind.
        schema: Pydantic model validating the kind's attributes.
        tracked: Attribute names whose changes are written to the audit log.
        sentinels: Per-attribute values that mark "no meaningful value" and
            are never returned as a historical value.
        orderings: Closed-set attributes mapped to their members in rank
            order. These sort by rank, not alphabetically.
    """

    kind: EntityKind
    schema: type[BaseModel]
    tracked: tuple[str, ...]
    sentinels: dict[str, Any]
    orderings: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def sentinel_for(self, attribute: str) -> Any | None:
        return self.sentinels.get(attribute)

    def rank_for(self, attribute: str) -> Callable[[Any], int] | None:
        """Return the rank function of a closed-set attribute, if it has one."""
        members = self.orderings.get(attribute)
        return None if members is None else members.index

    def require_tracked(self, attribute: str) -> None:
        if attribute not in self.tracked:
            raise UnknownAttributeError(self.kind.value, attribute)

    def validate(self, attributes: dict[str, Any]) -> dict[str, Any]:
        """Validate a full attribute set and return its JSON-mode dump.

        Raises:
            ConstraintViolationError: If any value is out of range, of the
                wrong type, or not a member of its closed set.
        """
        try:
            model = self.schema.model_validate(attributes)
        except ValidationError as exc:
            raise ConstraintViolationError(
                self.kind.value, exc.errors(include_url=False, include_input=False)
            ) from exc
        return model.model_dump(mode="json")


KIND_SPECS: dict[EntityKind, KindSpec] = {
    EntityKind.DEMON: KindSpec(
        kind=EntityKind.DEMON,
        schema=DemonAttributes,
        tracked=(
            "name",
            "position",
            "requirement",
            "video",
            "thumbnail",
            "verifier",
            "publisher",
            "difficulty",
        ),
        sentinels={"position": UNRANKED_POSITION},
        orderings={"difficulty": tuple(tier.value for tier in Difficulty)},
    ),
    EntityKind.RECORD: KindSpec(
        kind=EntityKind.RECORD,
        schema=RecordAttributes,
        tracked=("progress", "video", "status", "player", "demon", "enjoyment"),
        sentinels={},
        orderings={"status": tuple(status.value for status in RecordStatus)},
    ),
}


def spec_for(kind: EntityKind | str) -> KindSpec:
    """Return the registry entry for a kind, accepting its string value."""
    return KIND_SPECS[EntityKind(kind)]


class TrackedEntity(BaseModel):
    """An identifiable, mutable entity whose changes are audited.

    ``attributes`` holds the JSON-mode dump of the kind's schema, so enum
    members are stored as their string values.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    kind: EntityKind
    attributes: dict[str, Any]

    def value(self, attribute: str) -> Any:
        return self.attributes.get(attribute)


class Actor(BaseModel):
    """The user a write is attributed to.

    Passed explicitly into every tracked write instead of being read from
    ambient state.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str | None = None
