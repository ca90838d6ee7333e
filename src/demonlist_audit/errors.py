"""Exception hierarchy for demonlist-audit.

All errors raised by the service and adapter layers derive from
DemonlistAuditError so callers can catch the whole family at one seam.
"""

from __future__ import annotations

from typing import Any


class DemonlistAuditError(Exception):
    """Base class for all demonlist-audit errors."""


class MissingActorError(DemonlistAuditError):
    """A tracked write was attempted without an attributable actor.

    The whole transaction is aborted; no unattributed audit entry is ever
    written.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Tracked {operation} requires an actor, none was supplied")


class UnknownEntityError(DemonlistAuditError):
    """A write or log entry referenced an entity id that does not exist."""

    def __init__(self, kind: str, entity_id: int) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} not found")


class UnknownAttributeError(DemonlistAuditError):
    """An attribute name is not tracked for the given entity kind."""

    def __init__(self, kind: str, attribute: str) -> None:
        self.kind = kind
        self.attribute = attribute
        super().__init__(f"'{attribute}' is not a tracked attribute of {kind}")


class ConstraintViolationError(DemonlistAuditError):
    """An incoming attribute value violates its range or enumeration constraint.

    Raised before any diff is computed.

    Args:
        kind: The entity kind whose schema rejected the values.
        errors: Structured error list as produced by pydantic.
    """

    def __init__(self, kind: str, errors: list[dict[str, Any]]) -> None:
        self.kind = kind
        self.errors = errors
        fields = ", ".join(".".join(str(part) for part in err.get("loc", ())) for err in errors)
        super().__init__(f"Invalid {kind} attributes: {fields or 'unknown field'}")


class DatabaseNotInitializedError(DemonlistAuditError, RuntimeError):
    """The SQL backend was used before init_database() was called."""

    def __init__(self) -> None:
        super().__init__(
            "Database has not been initialized. "
            "Call init_database() (or enter main.lifespan()) first."
        )
