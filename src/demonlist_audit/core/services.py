"""Tracked-write service for demonlist entities.

TrackedEntityService is the only way to create or update a tracked entity.
Each write is one explicit composed operation inside a single transaction:

    validate -> read current state -> compute diff -> write entity -> append log entry

If any step raises, the transaction is discarded and neither the entity
mutation nor its audit entry is persisted.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from demonlist_audit.core.schemas import Actor, EntityKind, TrackedEntity, spec_for
from demonlist_audit.errors import MissingActorError, UnknownEntityError
from demonlist_audit.observability import get_logger
from demonlist_audit.time_machine.clock import as_naive_utc, utcnow
from demonlist_audit.time_machine.diff import build_modification
from demonlist_audit.time_machine.events import AdditionEntry, ModificationEntry

if TYPE_CHECKING:
    from demonlist_audit.core.interfaces import IUnitOfWork

logger = get_logger(__name__)


class TrackedEntityService:
    """Creates and updates tracked entities with an attributed audit trail.

    Args:
        unit_of_work: Storage adapter providing atomic transactions.
        clock: Returns the current time. Defaults to UTC wall clock.
    """

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize with a unit of work and an optional clock.

        Args:
            unit_of_work: Storage adapter providing atomic transactions.
            clock: Callable returning the current time.
        """
        self._uow = unit_of_work
        self._clock = clock

    def _now(self) -> datetime:
        return as_naive_utc(self._clock())

    async def create(
        self,
        kind: EntityKind | str,
        attributes: dict[str, Any],
        actor: Actor | None,
    ) -> TrackedEntity:
        """Create an entity and record its addition.

        Args:
            kind: Kind of entity to create.
            attributes: Full attribute set for the new entity.
            actor: The user the creation is attributed to.

        Returns:
            The created TrackedEntity with its assigned id.

        Raises:
            MissingActorError: If no actor is supplied.
            ConstraintViolationError: If attributes fail schema validation.
        """
        if actor is None:
            raise MissingActorError("create")
        spec = spec_for(kind)
        validated = spec.validate(attributes)

        async with self._uow.transaction() as tx:
            entity = await tx.insert_entity(spec.kind, validated)
            await tx.append_addition(
                AdditionEntry(
                    kind=spec.kind,
                    entity_id=entity.id,
                    actor_id=actor.id,
                    timestamp=self._now(),
                )
            )

        logger.info(
            "Tracked entity created",
            kind=spec.kind.value,
            entity_id=entity.id,
            actor_id=actor.id,
        )
        return entity

    async def update(
        self,
        kind: EntityKind | str,
        entity_id: int,
        changes: dict[str, Any],
        actor: Actor | None,
    ) -> TrackedEntity:
        """Apply attribute changes to an entity and append exactly one audit entry.

        The entry is appended even when nothing changed; its diff is then
        empty.

        Args:
            kind: Kind of the entity.
            entity_id: Id of the entity to update.
            changes: Attributes to overwrite. Omitted attributes keep their
                current value.
            actor: The user the update is attributed to.

        Returns:
            The entity in its new state.

        Raises:
            MissingActorError: If no actor is supplied.
            UnknownEntityError: If the entity does not exist.
            ConstraintViolationError: If the merged attributes fail schema
                validation. No audit entry is written.
        """
        if actor is None:
            raise MissingActorError("update")
        spec = spec_for(kind)

        async with self._uow.transaction() as tx:
            before = await tx.get_entity(spec.kind, entity_id, for_update=True)
            if before is None:
                raise UnknownEntityError(spec.kind.value, entity_id)

            validated = spec.validate({**before.attributes, **changes})
            after = before.model_copy(update={"attributes": validated})
            entry = build_modification(before, after, spec.tracked, actor, self._now())

            await tx.save_entity(after)
            await tx.append_modification(entry)

        logger.info(
            "Tracked entity updated",
            kind=spec.kind.value,
            entity_id=entity_id,
            actor_id=actor.id,
            changed=sorted(entry.diffs),
        )
        return after

    async def get(self, kind: EntityKind | str, entity_id: int) -> TrackedEntity:
        """Return the current state of an entity.

        Raises:
            UnknownEntityError: If the entity does not exist.
        """
        spec = spec_for(kind)
        async with self._uow.snapshot() as tx:
            entity = await tx.get_entity(spec.kind, entity_id)
        if entity is None:
            raise UnknownEntityError(spec.kind.value, entity_id)
        return entity

    async def audit_trail(
        self,
        kind: EntityKind | str,
        entity_id: int,
    ) -> list[ModificationEntry]:
        """Return every modification of an entity, oldest first."""
        spec = spec_for(kind)
        async with self._uow.snapshot() as tx:
            return await tx.modifications(spec.kind, entity_id=entity_id)
