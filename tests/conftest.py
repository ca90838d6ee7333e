"""Test fixtures for demonlist-audit.

Provides:
- actor / other_actor: Fixed Actor identities for attribution assertions
- clock: A controllable clock returning naive UTC datetimes
- uow: A fresh InMemoryUnitOfWork
- service: TrackedEntityService bound to uow and clock
- engine: ReconstructionEngine bound to uow
- make_demon_attributes / make_record_attributes: valid attribute sets
"""

from datetime import datetime, timedelta
from typing import Any

import pytest

from demonlist_audit.adapters.memory import InMemoryUnitOfWork
from demonlist_audit.core.schemas import Actor
from demonlist_audit.core.services import TrackedEntityService
from demonlist_audit.time_machine.reconstructor import ReconstructionEngine

T0 = datetime(2024, 1, 1, 12, 0, 0)
EPSILON = timedelta(seconds=1)


class FakeClock:
    """Clock whose current time is set by the test."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, when: datetime) -> None:
        self.now = when


def make_demon_attributes(**overrides: Any) -> dict[str, Any]:
    """Return a valid demon attribute set with optional overrides."""
    attributes: dict[str, Any] = {
        "name": "Bloodbath",
        "position": 1,
        "requirement": 50,
        "video": "https://www.youtube.com/watch?v=abc",
        "thumbnail": "https://i.ytimg.com/vi/abc/mqdefault.jpg",
        "verifier": 10,
        "publisher": 11,
        "level_id": 10565740,
        "difficulty": "extreme",
    }
    attributes.update(overrides)
    return attributes


def make_record_attributes(**overrides: Any) -> dict[str, Any]:
    """Return a valid record attribute set with optional overrides."""
    attributes: dict[str, Any] = {
        "progress": 60,
        "video": "https://www.youtube.com/watch?v=rec",
        "status": "submitted",
        "player": 42,
        "demon": 1,
        "enjoyment": 7,
    }
    attributes.update(overrides)
    return attributes


@pytest.fixture()
def actor() -> Actor:
    """Return the default acting user."""
    return Actor(id=1, name="list-mod")


@pytest.fixture()
def other_actor() -> Actor:
    """Return a second acting user."""
    return Actor(id=2, name="list-helper")


@pytest.fixture()
def clock() -> FakeClock:
    """Return a clock starting at T0."""
    return FakeClock()


@pytest.fixture()
def uow() -> InMemoryUnitOfWork:
    """Return an empty in-memory unit of work."""
    return InMemoryUnitOfWork()


@pytest.fixture()
def service(uow: InMemoryUnitOfWork, clock: FakeClock) -> TrackedEntityService:
    """Return a TrackedEntityService writing to uow at clock time."""
    return TrackedEntityService(uow, clock=clock)


@pytest.fixture()
def engine(uow: InMemoryUnitOfWork) -> ReconstructionEngine:
    """Return a ReconstructionEngine reading from uow."""
    return ReconstructionEngine(uow)
