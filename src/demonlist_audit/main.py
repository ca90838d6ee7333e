"""demonlist-audit entry point.

Wires logging, the database engine, the SQL unit of work and the two
services (tracked writes and the time machine) together.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from demonlist_audit.adapters.database import close_database, get_session_factory, init_database
from demonlist_audit.adapters.repositories import SqlUnitOfWork
from demonlist_audit.core.services import TrackedEntityService
from demonlist_audit.observability import configure_logging, get_logger
from demonlist_audit.settings import Settings
from demonlist_audit.time_machine.clock import utcnow
from demonlist_audit.time_machine.reconstructor import ReconstructionEngine

if TYPE_CHECKING:
    from demonlist_audit.core.interfaces import IUnitOfWork

logger = get_logger(__name__)


@dataclass(frozen=True)
class Services:
    """Ready-to-use services sharing one unit of work."""

    entities: TrackedEntityService
    time_machine: ReconstructionEngine


def build_services(unit_of_work: IUnitOfWork, clock: Callable[[], datetime] = utcnow) -> Services:
    return Services(
        entities=TrackedEntityService(unit_of_work, clock=clock),
        time_machine=ReconstructionEngine(unit_of_work),
    )


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncGenerator[Services, None]:
    """Manage startup and shutdown.

    Configures logging and the database engine on entry, disposes the engine
    on exit.

    Args:
        settings: Settings to use. Loaded from the environment when omitted.

    Yields:
        Services bound to the configured database.
    """
    settings = settings or Settings()
    configure_logging(settings)

    logger.info("Initializing database", service=settings.service_name)
    init_database(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        echo=settings.db_echo,
    )
    unit_of_work = SqlUnitOfWork(
        get_session_factory(),
        isolation_level=settings.reconstruction_isolation_level,
    )
    logger.info("Startup complete", service=settings.service_name)

    try:
        yield build_services(unit_of_work)
    finally:
        logger.info("Shutting down", service=settings.service_name)
        await close_database()
