"""Service settings for demonlist-audit.

Settings use the DEMONLIST_AUDIT_ prefix and cover:
- Primary database connection (entities and both audit logs live together,
  so an update and its audit entry commit atomically)
- Isolation level for reconstruction reads
- Logging
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for demonlist-audit.

    Environment variable prefix: DEMONLIST_AUDIT_
    """

    service_name: str = "demonlist-audit"

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------

    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/demonlist",
        description="SQLAlchemy async URL for the database holding entities and audit logs.",
    )
    db_pool_size: int = Field(
        default=5,
        description="Connection pool size.",
    )
    db_max_overflow: int = Field(
        default=2,
        description="Max overflow connections above db_pool_size.",
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection before raising an error.",
    )
    db_echo: bool = Field(
        default=False,
        description="Echo SQL statements. Leave off in production, statements carry audit values.",
    )

    # -------------------------------------------------------------------------
    # Time machine
    # -------------------------------------------------------------------------

    reconstruction_isolation_level: Literal["REPEATABLE READ", "SERIALIZABLE"] = Field(
        default="REPEATABLE READ",
        description="Isolation level for reconstruction reads. Both give a consistent snapshot "
        "of entities and audit logs.",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    log_level: str = Field(default="INFO", description="Minimum log level.")
    log_json: bool = Field(default=True, description="Render logs as JSON lines.")

    model_config = SettingsConfigDict(env_prefix="DEMONLIST_AUDIT_")
