# aptora_extensions/models/database.py
"""Database-related data models."""

from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field


class EncryptMode(str, Enum):
    """Transport encryption selector, passed to asyncpg as ``ssl``."""

    DISABLE = "disable"
    PREFER = "prefer"
    REQUIRE = "require"


class DatabaseTarget(BaseModel):
    """Name and credentials for one database on the shared server."""

    model_config = ConfigDict(frozen=True)

    name: str
    user: str
    password: str = Field(repr=False)


class DatabaseConfig(BaseModel):
    """Connection configuration for both databases.

    Supplied once at startup and never changed afterwards.
    """

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 5432
    encrypt: EncryptMode = EncryptMode.DISABLE
    aptora: DatabaseTarget
    extensions: DatabaseTarget

    pool_min_size: int = 1
    pool_max_size: int = 10
    pool_max_inactive_lifetime: float = 300.0
    connect_timeout: float = 5.0
    retry_interval: float = 30.0

    def dsn(self, target: DatabaseTarget) -> str:
        """Build the connection string for one of the two databases.

        Args:
            target: Either ``self.aptora`` or ``self.extensions``.

        Returns:
            A ``postgresql://`` DSN with credentials percent-encoded.
        """
        return (
            f"postgresql://{quote(target.user, safe='')}:{quote(target.password, safe='')}"
            f"@{self.host}:{self.port}/{quote(target.name, safe='')}"
        )


class HealthStatus(BaseModel):
    """Snapshot of the connection manager's health."""

    model_config = ConfigDict(frozen=True)

    connected: bool = False
    error: str = ""
