# aptora_extensions/config.py
"""Configuration management for aptora-extensions."""

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from aptora_extensions.models.database import DatabaseConfig, DatabaseTarget, EncryptMode


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    A local ``.env`` file is picked up for development. When both
    ``../.env`` and ``.env`` exist, values in ``../.env`` win. Real
    environment variables always win over either file.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
        str_strip_whitespace=True,
    )

    # Shared server
    db_host: str = Field(min_length=1)
    db_port: int
    db_encrypt: EncryptMode = EncryptMode.DISABLE

    # Aptora database (read-only)
    aptora_db_name: str = Field(min_length=1)
    aptora_db_user: str = Field(min_length=1)
    aptora_db_password: str = Field(min_length=1)

    # Extensions database (read-write)
    extensions_db_name: str = Field(min_length=1)
    extensions_db_user: str = Field(min_length=1)
    extensions_db_password: str = Field(min_length=1)

    # Connection manager
    retry_interval: float = 30.0
    connect_timeout: float = 5.0
    pool_max_size: int = 10

    # Query configuration
    query_timeout: float = 10.0

    # Frontend
    frontend_dir: str = "built-frontend"
    vite_dev_url: str = "http://localhost:5173"

    def database_config(self) -> DatabaseConfig:
        """Build the immutable connection configuration.

        Returns:
            The configuration consumed by the connection manager.
        """
        return DatabaseConfig(
            host=self.db_host,
            port=self.db_port,
            encrypt=self.db_encrypt,
            aptora=DatabaseTarget(
                name=self.aptora_db_name,
                user=self.aptora_db_user,
                password=self.aptora_db_password,
            ),
            extensions=DatabaseTarget(
                name=self.extensions_db_name,
                user=self.extensions_db_user,
                password=self.extensions_db_password,
            ),
            pool_max_size=self.pool_max_size,
            connect_timeout=self.connect_timeout,
            retry_interval=self.retry_interval,
        )


def missing_settings(error: ValidationError) -> list[str]:
    """List the environment variables a failed settings load was missing.

    Args:
        error: The validation error raised by ``Settings()``.

    Returns:
        Upper-cased variable names, in field order.
    """
    missing = []
    for item in error.errors():
        if not item["loc"]:
            continue
        # A blank non-string value fails parsing rather than length.
        if item["type"] in ("missing", "string_too_short") or item.get("input") == "":
            missing.append(str(item["loc"][0]).upper())
    return missing
