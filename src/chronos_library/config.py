"""Configuration management for the Chronos Library ledger.

Settings are loaded from ``CHRONOS_LIBRARY_*`` environment variables or a
``.env`` file and validated with Pydantic v2. They cover:
1. Server Metadata - name and version announced by the MCP surface
2. Storage - database location and transaction timeout
3. Listings - page size and placeholders for missing joined data
4. Logging and tracing
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerConfig(BaseSettings):
    """Runtime configuration for the ledger and its MCP server."""

    model_config = SettingsConfigDict(
        env_prefix="CHRONOS_LIBRARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="chronos-library",
        description="Server name used in the MCP handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    transport: str = Field(
        default="stdio",
        description="Transport used by the MCP server",
        pattern=r"^stdio$",
    )

    # === Storage ===

    database_path: Path = Field(
        default=Path("data/chronos_library.db"),
        description="SQLite database file path",
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides database_path when set",
    )

    transaction_timeout: float = Field(
        default=5.0,
        description="Seconds a transaction may wait for a lock before failing",
        gt=0,
        le=300,
    )

    # === Listings ===

    page_size: int = Field(
        default=100,
        description="Rows fetched per round trip by lazy listings",
        ge=1,
        le=1000,
    )

    unknown_book_title: str = Field(
        default="Unknown Book",
        description="Placeholder shown when a loan's book cannot be resolved",
    )

    unknown_patron_name: str = Field(
        default="Unknown Patron",
        description="Placeholder shown when a loan's patron cannot be resolved",
    )

    # === Logging and tracing ===

    debug: bool = Field(default=False, description="Enable debug logging")

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    logfire_enabled: bool = Field(
        default=False,
        description="Send operation traces to Logfire",
    )

    logfire_token: str | None = Field(
        default=None,
        description="Logfire write token",
        repr=False,
    )

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Resolve the path and make sure its directory exists."""
        abs_path = v.absolute()
        abs_path.parent.mkdir(parents=True, exist_ok=True)

        if not abs_path.parent.is_dir():
            raise ValueError(f"Database directory {abs_path.parent} is not accessible")

        return abs_path

    @field_validator("unknown_book_title", "unknown_patron_name")
    @classmethod
    def validate_placeholder(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Placeholder text cannot be blank")
        return v

    @property
    def server_info(self) -> dict[str, str]:
        """Server information announced to MCP clients."""
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: LedgerConfig | None = None


def get_config() -> LedgerConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = LedgerConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
