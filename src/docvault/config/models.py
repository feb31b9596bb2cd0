"""Configuration models describing docvault settings."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class DocvaultBaseModel(BaseModel):
    """Shared configuration for docvault Pydantic settings models."""

    model_config = ConfigDict(extra="forbid")


class DatabaseSettings(DocvaultBaseModel):
    """Row store connection options.

    Attributes:
        url: SQLAlchemy database URL. ``~`` inside SQLite file URLs is expanded.
        echo: Whether SQLAlchemy should log every emitted statement.
    """

    url: str = "sqlite:///~/.docvault/docvault.db"
    echo: bool = False


class QuerySettings(DocvaultBaseModel):
    """Listing and pagination defaults.

    Attributes:
        default_limit: Page size used when a caller does not ask for one.
        max_limit: Largest page size a caller may request.
        incomplete_cursor: Policy for cursors missing one of their key parts.
            ``reject`` raises an error, ``restart`` logs a warning and serves
            the first page.
    """

    default_limit: int = Field(default=10, ge=1)
    max_limit: int = Field(default=100, ge=1)
    incomplete_cursor: Literal["reject", "restart"] = "reject"


class DeletionSettings(DocvaultBaseModel):
    """Recursive deletion options.

    Attributes:
        batch_size: Maximum number of ids bound into a single ``IN`` clause.
    """

    batch_size: int = Field(default=500, ge=1)


class LoggingSettings(DocvaultBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; console-only logging when unset.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(DocvaultBaseModel):
    """CLI behavior defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
    """

    quiet_default: bool = False


class DocvaultConfig(DocvaultBaseModel):
    """Top-level configuration struct for docvault.

    Attributes:
        database: Row store settings.
        query: Listing and pagination settings.
        deletion: Recursive deletion settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)
    deletion: DeletionSettings = Field(default_factory=DeletionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "DocvaultBaseModel",
    "DatabaseSettings",
    "QuerySettings",
    "DeletionSettings",
    "LoggingSettings",
    "CLIOptions",
    "DocvaultConfig",
]
