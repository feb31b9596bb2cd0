"""Engine and session construction for the row store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docvault.config import DatabaseSettings

from .schema import Base

LOGGER = logging.getLogger(__name__)


def create_engine_from_settings(settings: DatabaseSettings) -> Engine:
    """Build a SQLAlchemy engine for the configured database URL.

    SQLite file paths have ``~`` expanded and their parent directory created.
    In-memory SQLite databases share a single connection so every session
    sees the same data. Foreign keys are enforced on every SQLite connection.

    Args:
        settings: Database settings from the loaded configuration.

    Returns:
        Engine: Engine ready for :func:`init_schema` and :func:`session_factory`.
    """
    url = make_url(settings.url)
    kwargs: dict[str, Any] = {"echo": settings.echo}

    if url.get_backend_name() == "sqlite":
        database = url.database or ""
        if database in ("", ":memory:"):
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            path = Path(database).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            url = url.set(database=str(path))

    engine = create_engine(url, **kwargs)
    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    LOGGER.debug("Created engine for %s", url.render_as_string(hide_password=True))
    return engine


def init_schema(engine: Engine) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(engine)


def session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return the session factory injected into the store components."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


__all__ = ["create_engine_from_settings", "init_schema", "session_factory"]
