"""Shared fixtures backed by an in-memory SQLite database."""

from __future__ import annotations

from typing import Iterator

import pytest
from seed import SeededTree, seed_tree
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from docvault.config import DatabaseSettings
from docvault.events import RecordingEventSink
from docvault.store import (
    DocumentStore,
    UserStore,
    create_engine_from_settings,
    init_schema,
    session_factory,
)


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine_from_settings(DatabaseSettings(url="sqlite://"))
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def sessions(engine: Engine) -> sessionmaker[Session]:
    return session_factory(engine)


@pytest.fixture()
def events() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture()
def store(sessions: sessionmaker[Session], events: RecordingEventSink) -> DocumentStore:
    return DocumentStore(sessions, events=events)


@pytest.fixture()
def users(sessions: sessionmaker[Session]) -> UserStore:
    return UserStore(sessions)


@pytest.fixture()
def seeded(sessions: sessionmaker[Session]) -> SeededTree:
    return seed_tree(sessions)
