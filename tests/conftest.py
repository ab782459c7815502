"""Shared test fixtures for agentstage.

Provides in-memory SQLite engine, session, and store fixtures.
"""

import pytest
from sqlalchemy.orm import sessionmaker

from agentstage.storage import CheckpointStore, create_stage_engine, init_db


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_stage_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sess = SessionLocal()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def store():
    """Fresh in-memory CheckpointStore."""
    with CheckpointStore.open(":memory:") as s:
        yield s


@pytest.fixture
def sample_task_id() -> str:
    return "task-001"
