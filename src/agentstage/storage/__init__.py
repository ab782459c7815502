"""Storage layer for agentstage: SQLAlchemy schema, engine, and repositories."""

from agentstage.storage.engine import create_session_factory, create_stage_engine, init_db
from agentstage.storage.store import CheckpointStore

__all__ = [
    "CheckpointStore",
    "create_stage_engine",
    "create_session_factory",
    "init_db",
]
