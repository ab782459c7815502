"""Engine setup for checkpoint storage.

File-backed SQLite databases run in WAL mode so a host process can read
checkpoints while a loop is writing them. In-memory databases (tests,
throwaway runs) only get the busy timeout.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker

from agentstage.storage.schema import AgentStageMetaRow, Base

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"


def _is_in_memory(engine: Engine) -> bool:
    return engine.url.database in (None, "", ":memory:")


def create_stage_engine(
    db_path: str = ":memory:",
    *,
    url: str | None = None,
) -> Engine:
    """Build the engine a CheckpointStore writes through.

    Args:
        db_path: SQLite file, or ``":memory:"``. Ignored when ``url`` is set.
        url: Any SQLAlchemy URL; SQLite-specific pragmas apply only to SQLite.
    """
    if url is None:
        url = "sqlite://" if db_path == ":memory:" else f"sqlite:///{db_path}"
    engine = create_engine(url, echo=False)
    if engine.dialect.name != "sqlite":
        return engine

    use_wal = not _is_in_memory(engine)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA busy_timeout=5000")
        if use_wal:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    logger.debug("Created checkpoint engine %s (wal=%s)", engine.url, use_wal)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the given engine.

    Uses expire_on_commit=False so loaded rows stay readable after commit.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables and record the schema version."""
    Base.metadata.create_all(engine)

    SessionLocal = create_session_factory(engine)
    with SessionLocal() as session:
        existing = session.execute(
            select(AgentStageMetaRow).where(AgentStageMetaRow.key == "schema_version")
        ).scalar_one_or_none()
        if existing is None:
            session.add(AgentStageMetaRow(key="schema_version", value=SCHEMA_VERSION))
            session.commit()
            logger.debug("Initialized agentstage schema v%s", SCHEMA_VERSION)
