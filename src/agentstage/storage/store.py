"""CheckpointStore: durable pause/resume state for agent loops.

Converts LoopSession, EditAttemptLedger and LoopEvent to and from ORM
rows and owns the SQLAlchemy session and transaction boundaries. Every
save commits, so a crash after ``save_session()`` returns can always be
resumed from the stored state.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterator

from agentstage.config import StorageConfig
from agentstage.events import LoopEvent
from agentstage.exceptions import LedgerNotFoundError, SessionNotFoundError
from agentstage.ledger import EditAttemptLedger
from agentstage.session.models import LoopSession
from agentstage.storage.engine import create_session_factory, create_stage_engine, init_db
from agentstage.storage.schema import EditLedgerRow, LoopEventRow, LoopSessionRow
from agentstage.storage.sqlite import (
    SqliteEventRepository,
    SqliteLedgerRepository,
    SqliteLoopSessionRepository,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class CheckpointStore:
    """Persistence facade for sessions, ledgers and events.

    Usage::

        store = CheckpointStore.open("checkpoints.db")
        store.save_session(session)
        session = store.load_session(session.session_id)
        store.close()
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session = create_session_factory(engine)()
        self._sessions = SqliteLoopSessionRepository(self._session)
        self._ledgers = SqliteLedgerRepository(self._session)
        self._events = SqliteEventRepository(self._session)

    @classmethod
    def open(
        cls,
        db_path: str = ":memory:",
        *,
        config: StorageConfig | None = None,
    ) -> CheckpointStore:
        """Open (and initialize if needed) a store.

        Args:
            db_path: SQLite file path or ``":memory:"``.
            config: Overrides ``db_path`` when given.
        """
        if config is not None:
            engine = create_stage_engine(config.db_path, url=config.db_url)
        else:
            engine = create_stage_engine(db_path)
        init_db(engine)
        return cls(engine)

    def close(self) -> None:
        self._session.close()
        self._engine.dispose()

    def __enter__(self) -> CheckpointStore:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Commit on success. On failure roll back so the session stays usable."""
        try:
            yield
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    # ------------------------------------------------------------------
    # Loop sessions
    # ------------------------------------------------------------------

    def save_session(self, session: LoopSession) -> None:
        """Insert or replace a session and commit."""
        row = LoopSessionRow(
            session_id=session.session_id,
            task_id=session.task_id,
            step_id=session.step_id,
            stop_reason=session.stop_reason.value if session.stop_reason else None,
            state_json=session.to_json(),
            created_at=session.created_at,
            updated_at=session.updated_at,
        )
        with self._transaction():
            self._sessions.save(row)
        logger.info(
            "Saved loop session %s (iterations=%d, stop=%s)",
            session.session_id,
            session.iteration_count,
            session.stop_reason,
        )

    def load_session(self, session_id: str) -> LoopSession:
        """Load a session.

        Raises:
            SessionNotFoundError: If no session has this id.
        """
        row = self._sessions.get(session_id)
        if row is None:
            raise SessionNotFoundError(session_id)
        return LoopSession.from_json(row.state_json)

    def list_sessions(self, task_id: str) -> list[LoopSession]:
        return [LoopSession.from_json(r.state_json) for r in self._sessions.list_for_task(task_id)]

    def delete_session(self, session_id: str) -> bool:
        with self._transaction():
            deleted = self._sessions.delete(session_id)
        return deleted

    # ------------------------------------------------------------------
    # Edit ledgers
    # ------------------------------------------------------------------

    def save_ledger(self, ledger: EditAttemptLedger) -> None:
        """Insert or replace a ledger and commit."""
        row = EditLedgerRow(
            step_id=ledger.step_id,
            status=ledger.status.value,
            state_json=ledger.to_json(),
            updated_at=datetime.now(timezone.utc),
        )
        with self._transaction():
            self._ledgers.save(row)
        logger.info("Saved edit ledger for step %s (%s)", ledger.step_id, ledger.status.value)

    def load_ledger(self, step_id: str) -> EditAttemptLedger:
        """Load a ledger.

        Raises:
            LedgerNotFoundError: If no ledger exists for the step.
        """
        row = self._ledgers.get(step_id)
        if row is None:
            raise LedgerNotFoundError(step_id)
        return EditAttemptLedger.from_json(row.state_json)

    def delete_ledger(self, step_id: str) -> bool:
        with self._transaction():
            deleted = self._ledgers.delete(step_id)
        return deleted

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def append_event(self, event: LoopEvent) -> None:
        """Append an event and commit (satisfies EventStore)."""
        row = LoopEventRow(
            event_id=event.event_id,
            task_id=event.task_id,
            event_type=event.type,
            payload_json=event.payload,
            parent_event_id=event.parent_event_id,
            created_at=event.timestamp,
        )
        with self._transaction():
            self._events.append(row)

    def list_events(self, task_id: str, *, event_type: str | None = None) -> list[LoopEvent]:
        return [
            LoopEvent(
                event_id=r.event_id,
                task_id=r.task_id,
                type=r.event_type,
                payload=r.payload_json,
                timestamp=r.created_at,
                parent_event_id=r.parent_event_id,
            )
            for r in self._events.list_for_task(task_id, event_type=event_type)
        ]
