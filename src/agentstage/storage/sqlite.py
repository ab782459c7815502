"""SQLite implementations of repository interfaces.

All repositories use SQLAlchemy 2.0-style queries (select() + session.execute()).
Each repository takes a Session in its constructor and flushes, never commits;
the caller owns the transaction.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from agentstage.storage.repositories import (
    EventRepository,
    LedgerRepository,
    LoopSessionRepository,
)
from agentstage.storage.schema import EditLedgerRow, LoopEventRow, LoopSessionRow


class SqliteLoopSessionRepository(LoopSessionRepository):
    """SQLite implementation of loop session repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, session_id: str) -> LoopSessionRow | None:
        stmt = select(LoopSessionRow).where(LoopSessionRow.session_id == session_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, row: LoopSessionRow) -> None:
        self._session.merge(row)
        self._session.flush()

    def list_for_task(self, task_id: str) -> Sequence[LoopSessionRow]:
        stmt = (
            select(LoopSessionRow)
            .where(LoopSessionRow.task_id == task_id)
            .order_by(LoopSessionRow.created_at)
        )
        return list(self._session.execute(stmt).scalars().all())

    def delete(self, session_id: str) -> bool:
        row = self.get(session_id)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True


class SqliteLedgerRepository(LedgerRepository):
    """SQLite implementation of edit ledger repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, step_id: str) -> EditLedgerRow | None:
        stmt = select(EditLedgerRow).where(EditLedgerRow.step_id == step_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, row: EditLedgerRow) -> None:
        self._session.merge(row)
        self._session.flush()

    def delete(self, step_id: str) -> bool:
        row = self.get(step_id)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True


class SqliteEventRepository(EventRepository):
    """SQLite implementation of the event log repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def append(self, row: LoopEventRow) -> None:
        self._session.add(row)
        self._session.flush()

    def list_for_task(
        self, task_id: str, *, event_type: str | None = None
    ) -> Sequence[LoopEventRow]:
        stmt = select(LoopEventRow).where(LoopEventRow.task_id == task_id)
        if event_type is not None:
            stmt = stmt.where(LoopEventRow.event_type == event_type)
        stmt = stmt.order_by(LoopEventRow.id)
        return list(self._session.execute(stmt).scalars().all())
