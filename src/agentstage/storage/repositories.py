"""Abstract repository interfaces for agentstage storage.

No SQLAlchemy imports here -- pure abstract contracts.
Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from agentstage.storage.schema import EditLedgerRow, LoopEventRow, LoopSessionRow


class LoopSessionRepository(ABC):
    """Abstract interface for loop session storage."""

    @abstractmethod
    def get(self, session_id: str) -> LoopSessionRow | None:
        """Get a session row by id. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, row: LoopSessionRow) -> None:
        """Insert or replace a session row."""
        ...

    @abstractmethod
    def list_for_task(self, task_id: str) -> Sequence[LoopSessionRow]:
        """All sessions for a task, oldest first."""
        ...

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        """Delete a session row. Returns True if a row was removed."""
        ...


class LedgerRepository(ABC):
    """Abstract interface for edit ledger storage."""

    @abstractmethod
    def get(self, step_id: str) -> EditLedgerRow | None:
        ...

    @abstractmethod
    def save(self, row: EditLedgerRow) -> None:
        ...

    @abstractmethod
    def delete(self, step_id: str) -> bool:
        ...


class EventRepository(ABC):
    """Abstract interface for the append-only event log."""

    @abstractmethod
    def append(self, row: LoopEventRow) -> None:
        """Append an event row."""
        ...

    @abstractmethod
    def list_for_task(
        self, task_id: str, *, event_type: str | None = None
    ) -> Sequence[LoopEventRow]:
        """Events for a task in insertion order, optionally filtered by type."""
        ...
