"""SQLAlchemy ORM schema for agentstage.

Defines the persistence tables: loop_sessions, edit_ledgers,
loop_events, _agentstage_meta. Domain state is stored as JSON produced
by the models' own ``to_json()`` methods.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all agentstage ORM models."""

    pass


class LoopSessionRow(Base):
    """A persisted LoopSession, one row per session."""

    __tablename__ = "loop_sessions"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    task_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    step_id: Mapped[str] = mapped_column(String(64), nullable=False)
    stop_reason: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    state_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class EditLedgerRow(Base):
    """A persisted EditAttemptLedger, one row per step."""

    __tablename__ = "edit_ledgers"

    step_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    state_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class LoopEventRow(Base):
    """An append-only loop event (tool call, pause, diff proposal...)."""

    __tablename__ = "loop_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    task_id: Mapped[str] = mapped_column(String(64), nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    payload_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    parent_event_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("ix_loop_events_task_type", "task_id", "event_type"),)


class AgentStageMetaRow(Base):
    """Key-value metadata (schema version)."""

    __tablename__ = "_agentstage_meta"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
