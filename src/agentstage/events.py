"""Loop event payloads and the persist-then-fan-out event log.

The agent loop's host publishes an event for every tool call and loop
transition. This module builds the payload shapes external consumers
rely on (``loop_paused``, ``diff_proposed``, ``diff_applied``), reads
correlation ids and file paths back out of arbitrary payloads, and
provides EventLog, which stores an event before notifying anyone.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Iterable, Protocol, Sequence

if TYPE_CHECKING:
    from agentstage.buffer import StagedEditBuffer

logger = logging.getLogger(__name__)

LOOP_PAUSED = "loop_paused"
LOOP_CONTINUED = "loop_continued"
LOOP_COMPLETED = "loop_completed"
TOOL_START = "tool_start"
TOOL_END = "tool_end"
DIFF_PROPOSED = "diff_proposed"
DIFF_APPLIED = "diff_applied"

DEFAULT_SOURCE = "agentic_loop"


@dataclass(frozen=True)
class LoopEvent:
    """A single loop event.

    Attributes:
        event_id: Unique id (uuid4 hex by default).
        task_id: Task the event belongs to.
        type: Event type, e.g. ``"loop_paused"``.
        payload: JSON-safe payload dict.
        timestamp: When the event was created (UTC).
        parent_event_id: Optional causal parent.
    """

    task_id: str
    type: str
    payload: dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    parent_event_id: str | None = None


class EventStore(Protocol):
    """Anything that can durably append a LoopEvent."""

    def append_event(self, event: LoopEvent) -> None:
        ...


EventSubscriber = Callable[[LoopEvent], None]


class EventLog:
    """Persist-then-fan-out event log.

    ``publish()`` hands the event to the store first; subscribers are only
    called once the store accepted it. A store failure propagates and no
    subscriber sees the event. A failing subscriber is logged and skipped
    so the remaining subscribers still run.

    Usage::

        log = EventLog(store)
        log.subscribe(lambda e: print(e.type))
        log.publish("task-1", "loop_paused", payload)
    """

    def __init__(self, store: EventStore | None = None) -> None:
        self._store = store
        self._subscribers: list[EventSubscriber] = []
        self._events: list[LoopEvent] = []

    @property
    def events(self) -> list[LoopEvent]:
        """Events published through this log, in order.

        Only kept in memory when no store is attached; otherwise read them
        back from the store.
        """
        return list(self._events)

    def subscribe(self, subscriber: EventSubscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a callable that unsubscribes it."""
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    def publish(
        self,
        task_id: str,
        event_type: str,
        payload: dict[str, Any],
        *,
        parent_event_id: str | None = None,
    ) -> LoopEvent:
        """Persist an event, then notify every subscriber."""
        event = LoopEvent(
            task_id=task_id,
            type=event_type,
            payload=payload,
            parent_event_id=parent_event_id,
        )
        if self._store is not None:
            self._store.append_event(event)
        else:
            self._events.append(event)

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.warning(
                    "Event subscriber failed for %s (%s)",
                    event.type,
                    event.event_id,
                    exc_info=True,
                )
        return event


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def _line_count(content: str | None) -> int:
    return len(content.split("\n")) if content else 0


def build_files_changed(
    buffer: StagedEditBuffer,
    *,
    original_content: dict[str, str | None] | None = None,
) -> list[dict[str, Any]]:
    """Per-file ``{path, action, lines, additions, deletions}`` rows from a buffer.

    Line deltas are coarse (line counts, not a real diff). When the
    pre-staging content of a path is unknown it counts as empty.
    """
    originals = original_content or {}
    rows: list[dict[str, Any]] = []
    for f in buffer.get_all():
        before = _line_count(originals.get(f.path))
        after = 0 if f.is_deleted else _line_count(f.content)
        if f.is_deleted:
            additions, deletions = 0, before
        elif f.is_new:
            additions, deletions = after, 0
        else:
            additions, deletions = max(0, after - before), max(0, before - after)
        rows.append(
            {
                "path": f.path,
                "action": f.action,
                "lines": after,
                "additions": additions,
                "deletions": deletions,
            }
        )
    return rows


def build_diff_proposed_payload(
    *,
    diff_id: str,
    step_id: str,
    session_id: str,
    files_changed: Sequence[dict[str, Any]],
    source: str = DEFAULT_SOURCE,
) -> dict[str, Any]:
    """Build the ``diff_proposed`` payload.

    ``files_changed`` rows need ``path`` and ``action``; ``lines``,
    ``additions`` and ``deletions`` default to 0.
    """
    return {
        "diff_id": diff_id,
        "step_id": step_id,
        "source": source,
        "session_id": session_id,
        "files_changed": [
            {"path": f["path"], "action": f["action"], "lines": f.get("lines", 0)}
            for f in files_changed
        ],
        "total_additions": sum(f.get("additions", 0) for f in files_changed),
        "total_deletions": sum(f.get("deletions", 0) for f in files_changed),
    }


def build_diff_applied_payload(
    *,
    diff_id: str,
    step_id: str,
    checkpoint_id: str,
    files_changed: Sequence[dict[str, Any]],
    iterations: int,
    tool_calls: int,
    source: str = DEFAULT_SOURCE,
    summary: str | None = None,
) -> dict[str, Any]:
    """Build the ``diff_applied`` payload with per-file addition/deletion stats."""
    files = [
        {
            "path": f["path"],
            "action": f["action"],
            "additions": f.get("additions", 0),
            "deletions": f.get("deletions", 0),
        }
        for f in files_changed
    ]
    return {
        "diff_id": diff_id,
        "step_id": step_id,
        "checkpoint_id": checkpoint_id,
        "source": source,
        "files_changed": files,
        "total_additions": sum(f["additions"] for f in files),
        "total_deletions": sum(f["deletions"] for f in files),
        "iterations": iterations,
        "tool_calls": tool_calls,
        "summary": summary or f"Applied {len(files)} file(s) from AgenticLoop",
    }


# ---------------------------------------------------------------------------
# Payload readers
# ---------------------------------------------------------------------------


def extract_diff_file_paths(payload: dict[str, Any]) -> list[str]:
    """Read file paths from a diff event payload.

    Checks ``files`` (list of str), then ``files_changed`` (str or
    ``{path}`` objects), then ``applied_files`` (list of str).
    """
    files = payload.get("files")
    if isinstance(files, list):
        return [f for f in files if isinstance(f, str)]

    changed = payload.get("files_changed")
    if isinstance(changed, list):
        paths: list[str] = []
        for f in changed:
            if isinstance(f, str):
                paths.append(f)
            elif isinstance(f, dict) and "path" in f:
                paths.append(f["path"])
            else:
                paths.append(str(f))
        return paths

    applied = payload.get("applied_files")
    if isinstance(applied, list):
        return [f for f in applied if isinstance(f, str)]

    return []


def get_diff_correlation_id(payload: dict[str, Any]) -> str | None:
    """Correlation id of a diff event: ``proposal_id`` wins over ``diff_id``."""
    proposal_id = payload.get("proposal_id")
    if isinstance(proposal_id, str):
        return proposal_id
    diff_id = payload.get("diff_id")
    if isinstance(diff_id, str):
        return diff_id
    return None


def filter_events(events: Iterable[LoopEvent], event_type: str) -> list[LoopEvent]:
    return [e for e in events if e.type == event_type]
