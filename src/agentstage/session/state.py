"""Pure state transitions over LoopSession.

No I/O and no hidden state: every function takes a session and either
answers a question about it or returns an updated copy. The host
persists whatever these functions return.

Two "remaining" counts exist on purpose:

- ``remaining_continues`` counts user-triggered resumes left.
- ``remaining_runs`` counts execution bursts left under the iteration
  ceiling, and is what the ``loop_paused`` payload reports.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Sequence

from agentstage.config import LoopConfig
from agentstage.session.models import LoopSession, StopReason

if TYPE_CHECKING:
    from agentstage.buffer import StagedFileSummary
    from agentstage.session.models import RunResult

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_loop_session(
    session_id: str,
    task_id: str,
    step_id: str,
    *,
    max_continues: int | None = None,
    max_iterations_per_run: int | None = None,
    max_total_tokens: int | None = None,
    config: LoopConfig | None = None,
) -> LoopSession:
    """Create a fresh LoopSession.

    Explicit ceilings win, then ``config``, then the LoopConfig defaults.
    Counters start at zero and snapshots at None.
    """
    cfg = config or LoopConfig()
    now = _now()
    return LoopSession(
        session_id=session_id,
        task_id=task_id,
        step_id=step_id,
        max_continues=max_continues if max_continues is not None else cfg.max_continues,
        max_iterations_per_run=(
            max_iterations_per_run
            if max_iterations_per_run is not None
            else cfg.max_iterations_per_run
        ),
        max_total_tokens=(
            max_total_tokens if max_total_tokens is not None else cfg.max_total_tokens
        ),
        created_at=now,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# Budget queries
# ---------------------------------------------------------------------------


def max_total_iterations(session: LoopSession) -> int:
    """Hard iteration ceiling: ``(max_continues + 1) * max_iterations_per_run``."""
    return (session.max_continues + 1) * session.max_iterations_per_run


def is_iteration_budget_exhausted(session: LoopSession) -> bool:
    return session.iteration_count >= max_total_iterations(session)


def is_token_budget_exhausted(session: LoopSession) -> bool:
    return session.total_tokens.total >= session.max_total_tokens


def can_continue(session: LoopSession) -> bool:
    """Whether the host may offer Continue.

    All three must hold: continues left, iterations left, tokens left.
    """
    return (
        session.continue_count < session.max_continues
        and not is_iteration_budget_exhausted(session)
        and not is_token_budget_exhausted(session)
    )


def remaining_continues(session: LoopSession) -> int:
    """User-triggered resumes left."""
    return max(0, session.max_continues - session.continue_count)


def remaining_runs(session: LoopSession) -> int:
    """Execution bursts left before the iteration ceiling."""
    left = max(0, max_total_iterations(session) - session.iteration_count)
    if session.max_iterations_per_run <= 0:
        return 0
    return max(0, math.ceil(left / session.max_iterations_per_run))


def resolve_stop_reason(session: LoopSession, run_stop_reason: StopReason) -> StopReason:
    """Promote a run's stop reason to HARD_LIMIT once a ceiling is hit."""
    if is_iteration_budget_exhausted(session) or is_token_budget_exhausted(session):
        return StopReason.HARD_LIMIT
    return run_stop_reason


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def update_session_after_run(session: LoopSession, result: RunResult) -> LoopSession:
    """Fold one execution burst into the session.

    Counters (iterations, tokens, tool calls) accumulate. The stop
    reason, final text, snapshots and error message are replaced with
    the latest run's values.
    """
    updated = session.model_copy(
        update={
            "iteration_count": session.iteration_count + result.iterations,
            "total_tokens": session.total_tokens + result.total_tokens,
            "stop_reason": StopReason(result.stop_reason),
            "final_text": result.final_text,
            "tool_calls_count": session.tool_calls_count + result.tool_calls_count,
            "staged_snapshot": result.staged_snapshot,
            "conversation_snapshot": result.conversation_snapshot,
            "error_message": result.error_message,
            "updated_at": _now(),
        }
    )
    logger.debug(
        "Session %s after run: iterations=%d tokens=%d stop=%s",
        updated.session_id,
        updated.iteration_count,
        updated.total_tokens.total,
        updated.stop_reason,
    )
    return updated


def increment_continue(session: LoopSession) -> LoopSession:
    """Record a user Continue: bump the count and clear the stop reason."""
    return session.model_copy(
        update={
            "continue_count": session.continue_count + 1,
            "stop_reason": None,
            "updated_at": _now(),
        }
    )


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


def build_loop_paused_payload(
    session: LoopSession,
    staged_summary: Sequence[StagedFileSummary | dict[str, Any]],
) -> dict[str, Any]:
    """Build the ``loop_paused`` event payload."""
    summary = list(staged_summary)
    payload: dict[str, Any] = {
        "session_id": session.session_id,
        "step_id": session.step_id,
        "reason": session.stop_reason.value if session.stop_reason is not None else None,
        "iteration_count": session.iteration_count,
        "continue_count": session.continue_count,
        "max_continues": session.max_continues,
        "max_total_iterations": max_total_iterations(session),
        "can_continue": can_continue(session),
        "remaining_continues": remaining_runs(session),
        "staged_files": summary,
        "staged_files_count": len(summary),
        "total_tokens": {
            "input": session.total_tokens.input,
            "output": session.total_tokens.output,
        },
        "final_text": session.final_text,
        "tool_calls_count": session.tool_calls_count,
    }
    if session.error_message:
        payload["error_message"] = session.error_message
    return payload
