"""Loop session package -- resumable agent-run state.

Provides the LoopSession model, StopReason, RunResult, and the pure
state-transition functions used to gate Continue.
"""

from agentstage.session.models import LoopSession, RunResult, StopReason, TokenUsage
from agentstage.session.state import (
    build_loop_paused_payload,
    can_continue,
    create_loop_session,
    increment_continue,
    is_iteration_budget_exhausted,
    is_token_budget_exhausted,
    max_total_iterations,
    remaining_continues,
    remaining_runs,
    resolve_stop_reason,
    update_session_after_run,
)

__all__ = [
    # Models
    "LoopSession",
    "RunResult",
    "StopReason",
    "TokenUsage",
    # Factory and transitions
    "create_loop_session",
    "update_session_after_run",
    "increment_continue",
    # Budget queries
    "can_continue",
    "max_total_iterations",
    "is_iteration_budget_exhausted",
    "is_token_budget_exhausted",
    "remaining_continues",
    "remaining_runs",
    "resolve_stop_reason",
    # Payloads
    "build_loop_paused_payload",
]
