"""Loop session domain models.

LoopSession is the persistable state of one agent run across pause and
resume cycles. RunResult is what one execution burst reports back.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class StopReason(str, enum.Enum):
    """Why the loop last paused or stopped."""

    MAX_ITERATIONS = "max_iterations"
    MAX_TOKENS = "max_tokens"
    END_TURN = "end_turn"
    ERROR = "error"
    USER_STOP = "user_stop"
    HARD_LIMIT = "hard_limit"

    def __str__(self) -> str:
        return self.value


class TokenUsage(BaseModel):
    """Cumulative token usage. Both fields only ever grow."""

    model_config = ConfigDict(frozen=True)

    input: int = 0
    output: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(input=self.input + other.input, output=self.output + other.output)


class LoopSession(BaseModel):
    """Serializable loop session state.

    Frozen: every helper in ``agentstage.session.state`` returns a new
    session rather than mutating this one.

    ``staged_snapshot`` holds a StagedBufferSnapshot dict and
    ``conversation_snapshot`` a ``{"messages": [...]}`` dict; both are
    None until a run pauses with something to resume.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    task_id: str
    step_id: str
    iteration_count: int = 0
    continue_count: int = 0
    max_continues: int
    max_iterations_per_run: int
    max_total_tokens: int
    total_tokens: TokenUsage = TokenUsage()
    stop_reason: Optional[StopReason] = None
    final_text: str = ""
    tool_calls_count: int = 0
    staged_snapshot: Optional[dict[str, Any]] = None
    conversation_snapshot: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def to_json(self) -> dict[str, Any]:
        """Serialize to a JSON-safe dict."""
        return self.model_dump(mode="json")

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> LoopSession:
        """Restore from ``to_json()`` output."""
        return cls.model_validate(data)


@dataclass(frozen=True)
class RunResult:
    """Outcome of one execution burst of the agent loop.

    Attributes:
        iterations: Iterations executed in this burst.
        total_tokens: Tokens consumed in this burst.
        stop_reason: Why the burst ended.
        final_text: Last LLM response text.
        tool_calls_count: Tool calls made in this burst.
        staged_snapshot: Buffer snapshot to resume from, if any.
        conversation_snapshot: Conversation history to resume from, if any.
        error_message: Set when ``stop_reason`` is ERROR.
    """

    iterations: int
    total_tokens: TokenUsage
    stop_reason: StopReason
    final_text: str = ""
    tool_calls_count: int = 0
    staged_snapshot: Optional[dict[str, Any]] = None
    conversation_snapshot: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
