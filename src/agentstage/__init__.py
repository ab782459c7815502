"""agentstage: staged file edits and resumable agent loops.

An autonomous coding agent proposes file mutations that are held in
memory until a human approves them. agentstage provides the staged edit
buffer, the tool-provider overlay that routes the agent's file tools
through it, the loop session budgets that gate Continue, and the
per-step ledger that caps chunked edit retries.
"""

from agentstage._version import __version__

# Staged edits
from agentstage.buffer import (
    EditResult,
    StagedBufferSnapshot,
    StagedEditBuffer,
    StagedFile,
    StagedFileSummary,
)

# Tool overlay
from agentstage.toolkit import (
    EditFileInput,
    PassthroughInput,
    ReadFileInput,
    StagedToolProvider,
    ToolExecutionProvider,
    ToolInput,
    ToolResult,
    WriteFileInput,
    parse_tool_input,
)

# Loop sessions
from agentstage.session import (
    LoopSession,
    RunResult,
    StopReason,
    TokenUsage,
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

# Edit ledger
from agentstage.ledger import (
    CompletedDiff,
    EditAttemptLedger,
    EditAttemptLedgerState,
    FileEditAttempt,
    FileEditStatus,
    LedgerProgress,
    LedgerStatus,
    PauseDecision,
)

# Events
from agentstage.events import (
    EventLog,
    LoopEvent,
    build_diff_applied_payload,
    build_diff_proposed_payload,
    build_files_changed,
    extract_diff_file_paths,
    get_diff_correlation_id,
)

# Configuration
from agentstage.config import LoopConfig, StorageConfig

# Persistence
from agentstage.storage import CheckpointStore

# Exceptions
from agentstage.exceptions import (
    AgentStageError,
    LedgerNotFoundError,
    LedgerPathError,
    MissingParameterError,
    SessionNotFoundError,
    SnapshotError,
)

__all__ = [
    "__version__",
    # Staged edits
    "StagedEditBuffer",
    "StagedFile",
    "EditResult",
    "StagedBufferSnapshot",
    "StagedFileSummary",
    # Tool overlay
    "StagedToolProvider",
    "ToolExecutionProvider",
    "ToolResult",
    "ToolInput",
    "WriteFileInput",
    "EditFileInput",
    "ReadFileInput",
    "PassthroughInput",
    "parse_tool_input",
    # Loop sessions
    "LoopSession",
    "RunResult",
    "StopReason",
    "TokenUsage",
    "create_loop_session",
    "update_session_after_run",
    "increment_continue",
    "can_continue",
    "max_total_iterations",
    "is_iteration_budget_exhausted",
    "is_token_budget_exhausted",
    "remaining_continues",
    "remaining_runs",
    "resolve_stop_reason",
    "build_loop_paused_payload",
    # Edit ledger
    "EditAttemptLedger",
    "EditAttemptLedgerState",
    "FileEditAttempt",
    "FileEditStatus",
    "LedgerStatus",
    "CompletedDiff",
    "PauseDecision",
    "LedgerProgress",
    # Events
    "EventLog",
    "LoopEvent",
    "build_diff_proposed_payload",
    "build_diff_applied_payload",
    "build_files_changed",
    "extract_diff_file_paths",
    "get_diff_correlation_id",
    # Configuration
    "LoopConfig",
    "StorageConfig",
    # Persistence
    "CheckpointStore",
    # Exceptions
    "AgentStageError",
    "LedgerPathError",
    "MissingParameterError",
    "SessionNotFoundError",
    "LedgerNotFoundError",
    "SnapshotError",
]
