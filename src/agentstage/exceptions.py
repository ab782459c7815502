"""agentstage exception hierarchy.

All agentstage-specific exceptions inherit from AgentStageError.

Agent-facing failures (bad tool input, ambiguous edits, unreadable files)
are returned as data, not raised. The exceptions here signal caller bugs
or storage lookups that cannot be satisfied.
"""


class AgentStageError(Exception):
    """Base exception for all agentstage errors."""


class LedgerPathError(AgentStageError, KeyError):
    """Raised when a ledger operation targets a path outside the target set.

    This is a precondition violation by the orchestrator (mismatched target
    list vs. path being marked), never a recoverable runtime condition.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File not in ledger: {path}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class SnapshotError(AgentStageError):
    """Raised when a staged buffer snapshot cannot be restored."""


class SessionNotFoundError(AgentStageError):
    """Raised when a persisted loop session lookup fails."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Loop session not found: {session_id}")


class LedgerNotFoundError(AgentStageError):
    """Raised when a persisted edit ledger lookup fails."""

    def __init__(self, step_id: str) -> None:
        self.step_id = step_id
        super().__init__(f"Edit ledger not found for step: {step_id}")


class MissingParameterError(AgentStageError):
    """Raised while parsing tool input when a required field is absent.

    StagedToolProvider converts this into a failed ToolResult; it never
    reaches the provider's caller.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing required parameter: {name}")
