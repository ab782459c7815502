"""Staged toolkit: tool models, the provider protocol, and the staging wrapper.

Provides the typed tool-input variants, ToolResult, the
ToolExecutionProvider protocol, and StagedToolProvider.
"""

from agentstage.toolkit.models import (
    EDIT_FILE,
    LIST_DIRECTORY,
    PASSTHROUGH_TOOLS,
    READ_FILE,
    RUN_COMMAND,
    SEARCH_FILES,
    WRITE_FILE,
    EditFileInput,
    PassthroughInput,
    ReadFileInput,
    ToolInput,
    ToolResult,
    WriteFileInput,
    parse_tool_input,
)
from agentstage.toolkit.protocols import ToolExecutionProvider
from agentstage.toolkit.staged import StagedToolProvider

__all__ = [
    # Provider
    "StagedToolProvider",
    "ToolExecutionProvider",
    # Models
    "ToolResult",
    "ToolInput",
    "WriteFileInput",
    "EditFileInput",
    "ReadFileInput",
    "PassthroughInput",
    "parse_tool_input",
    # Tool names
    "WRITE_FILE",
    "EDIT_FILE",
    "READ_FILE",
    "RUN_COMMAND",
    "SEARCH_FILES",
    "LIST_DIRECTORY",
    "PASSTHROUGH_TOOLS",
]
