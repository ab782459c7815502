"""Protocol definitions for tool execution.

Defines the capability a file-tool executor must provide so that
StagedToolProvider can wrap it. No concrete I/O lives here.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from agentstage.toolkit.models import ToolResult


@runtime_checkable
class ToolExecutionProvider(Protocol):
    """Protocol for anything that can execute named file tools.

    Implementations must support at least ``read_file`` (with ``path``,
    optional ``offset`` and ``max_lines``) and should pass through
    ``run_command``, ``search_files`` and ``list_directory``.
    """

    async def execute_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Execute a tool by name and return a structured result."""
        ...
