"""StagedToolProvider: routes file mutations into a StagedEditBuffer.

Wraps a real ToolExecutionProvider. ``write_file`` and ``edit_file`` land
in the buffer instead of on disk; ``read_file`` checks the buffer first
and falls back to the real provider, so the agent always reads its own
staged writes. ``run_command``, ``search_files``, ``list_directory`` and
unknown tools go straight to the real provider and therefore see disk
state, not staged state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agentstage.exceptions import MissingParameterError
from agentstage.toolkit.models import (
    READ_FILE,
    EditFileInput,
    ReadFileInput,
    ToolResult,
    WriteFileInput,
    parse_tool_input,
)

if TYPE_CHECKING:
    from agentstage.buffer import StagedEditBuffer
    from agentstage.toolkit.protocols import ToolExecutionProvider

logger = logging.getLogger(__name__)


class StagedToolProvider:
    """Tool provider that stages mutations in memory.

    Satisfies the ToolExecutionProvider protocol itself, so it can be
    dropped in wherever the real provider was used.

    Usage::

        provider = StagedToolProvider(real_provider, StagedEditBuffer())
        await provider.execute_tool("write_file", {"path": "a.py", "content": "x"})
        await provider.execute_tool("read_file", {"path": "a.py"})  # "x"

    Validation and pre-read failures come back as failed ToolResults; no
    exception from those paths reaches the caller.
    """

    def __init__(self, delegate: ToolExecutionProvider, buffer: StagedEditBuffer) -> None:
        self._delegate = delegate
        self._buffer = buffer

    @property
    def buffer(self) -> StagedEditBuffer:
        """The underlying staged buffer (for inspection/serialization)."""
        return self._buffer

    @property
    def delegate(self) -> ToolExecutionProvider:
        """The wrapped real provider."""
        return self._delegate

    async def execute_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Execute a tool, intercepting file mutations and staged reads.

        Args:
            name: Tool name.
            arguments: Raw tool arguments from the LLM.

        Returns:
            ToolResult from the buffer or the delegate.
        """
        try:
            tool_input = parse_tool_input(name, arguments)
        except MissingParameterError as exc:
            logger.debug("Rejected %s call: %s", name, exc)
            return ToolResult.fail(name, str(exc))

        if isinstance(tool_input, WriteFileInput):
            return await self._write_file(tool_input)
        if isinstance(tool_input, EditFileInput):
            return await self._edit_file(tool_input)
        if isinstance(tool_input, ReadFileInput):
            return await self._read_file(tool_input, arguments)

        # PassthroughInput: the delegate sees the call unchanged
        return await self._delegate.execute_tool(name, arguments)

    # ------------------------------------------------------------------
    # Tool handlers
    # ------------------------------------------------------------------

    async def _write_file(self, tool_input: WriteFileInput) -> ToolResult:
        path = tool_input.path
        is_new = not self._buffer.has(path) and not await self._exists_on_disk(path)
        self._buffer.write(path, tool_input.content, is_new)

        lines = len(tool_input.content.split("\n"))
        verb = "created" if is_new else "written"
        logger.debug("Intercepted write_file %s (new=%s)", path, is_new)
        return ToolResult.ok(
            "write_file", f"File {verb}: {path} ({lines} lines) [staged]"
        )

    async def _edit_file(self, tool_input: EditFileInput) -> ToolResult:
        path = tool_input.path
        current_content: str | None = None

        if not self._buffer.has(path):
            try:
                read_result = await self._delegate.execute_tool(READ_FILE, {"path": path})
            except Exception as exc:
                logger.debug("Pre-read for edit of %s raised", path, exc_info=True)
                return ToolResult.fail("edit_file", f"Cannot read file for edit: {exc}")
            if not read_result.success:
                reason = read_result.error or "File not found"
                return ToolResult.fail("edit_file", f"Cannot read file for edit: {reason}")
            current_content = read_result.output

        result = self._buffer.edit(
            path, tool_input.old_text, tool_input.new_text, current_content
        )
        if not result.success:
            logger.debug("Staged edit of %s rejected: %s", path, result.error)
            return ToolResult.fail("edit_file", result.error or "Edit failed")

        return ToolResult.ok("edit_file", f"Edit applied to {path} [staged]")

    async def _read_file(
        self, tool_input: ReadFileInput, arguments: dict[str, Any]
    ) -> ToolResult:
        path = tool_input.path
        if self._buffer.has(path):
            if self._buffer.is_deleted(path):
                return ToolResult.fail("read_file", f"File {path} has been deleted")
            content = self._buffer.read(path)
            if content is not None:
                return ToolResult.ok("read_file", tool_input.window(content))

        return await self._delegate.execute_tool(READ_FILE, arguments)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _exists_on_disk(self, path: str) -> bool:
        """Probe the delegate with a 1-line read to see if ``path`` exists."""
        try:
            result = await self._delegate.execute_tool(
                READ_FILE, {"path": path, "max_lines": 1}
            )
        except Exception:
            logger.debug("Existence probe for %s raised", path, exc_info=True)
            return False
        return result.success
