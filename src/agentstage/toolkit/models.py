"""Toolkit data models for staged tool execution.

Frozen dataclasses for tool results and the known tool-input shapes.
Incoming tool arguments arrive as untyped dicts from the LLM; they are
parsed into one of the ``ToolInput`` variants before dispatch.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Union

from agentstage.exceptions import MissingParameterError

logger = logging.getLogger(__name__)

WRITE_FILE = "write_file"
EDIT_FILE = "edit_file"
READ_FILE = "read_file"
RUN_COMMAND = "run_command"
SEARCH_FILES = "search_files"
LIST_DIRECTORY = "list_directory"

PASSTHROUGH_TOOLS: frozenset[str] = frozenset({RUN_COMMAND, SEARCH_FILES, LIST_DIRECTORY})


@dataclass(frozen=True)
class ToolResult:
    """Structured result from executing a tool.

    Attributes:
        tool_name: Name of the tool that was executed.
        success: Whether execution succeeded.
        output: String output on success.
        error: Error message on failure.
    """

    tool_name: str
    success: bool
    output: str = ""
    error: str = ""

    @classmethod
    def ok(cls, tool_name: str, output: str) -> ToolResult:
        return cls(tool_name=tool_name, success=True, output=output)

    @classmethod
    def fail(cls, tool_name: str, error: str) -> ToolResult:
        return cls(tool_name=tool_name, success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the ``{success, output, error}`` wire shape."""
        d: dict[str, Any] = {"success": self.success, "output": self.output}
        if not self.success:
            d["error"] = self.error
        return d


@dataclass(frozen=True)
class WriteFileInput:
    """Arguments for ``write_file``."""

    path: str
    content: str


@dataclass(frozen=True)
class EditFileInput:
    """Arguments for ``edit_file``."""

    path: str
    old_text: str
    new_text: str


@dataclass(frozen=True)
class ReadFileInput:
    """Arguments for ``read_file``.

    ``offset`` and ``max_lines`` are only honoured when they are numbers;
    floats are truncated.
    """

    path: str
    offset: int = 0
    max_lines: int | None = None

    def window(self, content: str) -> str:
        """Apply offset/max_lines line windowing to ``content``."""
        lines = content.split("\n")
        start = self.offset
        if self.max_lines is not None:
            return "\n".join(lines[start:start + self.max_lines])
        return "\n".join(lines[start:])


@dataclass(frozen=True)
class PassthroughInput:
    """Any tool the staging layer does not intercept."""

    name: str
    arguments: dict = field(default_factory=dict)


ToolInput = Union[WriteFileInput, EditFileInput, ReadFileInput, PassthroughInput]


def _int_or_none(value: object) -> int | None:
    # bool is an int subclass but never a valid line count
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    # JSON numbers often arrive as floats (2.0); truncate like a slice index
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


def parse_tool_input(name: str, arguments: dict[str, Any]) -> ToolInput:
    """Parse raw tool arguments into a typed ToolInput variant.

    ``path`` must be a non-empty value. Text fields (``content``,
    ``old_text``, ``new_text``) only need to be present and non-None, so
    an empty string is a valid replacement or file body.

    Raises:
        MissingParameterError: If a required field is missing.
    """
    if name == WRITE_FILE:
        path = arguments.get("path")
        if not path:
            raise MissingParameterError("path")
        content = arguments.get("content")
        if content is None:
            raise MissingParameterError("content")
        return WriteFileInput(path=str(path), content=str(content))

    if name == EDIT_FILE:
        path = arguments.get("path")
        if not path:
            raise MissingParameterError("path")
        old_text = arguments.get("old_text")
        if old_text is None:
            raise MissingParameterError("old_text")
        new_text = arguments.get("new_text")
        if new_text is None:
            raise MissingParameterError("new_text")
        return EditFileInput(path=str(path), old_text=str(old_text), new_text=str(new_text))

    if name == READ_FILE:
        path = arguments.get("path")
        if not path:
            raise MissingParameterError("path")
        offset = _int_or_none(arguments.get("offset"))
        return ReadFileInput(
            path=str(path),
            offset=offset if offset is not None else 0,
            max_lines=_int_or_none(arguments.get("max_lines")),
        )

    return PassthroughInput(name=name, arguments=arguments)
