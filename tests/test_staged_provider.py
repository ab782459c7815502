"""Tests for StagedToolProvider and tool-input parsing.

The delegate is an AsyncMock standing in for a real file-tool executor
that knows exactly one file on disk: ``existing.ts``.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from agentstage import (
    EditFileInput,
    MissingParameterError,
    PassthroughInput,
    ReadFileInput,
    StagedEditBuffer,
    StagedToolProvider,
    ToolExecutionProvider,
    ToolResult,
    WriteFileInput,
    parse_tool_input,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


async def _fake_execute(name: str, arguments: dict) -> ToolResult:
    if name == "read_file":
        if arguments.get("path") == "existing.ts":
            return ToolResult.ok(name, "existing file content")
        return ToolResult.fail(name, "File not found")
    if name == "run_command":
        return ToolResult.ok(name, "command output")
    if name == "search_files":
        return ToolResult.ok(name, "search results")
    if name == "list_directory":
        return ToolResult.ok(name, "dir listing")
    return ToolResult.fail(name, f"Unknown tool: {name}")


class FakeDelegate:
    def __init__(self) -> None:
        self.execute_tool = AsyncMock(side_effect=_fake_execute)


@pytest.fixture()
def delegate() -> FakeDelegate:
    return FakeDelegate()


@pytest.fixture()
def buffer() -> StagedEditBuffer:
    return StagedEditBuffer()


@pytest.fixture()
def provider(delegate, buffer) -> StagedToolProvider:
    return StagedToolProvider(delegate, buffer)


def run(provider: StagedToolProvider, name: str, arguments: dict) -> ToolResult:
    return asyncio.run(provider.execute_tool(name, arguments))


# ===========================================================================
# write_file
# ===========================================================================


class TestWriteFile:
    def test_stages_instead_of_delegating(self, provider, buffer, delegate):
        result = run(provider, "write_file", {"path": "new.ts", "content": "new content"})
        assert result.success is True
        assert "[staged]" in result.output
        assert buffer.read("new.ts") == "new content"
        for call in delegate.execute_tool.await_args_list:
            assert call.args[0] == "read_file"

    def test_detects_new_files(self, provider, buffer):
        result = run(provider, "write_file", {"path": "brand-new.ts", "content": "a\nb"})
        assert result.output == "File created: brand-new.ts (2 lines) [staged]"
        assert buffer.get("brand-new.ts").is_new is True

    def test_detects_existing_files(self, provider, buffer, delegate):
        result = run(provider, "write_file", {"path": "existing.ts", "content": "updated"})
        assert result.output == "File written: existing.ts (1 lines) [staged]"
        assert buffer.get("existing.ts").is_new is False
        delegate.execute_tool.assert_awaited_once_with(
            "read_file", {"path": "existing.ts", "max_lines": 1}
        )

    def test_staged_file_skips_disk_probe(self, provider, buffer, delegate):
        buffer.write("a.ts", "one", is_new=True)
        result = run(provider, "write_file", {"path": "a.ts", "content": "two"})
        assert result.output.startswith("File written: a.ts")
        assert buffer.get("a.ts").is_new is True
        delegate.execute_tool.assert_not_awaited()

    def test_probe_exception_counts_as_absent(self, buffer):
        delegate = FakeDelegate()
        delegate.execute_tool.side_effect = OSError("disk gone")
        provider = StagedToolProvider(delegate, buffer)
        result = run(provider, "write_file", {"path": "x.ts", "content": "x"})
        assert result.success is True
        assert buffer.get("x.ts").is_new is True

    def test_missing_path(self, provider):
        result = run(provider, "write_file", {"content": "abc"})
        assert result.success is False
        assert result.error == "Missing required parameter: path"

    def test_missing_content(self, provider, buffer):
        result = run(provider, "write_file", {"path": "a.ts"})
        assert result.success is False
        assert result.error == "Missing required parameter: content"
        assert buffer.size == 0

    def test_empty_content_is_allowed(self, provider, buffer):
        result = run(provider, "write_file", {"path": "empty.ts", "content": ""})
        assert result.success is True
        assert buffer.read("empty.ts") == ""


# ===========================================================================
# edit_file
# ===========================================================================


class TestEditFile:
    def test_edits_staged_content(self, provider, buffer, delegate):
        buffer.write("a.ts", "const x = 1;")
        result = run(
            provider,
            "edit_file",
            {"path": "a.ts", "old_text": "const x = 1;", "new_text": "const x = 2;"},
        )
        assert result.success is True
        assert result.output == "Edit applied to a.ts [staged]"
        assert buffer.read("a.ts") == "const x = 2;"
        delegate.execute_tool.assert_not_awaited()

    def test_reads_disk_then_stages(self, provider, buffer, delegate):
        result = run(
            provider,
            "edit_file",
            {"path": "existing.ts", "old_text": "existing", "new_text": "modified"},
        )
        assert result.success is True
        assert buffer.read("existing.ts") == "modified file content"
        delegate.execute_tool.assert_awaited_once_with("read_file", {"path": "existing.ts"})

    def test_unreadable_file(self, provider, buffer):
        result = run(
            provider,
            "edit_file",
            {"path": "nope.ts", "old_text": "a", "new_text": "b"},
        )
        assert result.success is False
        assert result.error == "Cannot read file for edit: File not found"
        assert buffer.has("nope.ts") is False

    def test_failed_read_without_error_text(self, buffer):
        delegate = FakeDelegate()
        delegate.execute_tool.side_effect = None
        delegate.execute_tool.return_value = ToolResult(tool_name="read_file", success=False)
        provider = StagedToolProvider(delegate, buffer)
        result = run(provider, "edit_file", {"path": "x.ts", "old_text": "a", "new_text": "b"})
        assert result.error == "Cannot read file for edit: File not found"

    def test_delegate_exception_is_wrapped(self, buffer):
        delegate = FakeDelegate()
        delegate.execute_tool.side_effect = PermissionError("denied")
        provider = StagedToolProvider(delegate, buffer)
        result = run(provider, "edit_file", {"path": "x.ts", "old_text": "a", "new_text": "b"})
        assert result.success is False
        assert result.error == "Cannot read file for edit: denied"

    def test_ambiguous_edit_surfaces_verbatim(self, provider, buffer):
        buffer.write("a.ts", "x x")
        result = run(provider, "edit_file", {"path": "a.ts", "old_text": "x", "new_text": "y"})
        assert result.success is False
        assert "multiple times" in result.error
        assert buffer.read("a.ts") == "x x"

    def test_not_found_surfaces_verbatim(self, provider, buffer):
        buffer.write("a.ts", "abc")
        result = run(provider, "edit_file", {"path": "a.ts", "old_text": "zzz", "new_text": "y"})
        assert "not found" in result.error

    @pytest.mark.parametrize(
        "arguments, missing",
        [
            ({"old_text": "a", "new_text": "b"}, "path"),
            ({"path": "a.ts", "new_text": "b"}, "old_text"),
            ({"path": "a.ts", "old_text": "a"}, "new_text"),
        ],
    )
    def test_missing_parameters(self, provider, delegate, arguments, missing):
        result = run(provider, "edit_file", arguments)
        assert result.success is False
        assert result.error == f"Missing required parameter: {missing}"
        delegate.execute_tool.assert_not_awaited()


# ===========================================================================
# read_file
# ===========================================================================


class TestReadFile:
    def test_returns_staged_content(self, provider, buffer, delegate):
        buffer.write("a.ts", "staged content")
        result = run(provider, "read_file", {"path": "a.ts"})
        assert result.success is True
        assert result.output == "staged content"
        delegate.execute_tool.assert_not_awaited()

    def test_delegates_unstaged_exactly_once(self, provider, delegate):
        arguments = {"path": "existing.ts", "offset": 0}
        result = run(provider, "read_file", arguments)
        assert result.output == "existing file content"
        delegate.execute_tool.assert_awaited_once()
        name, passed = delegate.execute_tool.await_args.args
        assert name == "read_file"
        assert passed is arguments

    def test_deleted_staged_file(self, provider, buffer, delegate):
        buffer.write("a.ts", "x")
        buffer.delete("a.ts")
        result = run(provider, "read_file", {"path": "a.ts"})
        assert result.success is False
        assert result.error == "File a.ts has been deleted"
        delegate.execute_tool.assert_not_awaited()

    def test_offset_and_max_lines(self, provider, buffer):
        buffer.write("a.ts", "line1\nline2\nline3\nline4\nline5")
        result = run(provider, "read_file", {"path": "a.ts", "offset": 1, "max_lines": 2})
        assert result.output == "line2\nline3"

    def test_offset_only(self, provider, buffer):
        buffer.write("a.ts", "line1\nline2\nline3")
        result = run(provider, "read_file", {"path": "a.ts", "offset": 2})
        assert result.output == "line3"

    def test_non_numeric_window_is_ignored(self, provider, buffer):
        buffer.write("a.ts", "line1\nline2")
        result = run(provider, "read_file", {"path": "a.ts", "offset": "1", "max_lines": True})
        assert result.output == "line1\nline2"

    def test_float_window_values_are_truncated(self, provider, buffer):
        buffer.write("a.ts", "line1\nline2\nline3\nline4")
        result = run(provider, "read_file", {"path": "a.ts", "offset": 1.0, "max_lines": 2.0})
        assert result.output == "line2\nline3"

    def test_read_after_write(self, provider):
        run(provider, "write_file", {"path": "existing.ts", "content": "mine"})
        result = run(provider, "read_file", {"path": "existing.ts"})
        assert result.output == "mine"

    def test_missing_path(self, provider):
        result = run(provider, "read_file", {})
        assert result.error == "Missing required parameter: path"


# ===========================================================================
# Passthrough
# ===========================================================================


class TestPassthrough:
    @pytest.mark.parametrize(
        "name, arguments, expected",
        [
            ("run_command", {"command": "ls"}, "command output"),
            ("search_files", {"pattern": "foo"}, "search results"),
            ("list_directory", {"path": "."}, "dir listing"),
        ],
    )
    def test_delegates(self, provider, delegate, name, arguments, expected):
        result = run(provider, name, arguments)
        assert result.output == expected
        delegate.execute_tool.assert_awaited_once_with(name, arguments)

    def test_unknown_tool_delegates(self, provider, delegate):
        result = run(provider, "mystery", {"x": 1})
        assert result.success is False
        assert result.error == "Unknown tool: mystery"
        delegate.execute_tool.assert_awaited_once_with("mystery", {"x": 1})

    def test_buffer_property(self, provider, buffer, delegate):
        assert provider.buffer is buffer
        assert provider.delegate is delegate

    def test_satisfies_protocol(self, provider, delegate):
        assert isinstance(provider, ToolExecutionProvider)
        assert isinstance(delegate, ToolExecutionProvider)


# ===========================================================================
# parse_tool_input
# ===========================================================================


class TestParseToolInput:
    def test_write(self):
        assert parse_tool_input("write_file", {"path": "a", "content": "b"}) == WriteFileInput(
            path="a", content="b"
        )

    def test_edit(self):
        parsed = parse_tool_input("edit_file", {"path": "a", "old_text": "", "new_text": "n"})
        assert parsed == EditFileInput(path="a", old_text="", new_text="n")

    def test_read_defaults(self):
        assert parse_tool_input("read_file", {"path": "a"}) == ReadFileInput(path="a")

    def test_passthrough(self):
        parsed = parse_tool_input("run_command", {"command": "ls"})
        assert isinstance(parsed, PassthroughInput)
        assert parsed.name == "run_command"

    def test_empty_path_is_missing(self):
        with pytest.raises(MissingParameterError) as exc_info:
            parse_tool_input("write_file", {"path": "", "content": "x"})
        assert exc_info.value.name == "path"

    def test_float_window_arguments(self):
        parsed = parse_tool_input("read_file", {"path": "a", "offset": 2.0, "max_lines": 1.9})
        assert parsed == ReadFileInput(path="a", offset=2, max_lines=1)
        parsed = parse_tool_input("read_file", {"path": "a", "offset": float("nan")})
        assert parsed == ReadFileInput(path="a")

    def test_window(self):
        assert ReadFileInput(path="a", offset=1, max_lines=1).window("a\nb\nc") == "b"
        assert ReadFileInput(path="a", max_lines=0).window("a\nb") == ""

    def test_tool_result_to_dict(self):
        assert ToolResult.ok("x", "out").to_dict() == {"success": True, "output": "out"}
        assert ToolResult.fail("x", "bad").to_dict() == {
            "success": False,
            "output": "",
            "error": "bad",
        }
