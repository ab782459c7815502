"""In-memory staged file edits (no disk writes).

StagedEditBuffer holds the pending file changes produced by an agent
loop's tool calls. Writes and edits land here instead of on disk, and
reads overlay staged content on top of real content (the caller supplies
the fallback). Nothing in this module touches the filesystem.

The buffer is owned by exactly one loop session at a time and is handed
off only through ``to_snapshot()`` / ``from_snapshot()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, TypedDict

from agentstage.exceptions import SnapshotError

logger = logging.getLogger(__name__)

FileAction = Literal["create", "update", "delete"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StagedFile:
    """A single staged file operation.

    Attributes:
        path: Relative path from the workspace root (buffer key).
        content: Full file content after staging. Empty when deleted.
        is_new: True if the file did not exist before staging began.
            Set on first write and never flipped afterwards.
        is_deleted: True if the path is staged for deletion.
        edit_count: Number of writes/edits applied while staged.
        last_modified: When the entry was last mutated.
    """

    path: str
    content: str
    is_new: bool = False
    is_deleted: bool = False
    edit_count: int = 1
    last_modified: datetime | None = None

    @property
    def action(self) -> FileAction:
        """The apply action this entry maps to."""
        if self.is_deleted:
            return "delete"
        return "create" if self.is_new else "update"


@dataclass(frozen=True)
class EditResult:
    """Outcome of a find-and-replace edit against the buffer."""

    success: bool
    error: str | None = None


class StagedFileSummary(TypedDict):
    """Summary row for event payloads and approval UIs."""

    path: str
    action: FileAction
    edit_count: int


class SnapshotFileDict(TypedDict):
    """Serialized form of one StagedFile.

    Keys are camelCase because this is the persisted wire format shared
    with the host's task-persistence files.
    """

    path: str
    content: str
    isNew: bool
    isDeleted: bool
    editCount: int


class StagedBufferSnapshot(TypedDict):
    """JSON-safe snapshot of a StagedEditBuffer (for Continue persistence)."""

    files: list[SnapshotFileDict]


class StagedEditBuffer:
    """In-memory overlay of pending file mutations.

    The single source of truth for "what would be on disk if the agent's
    proposal were applied". Single-writer and synchronous: the
    orchestrating loop is the only mutator.

    Usage::

        buffer = StagedEditBuffer()
        buffer.write("src/a.py", "x = 1\\n", is_new=True)
        result = buffer.edit("src/a.py", "x = 1", "x = 2")
        assert result.success
        buffer.read("src/a.py")  # "x = 2\\n"
    """

    def __init__(self) -> None:
        self._staged: dict[str, StagedFile] = {}

    def __repr__(self) -> str:
        return f"StagedEditBuffer(size={len(self._staged)})"

    def __len__(self) -> int:
        return len(self._staged)

    def __contains__(self, path: object) -> bool:
        return path in self._staged

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def write(self, path: str, content: str, is_new: bool = False) -> None:
        """Stage a full file write (create or overwrite).

        An already-staged path keeps its original ``is_new`` flag and has
        its edit count incremented. Always clears a pending deletion.
        """
        existing = self._staged.get(path)
        self._staged[path] = StagedFile(
            path=path,
            content=content,
            is_new=existing.is_new if existing is not None else is_new,
            is_deleted=False,
            edit_count=existing.edit_count + 1 if existing is not None else 1,
            last_modified=_now(),
        )
        logger.debug(
            "Staged write %s (edit_count=%d)", path, self._staged[path].edit_count
        )

    def edit(
        self,
        path: str,
        old_text: str,
        new_text: str,
        current_content: str | None = None,
    ) -> EditResult:
        """Stage a targeted find-and-replace on a file.

        Edits the staged content when the path is staged, otherwise
        ``current_content`` (the caller's disk snapshot). ``old_text`` must
        occur exactly once; on any failure the buffer is left unchanged.

        Args:
            path: File path to edit.
            old_text: Exact text to find.
            new_text: Replacement text.
            current_content: Base content for files not yet staged.

        Returns:
            EditResult with ``success`` and, on failure, an ``error`` message.
        """
        existing = self._staged.get(path)
        if existing is not None:
            content = existing.content
            is_new = existing.is_new
        elif current_content is not None:
            content = current_content
            is_new = False
        else:
            return EditResult(
                success=False,
                error=(
                    f"File {path} not found in staged buffer "
                    "and no current content provided"
                ),
            )

        index = content.find(old_text)
        if index == -1:
            return EditResult(
                success=False,
                error=(
                    f"old_text not found in {path}. "
                    "The text to find must be an exact match."
                ),
            )

        # Overlapping matches count as ambiguous too. The start is clamped to
        # len(content) so an empty old_text always finds a second match.
        if content.find(old_text, min(index + 1, len(content))) != -1:
            return EditResult(
                success=False,
                error=(
                    f"old_text appears multiple times in {path}. "
                    "Provide more context to make the match unique."
                ),
            )

        new_content = content[:index] + new_text + content[index + len(old_text):]
        self._staged[path] = StagedFile(
            path=path,
            content=new_content,
            is_new=is_new,
            is_deleted=False,
            edit_count=(existing.edit_count if existing is not None else 0) + 1,
            last_modified=_now(),
        )
        logger.debug(
            "Staged edit %s (edit_count=%d)", path, self._staged[path].edit_count
        )
        return EditResult(success=True)

    def delete(self, path: str) -> None:
        """Stage a file deletion. Idempotent; works for unstaged paths."""
        self._staged[path] = StagedFile(
            path=path,
            content="",
            is_new=False,
            is_deleted=True,
            edit_count=0,
            last_modified=_now(),
        )
        logger.debug("Staged delete %s", path)

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def read(self, path: str) -> str | None:
        """Return staged content, or None if the path is unstaged or deleted.

        Deleted and absent paths look the same here; use ``has()`` and
        ``is_deleted()`` to tell them apart.
        """
        staged = self._staged.get(path)
        if staged is None or staged.is_deleted:
            return None
        return staged.content

    def has(self, path: str) -> bool:
        """Whether the path has been staged (written, edited, or deleted)."""
        return path in self._staged

    def is_deleted(self, path: str) -> bool:
        """Whether the path is staged for deletion."""
        staged = self._staged.get(path)
        return staged.is_deleted if staged is not None else False

    def get(self, path: str) -> StagedFile | None:
        """Return the StagedFile entry for a path, or None."""
        return self._staged.get(path)

    # ------------------------------------------------------------------
    # Collection operations
    # ------------------------------------------------------------------

    def get_staged_paths(self) -> list[str]:
        """All staged paths in first-staged order."""
        return list(self._staged.keys())

    def get_all(self) -> list[StagedFile]:
        """All staged entries, deletion records included."""
        return list(self._staged.values())

    def get_modified_files(self) -> list[StagedFile]:
        """Created or updated entries only (deletions excluded)."""
        return [f for f in self._staged.values() if not f.is_deleted]

    @property
    def size(self) -> int:
        """Number of staged paths."""
        return len(self._staged)

    def clear(self) -> None:
        """Drop every staged entry."""
        self._staged.clear()

    def pprint(self) -> None:
        """Pretty-print the pending changes as a table."""
        from agentstage.formatting import pprint_staged_buffer

        pprint_staged_buffer(self)

    # ------------------------------------------------------------------
    # Summary and serialization
    # ------------------------------------------------------------------

    def to_summary(self) -> list[StagedFileSummary]:
        """Build the per-file summary used by event payloads."""
        return [
            {"path": f.path, "action": f.action, "edit_count": f.edit_count}
            for f in self._staged.values()
        ]

    def to_snapshot(self) -> StagedBufferSnapshot:
        """Serialize to a JSON-safe snapshot (``last_modified`` is dropped)."""
        return {
            "files": [
                {
                    "path": f.path,
                    "content": f.content,
                    "isNew": f.is_new,
                    "isDeleted": f.is_deleted,
                    "editCount": f.edit_count,
                }
                for f in self._staged.values()
            ]
        }

    @classmethod
    def from_snapshot(cls, snapshot: StagedBufferSnapshot | dict) -> StagedEditBuffer:
        """Restore a buffer from a snapshot.

        Every field is reconstructed except ``last_modified``, which is
        re-stamped to now.

        Raises:
            SnapshotError: If the snapshot is missing required keys.
        """
        buffer = cls()
        now = _now()
        try:
            files = snapshot["files"]
            for f in files:
                buffer._staged[f["path"]] = StagedFile(
                    path=f["path"],
                    content=f["content"],
                    is_new=bool(f["isNew"]),
                    is_deleted=bool(f["isDeleted"]),
                    edit_count=int(f["editCount"]),
                    last_modified=now,
                )
        except (KeyError, TypeError) as exc:
            raise SnapshotError(f"Malformed staged buffer snapshot: {exc}") from exc
        logger.debug("Restored staged buffer with %d file(s)", buffer.size)
        return buffer
