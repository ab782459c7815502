"""Edit attempt ledger for truncation-safe chunked edits.

Tracks per-file status across a multi-file edit step so that truncated
or failing LLM output cannot loop forever:

- files marked done are never requested again
- each file gets at most ``max_attempts_per_file`` attempts
- the whole step gets at most ``max_total_chunks`` chunks
- the next file is picked deterministically (untried before retried)

The ledger only counts. Deciding whether to retry, pause or fail is up
to the orchestrator that drives it.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Literal, Optional

from pydantic import BaseModel

from agentstage.config import DEFAULT_MAX_ATTEMPTS_PER_FILE, DEFAULT_MAX_TOTAL_CHUNKS
from agentstage.exceptions import LedgerPathError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FileEditStatus(str, enum.Enum):
    """Status of one target file."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


class LedgerStatus(str, enum.Enum):
    """Overall status of the edit step."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PAUSED = "paused"
    FAILED = "failed"


class CompletedDiff(BaseModel):
    """The accepted change for a finished file."""

    unified_diff: str
    new_content: Optional[str] = None
    action: Literal["create", "update", "delete"]
    base_sha: Optional[str] = None


class FileEditAttempt(BaseModel):
    """Bookkeeping for a single target file."""

    path: str
    reason: str = ""
    status: FileEditStatus = FileEditStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    completed_diff: Optional[CompletedDiff] = None


class EditAttemptLedgerState(BaseModel):
    """Full persistable ledger state."""

    step_id: str
    target_files: list[FileEditAttempt] = []
    total_chunks_attempted: int = 0
    max_attempts_per_file: int = DEFAULT_MAX_ATTEMPTS_PER_FILE
    max_total_chunks: int = DEFAULT_MAX_TOTAL_CHUNKS
    started_at: datetime
    completed_at: Optional[datetime] = None
    status: LedgerStatus = LedgerStatus.PENDING
    pause_reason: Optional[str] = None


@dataclass(frozen=True)
class PauseDecision:
    """Answer from ``EditAttemptLedger.should_pause()``."""

    pause: bool
    reason: str | None = None


@dataclass(frozen=True)
class LedgerProgress:
    """Counts for progress display. ``pending`` includes in-progress files."""

    total: int
    done: int
    failed: int
    pending: int
    skipped: int
    attempts_used: int
    attempts_max: int


class EditAttemptLedger:
    """Per-step bookkeeping of edit attempts and chunk budget.

    Owned by the single step that created it; no internal locking.

    Usage::

        ledger = EditAttemptLedger("step-1", [{"path": "a.py", "reason": "fix"}])
        target = ledger.get_next_file()
        ledger.mark_in_progress(target.path)
        ledger.mark_done(target.path, {"unified_diff": diff, "action": "update"})
        assert ledger.is_complete()
    """

    def __init__(
        self,
        step_id: str,
        target_files: Iterable[dict[str, str]],
        *,
        max_attempts_per_file: int | None = None,
        max_total_chunks: int | None = None,
    ) -> None:
        files: list[FileEditAttempt] = []
        seen: set[str] = set()
        for f in target_files:
            path = f["path"]
            if path in seen:
                raise ValueError(f"Duplicate target file in ledger: {path}")
            seen.add(path)
            files.append(FileEditAttempt(path=path, reason=f.get("reason", "")))

        self._state = EditAttemptLedgerState(
            step_id=step_id,
            target_files=files,
            max_attempts_per_file=max_attempts_per_file or DEFAULT_MAX_ATTEMPTS_PER_FILE,
            max_total_chunks=max_total_chunks or DEFAULT_MAX_TOTAL_CHUNKS,
            started_at=_now(),
        )
        # Non-positive caps would make every file instantly exhausted
        if self._state.max_attempts_per_file < 1:
            self._state.max_attempts_per_file = DEFAULT_MAX_ATTEMPTS_PER_FILE
        if self._state.max_total_chunks < 1:
            self._state.max_total_chunks = DEFAULT_MAX_TOTAL_CHUNKS

    def __repr__(self) -> str:
        return (
            f"EditAttemptLedger(step_id={self._state.step_id!r}, "
            f"files={len(self._state.target_files)}, status={self._state.status.value})"
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> EditAttemptLedgerState:
        """A deep copy of the current state."""
        return self._state.model_copy(deep=True)

    @property
    def step_id(self) -> str:
        return self._state.step_id

    @property
    def status(self) -> LedgerStatus:
        return self._state.status

    @property
    def target_files(self) -> list[FileEditAttempt]:
        return list(self._state.target_files)

    def _find(self, path: str) -> FileEditAttempt:
        for f in self._state.target_files:
            if f.path == path:
                return f
        raise LedgerPathError(path)

    def _is_retriable(self, f: FileEditAttempt) -> bool:
        return (
            f.status == FileEditStatus.FAILED
            and f.attempts < self._state.max_attempts_per_file
        )

    def _is_exhausted(self, f: FileEditAttempt) -> bool:
        return (
            f.status == FileEditStatus.FAILED
            and f.attempts >= self._state.max_attempts_per_file
        )

    def get_next_file(self) -> FileEditAttempt | None:
        """Pick the next file to process.

        Returns None once the chunk cap is reached. Otherwise the first
        pending file, else the first failed file with attempts left.
        """
        if self._state.total_chunks_attempted >= self._state.max_total_chunks:
            return None
        for f in self._state.target_files:
            if f.status == FileEditStatus.PENDING:
                return f
        for f in self._state.target_files:
            if self._is_retriable(f):
                return f
        return None

    def get_pending_files(self) -> list[FileEditAttempt]:
        """Pending files plus failed files that can still be retried."""
        return [
            f
            for f in self._state.target_files
            if f.status == FileEditStatus.PENDING or self._is_retriable(f)
        ]

    def get_completed_files(self) -> list[FileEditAttempt]:
        return [f for f in self._state.target_files if f.status == FileEditStatus.DONE]

    def get_failed_files(self) -> list[FileEditAttempt]:
        """Failed files that have used up their attempts."""
        return [f for f in self._state.target_files if self._is_exhausted(f)]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def mark_in_progress(self, path: str) -> None:
        """Start an attempt on ``path``.

        Increments the file's attempts and the step's chunk count together.

        Raises:
            LedgerPathError: If ``path`` is not a target file.
        """
        f = self._find(path)
        f.status = FileEditStatus.IN_PROGRESS
        f.attempts += 1
        self._state.total_chunks_attempted += 1
        self._state.status = LedgerStatus.IN_PROGRESS
        logger.debug(
            "Ledger %s: %s attempt %d (chunk %d/%d)",
            self._state.step_id,
            path,
            f.attempts,
            self._state.total_chunks_attempted,
            self._state.max_total_chunks,
        )

    def mark_done(self, path: str, result: CompletedDiff | dict[str, Any]) -> None:
        """Record the accepted diff for ``path``."""
        f = self._find(path)
        f.status = FileEditStatus.DONE
        f.completed_diff = (
            result if isinstance(result, CompletedDiff) else CompletedDiff.model_validate(result)
        )
        f.last_error = None

    def mark_failed(self, path: str, error: str) -> None:
        """Record a failed attempt. Attempts were already counted."""
        f = self._find(path)
        f.status = FileEditStatus.FAILED
        f.last_error = error
        logger.debug("Ledger %s: %s failed: %s", self._state.step_id, path, error)

    def mark_skipped(self, path: str, reason: str | None = None) -> None:
        """Mark ``path`` as needing no change (counts as finished)."""
        f = self._find(path)
        f.status = FileEditStatus.SKIPPED
        f.last_error = reason

    def should_pause(self) -> PauseDecision:
        """Check the chunk cap and per-file attempt caps."""
        if self._state.total_chunks_attempted >= self._state.max_total_chunks:
            pending = self.get_pending_files()
            if pending:
                return PauseDecision(
                    pause=True,
                    reason=(
                        f"Reached maximum chunks ({self._state.max_total_chunks}) "
                        f"with {len(pending)} files remaining"
                    ),
                )

        exhausted = self.get_failed_files()
        if exhausted:
            paths = ", ".join(f.path for f in exhausted)
            return PauseDecision(
                pause=True,
                reason=f"{len(exhausted)} file(s) failed after maximum retries: {paths}",
            )

        return PauseDecision(pause=False)

    def pause(self, reason: str) -> None:
        self._state.status = LedgerStatus.PAUSED
        self._state.pause_reason = reason
        logger.warning("Ledger %s paused: %s", self._state.step_id, reason)

    def is_complete(self) -> bool:
        """True iff every target file is done or skipped."""
        return all(
            f.status in (FileEditStatus.DONE, FileEditStatus.SKIPPED)
            for f in self._state.target_files
        )

    def complete(self) -> None:
        self._state.status = LedgerStatus.COMPLETED
        self._state.completed_at = _now()

    def fail(self, reason: str) -> None:
        self._state.status = LedgerStatus.FAILED
        self._state.pause_reason = reason
        self._state.completed_at = _now()

    def pprint(self) -> None:
        """Pretty-print per-file status and chunk usage."""
        from agentstage.formatting import pprint_ledger

        pprint_ledger(self)

    def get_progress(self) -> LedgerProgress:
        files = self._state.target_files
        return LedgerProgress(
            total=len(files),
            done=sum(1 for f in files if f.status == FileEditStatus.DONE),
            failed=sum(1 for f in files if f.status == FileEditStatus.FAILED),
            pending=sum(
                1
                for f in files
                if f.status in (FileEditStatus.PENDING, FileEditStatus.IN_PROGRESS)
            ),
            skipped=sum(1 for f in files if f.status == FileEditStatus.SKIPPED),
            attempts_used=self._state.total_chunks_attempted,
            attempts_max=self._state.max_total_chunks,
        )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def get_combined_diff(self) -> str:
        """Join completed unified diffs with newlines, skipping empty ones."""
        return "\n".join(
            f.completed_diff.unified_diff
            for f in self.get_completed_files()
            if f.completed_diff is not None and f.completed_diff.unified_diff
        )

    def get_touched_files(self) -> list[dict[str, Any]]:
        """Completed files as ``{path, action, new_content, base_sha}`` for apply."""
        return [
            {
                "path": f.path,
                "action": f.completed_diff.action,
                "new_content": f.completed_diff.new_content,
                "base_sha": f.completed_diff.base_sha,
            }
            for f in self.get_completed_files()
            if f.completed_diff is not None
        ]

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_json(self) -> dict[str, Any]:
        """Serialize the full state to a JSON-safe dict."""
        return self._state.model_dump(mode="json")

    @classmethod
    def from_json(cls, state: EditAttemptLedgerState | dict[str, Any]) -> EditAttemptLedger:
        """Restore from ``to_json()`` output.

        Builds an empty ledger and replaces its whole state, so the
        constructor's target-list checks do not run.
        """
        ledger = cls(
            state["step_id"] if isinstance(state, dict) else state.step_id, []
        )
        if isinstance(state, EditAttemptLedgerState):
            ledger._state = state.model_copy(deep=True)
        else:
            ledger._state = EditAttemptLedgerState.model_validate(state)
        return ledger
