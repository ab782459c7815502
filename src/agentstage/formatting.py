"""Pretty-print support for staged edits, ledgers and pause payloads.

Uses rich library for formatted terminal output. Every function prints
to a rich Console; pass ``file`` to capture the output (tests, logs).

To avoid circular imports, this module does NOT import domain models
at module level. Functions access object attributes dynamically.
"""
from __future__ import annotations

from typing import Any

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

_ACTION_STYLES: dict[str, str] = {
    "create": "bold green",
    "update": "bold yellow",
    "delete": "bold red",
}

_STATUS_STYLES: dict[str, str] = {
    "pending": "dim",
    "in_progress": "cyan",
    "done": "green",
    "failed": "red",
    "skipped": "dim italic",
}


def _make_console(file: Any = None) -> Console:
    """Create a Console, optionally writing to a file-like object."""
    if file is not None:
        return Console(file=file, force_terminal=False, width=100)
    return Console()


def _staged_table(summary: list[dict[str, Any]], title: str) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Action", width=8)
    table.add_column("Path", no_wrap=False)
    table.add_column("Edits", justify="right", width=6)
    for row in summary:
        action = row["action"]
        table.add_row(
            Text(action, style=_ACTION_STYLES.get(action, "white")),
            Text(str(row["path"])),
            str(row["edit_count"]),
        )
    return table


def pprint_staged_buffer(buffer: Any, *, file: Any = None) -> None:
    """Pretty-print a StagedEditBuffer's pending changes.

    Args:
        buffer: A StagedEditBuffer instance.
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)
    summary = buffer.to_summary()
    if not summary:
        console.print(Text("No staged changes", style="dim"))
        return
    console.print(_staged_table(summary, f"Staged Changes ({len(summary)})"))


def pprint_ledger(ledger: Any, *, file: Any = None) -> None:
    """Pretty-print an EditAttemptLedger's per-file status and progress.

    Args:
        ledger: An EditAttemptLedger instance.
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)
    state = ledger.state

    table = Table(title=f"Edit Ledger: {escape(state.step_id)}", show_lines=False)
    table.add_column("Status", width=12)
    table.add_column("Path", no_wrap=False)
    table.add_column("Attempts", justify="right", width=9)
    table.add_column("Last error", no_wrap=False)
    for f in state.target_files:
        status = f.status.value
        error = f.last_error or ""
        if len(error) > 60:
            error = error[:57] + "..."
        table.add_row(
            Text(status, style=_STATUS_STYLES.get(status, "white")),
            Text(f.path),
            f"{f.attempts}/{state.max_attempts_per_file}",
            Text(error),
        )

    p = ledger.get_progress()
    footer = Text.from_markup(
        f"[dim]{p.done} done, {p.skipped} skipped, {p.failed} failed, "
        f"{p.pending} pending | chunks {p.attempts_used}/{p.attempts_max} | "
        f"status: {escape(state.status.value)}[/dim]"
    )
    console.print(Group(table, footer))


def pprint_pause_payload(payload: dict[str, Any], *, file: Any = None) -> None:
    """Pretty-print a ``loop_paused`` payload as a review panel.

    Args:
        payload: Output of ``build_loop_paused_payload()``.
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)

    tokens = payload.get("total_tokens") or {}
    fields = [
        ("Reason", str(payload.get("reason"))),
        (
            "Iterations",
            f"{payload.get('iteration_count')} / {payload.get('max_total_iterations')}",
        ),
        ("Continues", f"{payload.get('continue_count')} / {payload.get('max_continues')}"),
        ("Tool calls", str(payload.get("tool_calls_count"))),
        ("Tokens", f"{tokens.get('input', 0)} in + {tokens.get('output', 0)} out"),
    ]
    # Values are agent or exception text; append them as plain Text, never markup
    summary = Text()
    for label, value in fields:
        summary.append(f"{label}: ", style="bold")
        summary.append(value + "\n")
    if payload.get("error_message"):
        summary.append("Error: ", style="bold red")
        summary.append(str(payload["error_message"]) + "\n")
    summary.rstrip()

    parts: list[Any] = [summary]
    staged = payload.get("staged_files") or []
    if staged:
        parts.append(Text(""))
        parts.append(_staged_table(staged, f"Staged Changes ({len(staged)})"))

    can_continue = payload.get("can_continue")
    runs_left = escape(str(payload.get("remaining_continues")))
    subtitle = (
        f"[green]Continue available ({runs_left} run(s) left)[/green]"
        if can_continue
        else "[red]Budget exhausted[/red]"
    )
    console.print(Panel(
        Group(*parts),
        title="[bold]Loop Paused[/bold]",
        subtitle=subtitle,
        border_style="yellow" if can_continue else "red",
    ))
