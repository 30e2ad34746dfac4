"""
Rendering functions for repostat output.

This module turns a ResultSet into the aligned status table.
``render`` returns plain text; ``print_table`` prints the same layout
with colors through rich.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from rich.console import Console
from rich.text import Text

from .domain import Distance, ResultEntry, ResultSet

console = Console()
err_console = Console(stderr=True)

COLUMN_SEPARATOR = "  "
ERROR_INDICATOR = "!!!"
ELLIPSIS = "..."

STYLES = {
    'name': "bold cyan",
    'symbols': "yellow",
    'branch': "green",
    'remote': "blue",
    'subject': "",
    'error_indicator': "bold red",
    'error': "red",
}

DISTANCE_STYLES = {
    Distance.SAME: "green",
    Distance.AHEAD: "yellow",
    Distance.BEHIND: "red",
    Distance.DIVERGED: "magenta",
    Distance.NO_UPSTREAM: "dim",
}

Cell = Tuple[str, str]


@dataclass(frozen=True)
class ColumnWidths:
    """Widths of the padded columns, derived from successful rows only."""
    name: int = 0
    branch: int = 0
    remote: int = 0


def compute_widths(result_set: ResultSet) -> ColumnWidths:
    """
    Compute column widths across all successful outcomes.

    Failure rows are ignored so that one long error message (or name)
    cannot stretch the whole table.

    Args:
        result_set: Outcomes to render

    Returns:
        ColumnWidths for the name, branch and remote columns
    """
    name = branch = remote = 0
    for entry in result_set:
        if not entry.outcome.ok:
            continue
        status = entry.outcome.status
        name = max(name, len(entry.ref.name))
        branch = max(branch, len(status.branch))
        remote = max(remote, len(status.remote_name or ""))
    return ColumnWidths(name=name, branch=branch, remote=remote)


def truncate_subject(subject: str, width: Optional[int]) -> str:
    """
    Shorten a commit subject to at most ``width`` characters.

    Args:
        subject: Commit subject line
        width: Maximum length; None or 0 means unlimited

    Returns:
        The subject, truncated with '...' when too long
    """
    if not width or len(subject) <= width:
        return subject
    if width <= len(ELLIPSIS):
        return subject[:width]
    return subject[:width - len(ELLIPSIS)] + ELLIPSIS


def format_row(entry: ResultEntry, widths: ColumnWidths,
               subject_width: Optional[int] = None) -> List[Cell]:
    """
    Lay out one table row as (text, style) cells.

    Args:
        entry: Row to format
        widths: Column widths for the whole table
        subject_width: Maximum commit subject length (None = unlimited)

    Returns:
        Cells in display order; padding is already applied
    """
    name = entry.ref.name.ljust(widths.name)
    outcome = entry.outcome

    if not outcome.ok:
        return [
            (name, STYLES['name']),
            (ERROR_INDICATOR, STYLES['error_indicator']),
            (f"{outcome.kind.label}: {outcome.message}", STYLES['error']),
        ]

    status = outcome.status
    return [
        (name, STYLES['name']),
        (status.symbols, STYLES['symbols']),
        (status.branch.ljust(widths.branch), STYLES['branch']),
        (status.distance.marker, DISTANCE_STYLES[status.distance]),
        ((status.remote_name or "").ljust(widths.remote), STYLES['remote']),
        (truncate_subject(status.last_commit_subject, subject_width), STYLES['subject']),
    ]


def format_rows(result_set: ResultSet, subject_width: Optional[int] = None) -> List[List[Cell]]:
    """Lay out every row of the result set, in result set order."""
    widths = compute_widths(result_set)
    return [format_row(entry, widths, subject_width) for entry in result_set]


def render(result_set: ResultSet, subject_width: Optional[int] = None) -> str:
    """
    Render the status table as plain text.

    Pure and deterministic: rendering the same ResultSet twice gives
    identical output. An empty ResultSet renders as an empty string.

    Args:
        result_set: Outcomes to render, already in display order
        subject_width: Maximum commit subject length (None = unlimited)

    Returns:
        One line per entry, without a trailing newline
    """
    lines = []
    for cells in format_rows(result_set, subject_width):
        line = COLUMN_SEPARATOR.join(text for text, _ in cells)
        lines.append(line.rstrip())
    return "\n".join(lines)


def build_table_text(result_set: ResultSet, subject_width: Optional[int] = None) -> Text:
    """Build the styled table; its plain text equals ``render``'s output."""
    table = Text()
    for i, cells in enumerate(format_rows(result_set, subject_width)):
        line = Text()
        for j, (text, style) in enumerate(cells):
            if j:
                line.append(COLUMN_SEPARATOR)
            line.append(text, style=style or None)
        line.rstrip()
        if i:
            table.append("\n")
        table.append_text(line)
    return table


def print_table(result_set: ResultSet, out: Optional[Console] = None,
                subject_width: Optional[int] = None) -> None:
    """
    Print the status table.

    Args:
        result_set: Outcomes to render
        out: Console to print to (default: stdout console)
        subject_width: Maximum commit subject length (None = unlimited)
    """
    if not len(result_set):
        return
    out = out or console
    out.print(build_table_text(result_set, subject_width), soft_wrap=True)


def render_summary(result_set: ResultSet) -> str:
    """
    Summarize a run, e.g. '3 succeeded, 1 failed'.

    Cancelled runs also report how many repositories were not inspected.
    """
    summary = f"{result_set.succeeded} succeeded, {result_set.failed} failed"
    if result_set.missing:
        summary += f", {result_set.missing} not inspected"
    return summary


def print_summary(result_set: ResultSet, out: Optional[Console] = None) -> None:
    """Print the run summary to stderr (or the given console)."""
    out = out or err_console
    style = "green" if result_set.failed == 0 and result_set.complete else "yellow"
    if result_set.succeeded == 0 and result_set.failed:
        style = "red"
    out.print(Text(render_summary(result_set), style=style))
