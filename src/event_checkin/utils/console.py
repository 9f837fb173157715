"""Terminal rendering of check-in outcomes and attendance statistics."""

from __future__ import annotations

import os
from typing import Optional, Tuple

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.checkin import CheckinOutcome, CheckinState, CheckinTally
from ..models import AggregateStats, RecentEntry, RecentPage

__all__ = ["CheckinConsole"]

_OUTCOME_STYLES = {
    CheckinState.MARKED: "green",
    CheckinState.ALREADY_ATTENDED: "yellow",
    CheckinState.FAILED: "red",
}


class CheckinConsole:
    """Rich-backed renderer used by the command-line front end."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(no_color=os.getenv("NO_COLOR") is not None)

    def outcome(self, outcome: CheckinOutcome) -> None:
        style = _OUTCOME_STYLES.get(outcome.state, "white")
        title = outcome.title
        if outcome.state is CheckinState.MARKED:
            title = f"✓ {title}"
        self.console.print(
            Panel(
                Text("\n".join(outcome.summary_lines())),
                title=title,
                title_align="left",
                border_style=style,
            )
        )

    def stats(self, stats: Optional[AggregateStats], *, stale: bool = False) -> None:
        if stats is None:
            self.console.print(
                Text("No statistics available yet. Try again when the server is reachable.", style="dim")
            )
            return

        summary = Table(box=box.SIMPLE_HEAVY, show_header=True, header_style="bold")
        summary.add_column("Total", justify="right")
        summary.add_column("Scanned", justify="right", style="cyan")
        summary.add_column("Manual", justify="right", style="magenta")
        summary.add_row(str(stats.total), str(stats.scanned_count), str(stats.manual_count))
        self.console.print(summary)

        if stats.by_year:
            years = Table(title="By year", box=box.MINIMAL)
            years.add_column("Year")
            years.add_column("Attended", justify="right")
            for row in stats.by_year:
                years.add_row(row.year, str(row.attended))
            self.console.print(years)

        if stats.recent_entries:
            self._entries("Recent Check-ins", stats.recent_entries)
        if stale:
            self.console.print(Text("Showing last known figures; refresh failed.", style="yellow"))

    def recent(self, page: RecentPage) -> None:
        title = f"Recent Check-ins (page {page.page}/{max(page.total_pages, 1)}, {page.total} total)"
        if not page.entries:
            self.console.print(Text(f"{title}: nothing to show", style="dim"))
            return
        self._entries(title, page.entries)

    def tally(self, tally: CheckinTally) -> None:
        line = Text()
        line.append(f"{tally.marked} checked in", style="green")
        line.append(" · ")
        line.append(f"{tally.already_attended} already attended", style="yellow")
        line.append(" · ")
        line.append(f"{tally.failed} failed", style="red")
        if tally.last_added:
            line.append(f"  (last added: {tally.last_added})", style="dim")
        self.console.print(line)

    def _entries(self, title: str, entries: Tuple[RecentEntry, ...]) -> None:
        self.console.print(Text(title, style="bold"))
        table = Table(box=box.SIMPLE)
        table.add_column("Name")
        table.add_column("ID")
        table.add_column("Method")
        table.add_column("Time", style="dim")
        for entry in entries:
            method_style = "cyan" if entry.method == "Scanned" else "magenta"
            table.add_row(entry.name, entry.registrant_id, Text(entry.method, style=method_style), entry.timestamp)
        self.console.print(table)
