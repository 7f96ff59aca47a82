"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich table output (default) and machine-parseable
JSON output (--json flag). All formatting goes through these functions
so the CLI commands stay clean. The observer and notifier classes print
live refresh progress and notifications to the console.
"""

import dataclasses
import json
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from wmsync.activity.models import ConsolidatedApiRecord
from wmsync.refresh.models import (
    RefreshProgress,
    RefreshResult,
    RefreshSummary,
)
from wmsync.services.connectivity import NetworkState
from wmsync.services.notifier import Notification, NotificationType
from wmsync.services.transaction_store import PendingTransaction
from wmsync.sync.models import SyncReport

console = Console()

STATUS_COLORS = {
    "pending": "yellow",
    "processing": "blue",
    "success": "green",
    "synced": "green",
    "error": "red",
    "errored": "red",
    "failure": "red",
    "failed": "red",
    "partial": "yellow",
    "offline": "magenta",
    "busy": "dim",
}

NOTIFICATION_STYLES = {
    NotificationType.success: "green",
    NotificationType.info: "cyan",
    NotificationType.warning: "yellow",
    NotificationType.error: "red",
}


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def _colored(status: str) -> str:
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status}[/{color}]"


def format_time(value: datetime | None) -> str:
    if value is None:
        return "—"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def format_duration(ms: int | None) -> str:
    """Format milliseconds as "850ms", "12s" or "3m 05s"."""
    if ms is None:
        return "—"
    if ms < 1000:
        return f"{ms}ms"
    seconds = round(ms / 1000)
    if seconds < 60:
        return f"{seconds}s"
    return f"{seconds // 60}m {seconds % 60:02d}s"


def format_consolidated_table(
    records: Sequence[ConsolidatedApiRecord], as_json: bool = False
) -> str:
    """Format consolidated API records as a Rich table or JSON.

    Args:
        records: Consolidated records in display order.
        as_json: If True, return JSON string instead of Rich table.

    Returns:
        Formatted string output.
    """
    if as_json:
        return _to_json([dataclasses.asdict(r) for r in records])

    if not records:
        return "No API activity."

    table = Table(title="API Activity", show_lines=True)
    table.add_column("API", style="cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Records", justify="right")
    table.add_column("Retries", justify="right")
    table.add_column("Last Sync")
    table.add_column("Error")

    for record in records:
        inserted = f"{record.inserted_records}/{record.total_records}"
        if record.can_expand:
            inserted += " [yellow]*[/yellow]"
        table.add_row(
            record.api_name,
            record.type.value,
            _colored(record.status.value),
            inserted,
            str(record.retry_count),
            format_time(record.last_sync_time),
            record.error[:50] if record.error else "—",
        )

    with console.capture() as capture:
        console.print(table)
    return capture.get()


def format_results_table(
    results: Sequence[RefreshResult], as_json: bool = False
) -> str:
    """Format per-responsibility refresh results as a Rich table or JSON."""
    if as_json:
        return _to_json([dataclasses.asdict(r) for r in results])

    if not results:
        return "No results."

    table = Table(title="Refresh Results")
    table.add_column("Responsibility", style="cyan")
    table.add_column("Outcome")
    table.add_column("Inserted", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Error")

    for result in results:
        if result.offline:
            outcome = "offline"
        elif result.success:
            outcome = "success"
        else:
            outcome = "failed"
        table.add_row(
            result.responsibility,
            _colored(outcome),
            f"{result.records_inserted}/{result.records_total}",
            format_duration(result.duration_ms),
            result.error or "—",
        )

    with console.capture() as capture:
        console.print(table)
    return capture.get()


def format_summary(summary: RefreshSummary, as_json: bool = False) -> str:
    if as_json:
        return _to_json(summary.to_dict())

    lines = [
        f"[bold]Succeeded:[/bold] [green]{summary.succeeded}[/green]",
        f"[bold]Failed:[/bold]    [red]{summary.failed}[/red]",
        f"[bold]Offline:[/bold]   [magenta]{summary.offline}[/magenta]",
        f"[bold]Inserted:[/bold]  {summary.total_inserted}",
        f"[bold]Duration:[/bold]  {format_duration(summary.duration_ms)}",
    ]
    if summary.by_type:
        lines.append("")
        for api_type, breakdown in summary.by_type.items():
            lines.append(
                f"  {api_type.value}: {breakdown.successful}/{breakdown.total} ok"
                + (f", [red]{breakdown.failed} failed[/red]" if breakdown.failed else "")
            )
    title = "Refresh Cancelled" if summary.cancelled else "Refresh Summary"

    with console.capture() as capture:
        console.print(Panel("\n".join(lines), title=title, border_style="cyan"))
    return capture.get()


def format_sync_report(report: SyncReport, as_json: bool = False) -> str:
    """Format a sync report as a Rich table or JSON."""
    if as_json:
        return _to_json(dataclasses.asdict(report))

    header = (
        f"Sync {_colored(report.classification.value)}: "
        f"{report.synced} synced, {report.errored} failed"
    )
    if report.pending_count is not None:
        header += f", {report.pending_count} pending"
    if report.message:
        header += f"\n{report.message}"

    with console.capture() as capture:
        console.print(header)
        if report.outcomes:
            table = Table(title="Sync Outcomes")
            table.add_column("Responsibility", style="cyan")
            table.add_column("Status")
            table.add_column("Confirmed", justify="right")
            table.add_column("Error")
            for outcome in report.outcomes:
                table.add_row(
                    outcome.responsibility,
                    _colored(outcome.status.value),
                    str(outcome.confirmed),
                    outcome.error or "—",
                )
            console.print(table)
    return capture.get()


def format_pending_table(
    transactions: Sequence[PendingTransaction], as_json: bool = False
) -> str:
    """Format pending transactions as a Rich table or JSON."""
    if as_json:
        return _to_json([dataclasses.asdict(t) for t in transactions])

    if not transactions:
        return "No pending transactions."

    table = Table(title=f"Pending Transactions ({len(transactions)})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Responsibility")
    table.add_column("Status")
    table.add_column("Retries", justify="right")
    table.add_column("Created")
    table.add_column("Error")
    for t in transactions:
        table.add_row(
            t.id[:12],
            t.responsibility,
            _colored(t.status.value),
            str(t.retry_count),
            t.created_at[:19] if t.created_at else "—",
            t.error_message[:40] if t.error_message else "—",
        )

    with console.capture() as capture:
        console.print(table)
    return capture.get()


def format_network_state(state: NetworkState, pending_count: int) -> str:
    if state.is_online:
        connection = "[green]online[/green]"
    elif state.is_connected:
        connection = "[yellow]connected, internet not reachable[/yellow]"
    else:
        connection = "[red]offline[/red]"
    lines = [
        f"[bold]Network:[/bold]  {connection}",
        f"[bold]Type:[/bold]     {state.type or '—'}",
        f"[bold]Pending:[/bold]  {pending_count} transaction(s)",
    ]
    with console.capture() as capture:
        console.print(Panel("\n".join(lines), title="Status", border_style="cyan"))
    return capture.get()


class RichNotifier:
    """Notifier that prints notifications as Rich panels."""

    def __init__(self, target: Console | None = None) -> None:
        self._console = target or console

    def notify(self, notification: Notification) -> None:
        style = NOTIFICATION_STYLES[notification.type]
        self._console.print(
            Panel(
                notification.message,
                title=notification.title,
                border_style=style,
            )
        )


class RichProgressObserver:
    """Refresh observer printing one line per progress step and result."""

    def __init__(self, target: Console | None = None) -> None:
        self._console = target or console

    async def on_refresh_started(self, responsibilities: list[str]) -> None:
        self._console.print(
            f"[bold]Refreshing {len(responsibilities)} API(s)[/bold]"
        )

    async def on_progress(self, progress: RefreshProgress) -> None:
        eta = progress.estimated_time_remaining
        eta_text = f" ETA {format_duration(eta)}" if eta is not None else ""
        api_type = progress.current_api_type.value if progress.current_api_type else "?"
        self._console.print(
            f"[dim][{progress.current}/{progress.total} {progress.percentage:>3}%][/dim] "
            f"{progress.current_api} ({api_type}){eta_text}"
        )

    async def on_responsibility_completed(self, result: RefreshResult) -> None:
        if result.offline:
            self._console.print(f"  [magenta]offline[/magenta] {result.responsibility}")
        elif not result.success:
            self._console.print(
                f"  [red]failed[/red] {result.responsibility}: {result.error}"
            )
