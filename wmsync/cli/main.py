"""wmsync CLI: refresh warehouse data and sync offline transactions.

Usage:
    wmsync refresh                 Refresh every configured API
    wmsync refresh --retry-failed  Refresh, then retry failed APIs
    wmsync sync                    Confirm pending transactions
    wmsync pending                 List pending transactions
    wmsync queue LOAD_TO_DOCK '{"DockDoor": "D1"}'
    wmsync status                  Show connectivity and pending count
    wmsync config show             Show resolved configuration
"""

import asyncio
import dataclasses
import json
import logging
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from wmsync import __version__
from wmsync.cli.config import WmsyncConfig, load_config_or_default
from wmsync.cli.factory import (
    configure_logging,
    create_coordinator,
    create_fetcher,
    create_http_client,
    create_orchestrator,
    create_probe,
    create_store,
    refresh_responsibilities,
)
from wmsync.cli.output import (
    RichNotifier,
    RichProgressObserver,
    format_consolidated_table,
    format_network_state,
    format_pending_table,
    format_results_table,
    format_summary,
    format_sync_report,
)
from wmsync.errors import (
    NothingToRetryError,
    RetryLimitExceededError,
    WmsyncError,
)
from wmsync.refresh.models import RefreshSummary
from wmsync.refresh.notifications import classify_refresh
from wmsync.refresh.registry import ResponsibilityRegistry
from wmsync.services.notifier import send
from wmsync.sync.models import SyncClassification

_log = logging.getLogger(__name__)

app = typer.Typer(
    name="wmsync",
    help="Warehouse data refresh and offline transaction sync",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

console = Console()

# --- Global state ---
_config_path: str | None = None


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to wmsync.yaml config file"
    ),
):
    """wmsync: warehouse data refresh and offline sync."""
    global _config_path
    _config_path = config


def _load() -> WmsyncConfig:
    """Load config and configure logging, exiting on invalid config."""
    try:
        cfg = load_config_or_default(config_path=_config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found:[/red] {e}")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(cfg.logging)
    return cfg


def _fail(error: WmsyncError) -> typer.Exit:
    console.print(f"[red]{error.code}[/red] {error.message}", markup=True)
    entry = error.error_code
    if entry is not None and entry.remediation:
        console.print(f"[dim]{entry.remediation}[/dim]")
    return typer.Exit(1)


def _echo(output: str) -> None:
    typer.echo(output.rstrip("\n"))


@app.command()
def version():
    """Show wmsync version."""
    console.print(f"[bold]wmsync[/bold] v{__version__}")


# --- Config commands ---


@config_app.command("show")
def config_show():
    """Display resolved configuration (secrets masked)."""
    cfg = _load()
    data = cfg.model_dump()
    token = data["api"].get("token") or ""
    data["api"]["token"] = ("***" + token[-4:]) if len(token) > 4 else ("***" if token else "")
    for section, values in data.items():
        console.print(f"[bold]{section}:[/bold]")
        for key, value in values.items():
            console.print(f"  {key}: {value}", markup=False)


# --- Refresh ---


@app.command()
def refresh(
    responsibility: Optional[list[str]] = typer.Option(
        None, "--responsibility", "-r", help="Responsibility to refresh (repeatable)"
    ),
    retry_failed: bool = typer.Option(
        False,
        "--retry-failed",
        help="Retry failed APIs until they succeed or run out of retries",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Refresh API data, one responsibility at a time."""
    cfg = _load()
    registry = ResponsibilityRegistry()
    names = list(responsibility or refresh_responsibilities(cfg, registry))

    async def _run() -> RefreshSummary:
        async with create_http_client(cfg) as client:
            probe = create_probe(cfg, client)
            orchestrator = create_orchestrator(cfg, probe, registry)
            if not json_output:
                orchestrator.events.add_observer(RichProgressObserver())
            fetch = create_fetcher(cfg, client, registry)

            first = await orchestrator.run(names, fetch)
            if retry_failed:
                while True:
                    try:
                        await orchestrator.retry_failed_only()
                    except NothingToRetryError:
                        break
                    except RetryLimitExceededError as e:
                        _log.warning("%s", e.message)
                        break

            results = orchestrator.last_results
            last = orchestrator.last_outcome or first
            summary = RefreshSummary.from_results(
                results,
                first.summary.started_at,
                last.summary.completed_at,
                cancelled=last.summary.cancelled,
            )
            records = orchestrator.consolidated()

        if json_output:
            payload = {
                "summary": summary.to_dict(),
                "results": [dataclasses.asdict(r) for r in results],
                "activity": [dataclasses.asdict(r) for r in records],
            }
            _echo(json.dumps(payload, indent=2, default=str))
        else:
            _echo(format_consolidated_table(records))
            _echo(format_results_table(results))
            _echo(format_summary(summary))
            send(RichNotifier(), classify_refresh(summary))
        return summary

    try:
        summary = asyncio.run(_run())
    except WmsyncError as e:
        raise _fail(e)
    if summary.failed:
        raise typer.Exit(1)


# --- Sync ---


@app.command()
def sync(
    responsibility: Optional[list[str]] = typer.Option(
        None, "--responsibility", "-r", help="Responsibility to sync (repeatable)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Confirm locally queued transactions with the backend."""
    cfg = _load()
    names = list(responsibility or cfg.sync.responsibilities)

    async def _run():
        store = create_store(cfg)
        async with create_http_client(cfg) as client:
            probe = create_probe(cfg, client)
            coordinator = create_coordinator(
                cfg,
                client,
                probe,
                store,
                notifier=None if json_output else RichNotifier(),
            )
            return await coordinator.sync_all(names)

    try:
        report = asyncio.run(_run())
    except WmsyncError as e:
        raise _fail(e)

    _echo(format_sync_report(report, as_json=json_output))
    if report.classification in (SyncClassification.failed, SyncClassification.partial):
        raise typer.Exit(1)


# --- Pending transactions ---


@app.command()
def pending(
    responsibility: Optional[str] = typer.Option(
        None, "--responsibility", "-r", help="Only this responsibility"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List transactions waiting to be synced."""
    cfg = _load()

    async def _run():
        return await create_store(cfg).list_pending(responsibility)

    transactions = asyncio.run(_run())
    _echo(format_pending_table(transactions, as_json=json_output))


@app.command()
def queue(
    responsibility: str = typer.Argument(help="Responsibility the transaction belongs to"),
    payload: str = typer.Argument("{}", help="Transaction fields as a JSON object"),
):
    """Queue a transaction locally for the next sync."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON payload:[/red] {e}")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        console.print("[red]Payload must be a JSON object.[/red]")
        raise typer.Exit(1)

    cfg = _load()

    async def _run():
        return await create_store(cfg).add(responsibility, data)

    transaction = asyncio.run(_run())
    console.print(f"[green]Queued {responsibility} transaction {transaction.id}[/green]")


# --- Status ---


@app.command()
def status():
    """Show connectivity and the number of pending transactions."""
    cfg = _load()

    async def _run():
        store = create_store(cfg)
        async with create_http_client(cfg) as client:
            state = await create_probe(cfg, client).get_current_state()
        return state, await store.count_pending()

    state, pending_count = asyncio.run(_run())
    _echo(format_network_state(state, pending_count))


if __name__ == "__main__":
    app()
