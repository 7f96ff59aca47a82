"""Tests for CLI output formatting."""

import io
import json
from datetime import timedelta

import pytest
from rich.console import Console

from tests.helpers import BASE_TIME, make_record
from wmsync.activity.consolidation import ActivityConsolidationEngine
from wmsync.activity.models import ActivityStatus, ApiType
from wmsync.cli.output import (
    RichNotifier,
    RichProgressObserver,
    format_consolidated_table,
    format_duration,
    format_network_state,
    format_pending_table,
    format_results_table,
    format_summary,
    format_sync_report,
    format_time,
)
from wmsync.refresh.models import RefreshProgress, RefreshResult, RefreshSummary
from wmsync.services.connectivity import DISCONNECTED, NetworkState
from wmsync.services.notifier import Notification, NotificationType
from wmsync.services.transaction_store import PendingTransaction
from wmsync.sync.models import OutcomeStatus, SyncClassification, SyncOutcome, SyncReport

RESULTS = [
    RefreshResult("ITEM", True, api_type=ApiType.master, records_total=50, records_inserted=50),
    RefreshResult("REASON", False, error="HTTP 500", api_type=ApiType.config),
    RefreshResult("SHIP_CONFIRM", False, offline=True, api_type=ApiType.transactional),
]


def recording_console() -> Console:
    return Console(file=io.StringIO(), width=120, force_terminal=False)


class TestFormatHelpers:
    @pytest.mark.parametrize(
        "ms,expected",
        [(None, "—"), (850, "850ms"), (12_000, "12s"), (185_000, "3m 05s")],
    )
    def test_format_duration(self, ms, expected):
        assert format_duration(ms) == expected

    def test_format_time(self):
        assert format_time(None) == "—"
        assert format_time(BASE_TIME) == "2026-03-02 08:00:00"


class TestConsolidatedTable:
    """Tests for API activity rendering."""

    def test_text(self):
        records = ActivityConsolidationEngine().consolidate(
            [make_record("ITEM", total=10, inserted=10), make_record("REASON", api_type=ApiType.config)]
        )
        output = format_consolidated_table(records)
        assert "ITEM" in output
        assert "REASON" in output
        assert "success" in output

    def test_json(self):
        records = ActivityConsolidationEngine().consolidate(
            [make_record("ITEM", status=ActivityStatus.error, error="boom")]
        )
        parsed = json.loads(format_consolidated_table(records, as_json=True))
        assert parsed[0]["api_name"] == "ITEM"
        assert parsed[0]["status"] == "error"
        assert parsed[0]["error"] == "boom"

    def test_empty(self):
        assert format_consolidated_table([]) == "No API activity."


class TestResultsAndSummary:
    def test_results_table(self):
        output = format_results_table(RESULTS)
        assert "offline" in output
        assert "failed" in output
        assert "HTTP 500" in output

    def test_results_json(self):
        parsed = json.loads(format_results_table(RESULTS, as_json=True))
        assert [r["responsibility"] for r in parsed] == ["ITEM", "REASON", "SHIP_CONFIRM"]

    def test_summary(self):
        summary = RefreshSummary.from_results(RESULTS, BASE_TIME, BASE_TIME + timedelta(seconds=3))
        output = format_summary(summary)
        assert "Refresh Summary" in output
        assert "Succeeded" in output
        assert "config: 0/1 ok" in output

    def test_cancelled_summary_title(self):
        summary = RefreshSummary.from_results(RESULTS[:1], BASE_TIME, BASE_TIME, cancelled=True)
        assert "Refresh Cancelled" in format_summary(summary)

    def test_summary_json(self):
        summary = RefreshSummary.from_results(RESULTS, BASE_TIME, BASE_TIME)
        parsed = json.loads(format_summary(summary, as_json=True))
        assert parsed["offline"] == 1
        assert parsed["by_type"]["master"]["successful"] == 1


class TestSyncReport:
    def test_text(self):
        report = SyncReport(
            classification=SyncClassification.partial,
            synced=1,
            errored=1,
            outcomes=(
                SyncOutcome("LOAD_TO_DOCK", OutcomeStatus.synced, confirmed=3),
                SyncOutcome("PICK", OutcomeStatus.errored, error="Invalid LPN"),
            ),
            pending_count=1,
        )
        output = format_sync_report(report)
        assert "Sync partial: 1 synced, 1 failed, 1 pending" in output
        assert "Invalid LPN" in output
        assert "[green]" not in output

    def test_offline_without_outcomes(self):
        report = SyncReport(classification=SyncClassification.offline, message="Data saved locally.")
        output = format_sync_report(report)
        assert "Sync offline: 0 synced, 0 failed" in output
        assert "Data saved locally." in output
        assert "[magenta]" not in output

    def test_json(self):
        report = SyncReport(classification=SyncClassification.busy)
        assert json.loads(format_sync_report(report, as_json=True))["classification"] == "busy"


class TestPendingTable:
    def test_empty(self):
        assert format_pending_table([]) == "No pending transactions."

    def test_rows(self):
        transactions = [
            PendingTransaction(
                id="0f8e7c6a-1111-2222-3333-444455556666",
                responsibility="LOAD_TO_DOCK",
                payload={"DockDoor": "D1"},
                created_at="2026-03-02T08:00:00+00:00",
            )
        ]
        output = format_pending_table(transactions)
        assert "0f8e7c6a-111" in output
        assert "LOAD_TO_DOCK" in output
        parsed = json.loads(format_pending_table(transactions, as_json=True))
        assert parsed[0]["payload"] == {"DockDoor": "D1"}
        assert parsed[0]["status"] == "pending"


class TestNetworkState:
    def test_online(self):
        state = NetworkState(is_connected=True, is_internet_reachable=True, type="http")
        output = format_network_state(state, 2)
        assert "online" in output
        assert "2 transaction(s)" in output

    def test_offline(self):
        assert "offline" in format_network_state(DISCONNECTED, 0)

    def test_unreachable(self):
        state = NetworkState(is_connected=True, is_internet_reachable=False)
        assert "not reachable" in format_network_state(state, 0)


class TestConsoleAdapters:
    """Tests for the notifier and progress observer."""

    def test_rich_notifier(self):
        target = recording_console()
        RichNotifier(target).notify(
            Notification(NotificationType.success, "Sync Complete", "Successfully synced 1 transaction(s)!")
        )
        output = target.file.getvalue()
        assert "Sync Complete" in output
        assert "Successfully synced 1 transaction(s)!" in output

    @pytest.mark.asyncio
    async def test_progress_observer(self):
        target = recording_console()
        observer = RichProgressObserver(target)

        await observer.on_refresh_started(["ITEM", "REASON"])
        await observer.on_progress(RefreshProgress.at(1, 2, "ITEM", ApiType.master))
        await observer.on_progress(
            RefreshProgress.at(2, 2, "REASON", ApiType.config, estimated_time_remaining=1500)
        )
        for result in RESULTS:
            await observer.on_responsibility_completed(result)

        output = target.file.getvalue()
        assert "Refreshing 2 API(s)" in output
        assert "[1/2  50%] ITEM (master)" in output
        assert "ETA 2s" in output
        assert "failed REASON: HTTP 500" in output
        assert "offline SHIP_CONFIRM" in output
