"""Tests for TransactionSyncCoordinator."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from tests.helpers import ONLINE
from wmsync.errors import EmptyResponsibilitiesError, NetworkUnavailableError
from wmsync.services.connectivity import DISCONNECTED
from wmsync.services.notifier import NotificationType
from wmsync.services.transaction_store import PendingTransaction
from wmsync.sync.coordinator import (
    OFFLINE_MESSAGE,
    TransactionSyncCoordinator,
    classify_sync,
    sync_notification,
)
from wmsync.sync.models import (
    ConfirmResult,
    OutcomeStatus,
    SyncClassification,
    SyncReport,
)
from wmsync.sync.routing import ConfirmRoutingTable


class FakeStore:
    """Store returning a fixed pending list and counting reads."""

    def __init__(self, pending: int = 0, fail: bool = False) -> None:
        self.pending = [PendingTransaction(id=str(i), responsibility="X") for i in range(pending)]
        self.fail = fail
        self.calls = 0

    async def list_pending(self, responsibility=None):
        self.calls += 1
        if self.fail:
            raise RuntimeError("database is locked")
        return list(self.pending)


def confirm_with(outcomes: dict):
    """Routing table whose primitives return or raise canned outcomes."""
    calls: list[str] = []
    routes = ConfirmRoutingTable()

    def make(name):
        async def confirm(responsibility):
            calls.append(responsibility)
            outcome = outcomes[name]
            if isinstance(outcome, Exception):
                raise outcome
            if callable(outcome):
                return await outcome(responsibility)
            return outcome

        return confirm

    for name in outcomes:
        routes.register(name, make(name))
    return routes, calls


OK = ConfirmResult(success=True, confirmed=2)
FAILED = ConfirmResult(success=False, error="Transaction failed: Invalid LPN")


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore(pending=3)


class TestSyncAll:
    """Tests for sync pass classification."""

    @pytest.mark.asyncio
    async def test_success(self, probe, fake_store, notifier):
        routes, calls = confirm_with({"A": OK, "B": OK})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes, notifier)

        report = await coordinator.sync_all(["A", "B"])

        assert calls == ["A", "B"]
        assert report.classification == SyncClassification.success
        assert report.synced == 2
        assert report.errored == 0
        assert report.pending_count == 3
        assert [o.confirmed for o in report.outcomes] == [2, 2]
        assert coordinator.pending_count == 3
        assert coordinator.has_pending is True
        assert notifier.last.type == NotificationType.success
        assert notifier.last.message == "Successfully synced 2 transaction(s)!"

    @pytest.mark.asyncio
    async def test_partial(self, probe, fake_store, notifier):
        routes, _ = confirm_with({"A": OK, "B": FAILED})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes, notifier)

        report = await coordinator.sync_all(["A", "B"])

        assert report.classification == SyncClassification.partial
        assert report.errors == ["B: Transaction failed: Invalid LPN"]
        assert notifier.last.type == NotificationType.error
        assert notifier.last.title == "Partial Sync"
        assert "but 1 failed" in notifier.last.message

    @pytest.mark.asyncio
    async def test_failed(self, probe, fake_store, notifier):
        routes, calls = confirm_with({"A": RuntimeError("boom"), "B": FAILED})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes, notifier)

        report = await coordinator.sync_all(["A", "B"])

        assert calls == ["A", "B"]
        assert report.classification == SyncClassification.failed
        assert report.errored == 2
        assert report.outcomes[0].error == "boom"
        assert notifier.last.title == "Sync Failed"

    @pytest.mark.asyncio
    async def test_unknown_route_is_errored(self, probe, fake_store):
        routes, calls = confirm_with({"A": OK})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes)

        report = await coordinator.sync_all(["NOPE", "A"])

        assert calls == ["A"]
        assert report.classification == SyncClassification.partial
        assert report.outcomes[0].status == OutcomeStatus.errored
        assert "NOPE" in report.outcomes[0].error

    @pytest.mark.asyncio
    async def test_empty_list_raises(self, probe, fake_store):
        routes, _ = confirm_with({})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes)
        with pytest.raises(EmptyResponsibilitiesError):
            await coordinator.sync_all([])
        assert coordinator.is_syncing is False


class TestOffline:
    """Tests for connectivity gating."""

    @pytest.mark.asyncio
    async def test_offline_makes_no_calls(self, offline_probe, fake_store, notifier):
        routes, calls = confirm_with({"A": OK})
        coordinator = TransactionSyncCoordinator(offline_probe, fake_store, routes, notifier)

        report = await coordinator.sync_all(["A"])

        assert calls == []
        assert fake_store.calls == 0
        assert report.classification == SyncClassification.offline
        assert report.pending_count is None
        assert report.message == OFFLINE_MESSAGE
        assert notifier.last.type == NotificationType.info
        assert notifier.last.title == "No Internet Connection"
        assert coordinator.is_syncing is False

    @pytest.mark.asyncio
    async def test_offline_result_stops_pass(self, probe, fake_store, notifier):
        lost = ConfirmResult(success=False, offline=True, error="Connection lost")
        routes, calls = confirm_with({"A": OK, "B": lost, "C": OK})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes, notifier)

        report = await coordinator.sync_all(["A", "B", "C"])

        assert calls == ["A", "B"]
        assert report.classification == SyncClassification.offline
        assert [o.status for o in report.outcomes] == [
            OutcomeStatus.synced,
            OutcomeStatus.offline,
        ]
        assert report.message == "Connection lost"
        assert report.pending_count == 3
        assert notifier.last.title == "Offline Mode"
        assert notifier.last.message == "Connection lost"

    @pytest.mark.asyncio
    async def test_network_error_stops_pass(self, probe, fake_store):
        routes, calls = confirm_with({"A": NetworkUnavailableError("A"), "B": OK})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes)

        report = await coordinator.sync_all(["A", "B"])

        assert calls == ["A"]
        assert report.classification == SyncClassification.offline
        assert report.errored == 0
        assert "A" in report.message


class TestBusy:
    """Tests for the one-pass-at-a-time guard."""

    @pytest.mark.asyncio
    async def test_concurrent_call_is_busy(self, probe, fake_store, notifier):
        release = asyncio.Event()

        async def slow(responsibility):
            await release.wait()
            return OK

        routes, calls = confirm_with({"A": slow})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes, notifier)

        first = asyncio.create_task(coordinator.sync_all(["A"]))
        while not calls:
            await asyncio.sleep(0)

        assert coordinator.is_syncing
        busy = await coordinator.sync_all(["A"])
        assert busy.classification == SyncClassification.busy
        assert notifier.notifications == []

        release.set()
        report = await first
        assert report.classification == SyncClassification.success
        assert calls == ["A"]
        assert len(notifier.notifications) == 1
        assert coordinator.is_syncing is False


class TestPendingCount:
    @pytest.mark.asyncio
    async def test_refresh_pending_count(self, probe):
        routes, _ = confirm_with({})
        coordinator = TransactionSyncCoordinator(probe, FakeStore(pending=2), routes)
        assert coordinator.pending_count == 0
        assert await coordinator.refresh_pending_count() == 2
        assert coordinator.has_pending

    @pytest.mark.asyncio
    async def test_failing_store_counts_zero(self, probe):
        routes, _ = confirm_with({})
        coordinator = TransactionSyncCoordinator(probe, FakeStore(fail=True), routes)
        assert await coordinator.refresh_pending_count() == 0
        assert coordinator.has_pending is False


class TestAutoSync:
    """Tests for syncing on reconnection."""

    @pytest.mark.asyncio
    async def test_syncs_when_back_online(self, probe, fake_store):
        routes, calls = confirm_with({"A": OK})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes)
        unsubscribe = coordinator.enable_auto_sync(["A"])

        await probe.publish(DISCONNECTED)
        assert coordinator.auto_sync_task is None

        await probe.publish(ONLINE)
        report = await coordinator.auto_sync_task
        assert report.classification == SyncClassification.success
        assert calls == ["A"]

        first_task = coordinator.auto_sync_task
        await probe.publish(ONLINE)
        assert coordinator.auto_sync_task is first_task

        unsubscribe()
        assert probe.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_overlapping_auto_syncs_are_all_kept(self, probe, fake_store):
        release = asyncio.Event()

        async def slow(responsibility):
            await release.wait()
            return OK

        routes, calls = confirm_with({"A": slow})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes)
        coordinator.enable_auto_sync(["A"])

        await probe.publish(ONLINE)
        first = coordinator.auto_sync_task
        while not calls:
            await asyncio.sleep(0)

        await probe.publish(DISCONNECTED)
        await probe.publish(ONLINE)
        second = coordinator.auto_sync_task

        assert second is not first
        assert coordinator.running_auto_syncs == {first, second}
        assert (await second).classification == SyncClassification.busy

        release.set()
        assert (await first).classification == SyncClassification.success
        await asyncio.sleep(0)
        assert coordinator.running_auto_syncs == frozenset()

    @pytest.mark.asyncio
    async def test_no_trigger_when_already_online(self, probe, fake_store):
        routes, calls = confirm_with({"A": OK})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes)
        await probe.get_current_state()

        coordinator.enable_auto_sync(["A"])
        await probe.publish(ONLINE)

        assert coordinator.auto_sync_task is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_auto_sync_errors_are_logged(self, probe, fake_store):
        routes, _ = confirm_with({})
        coordinator = TransactionSyncCoordinator(probe, fake_store, routes)
        coordinator.enable_auto_sync([])

        await probe.publish(ONLINE)
        assert await coordinator.auto_sync_task is None


class TestClassification:
    @pytest.mark.parametrize(
        "synced,errored,offline,expected",
        [
            (2, 0, False, SyncClassification.success),
            (0, 0, False, SyncClassification.success),
            (1, 1, False, SyncClassification.partial),
            (0, 2, False, SyncClassification.failed),
            (1, 1, True, SyncClassification.offline),
        ],
    )
    def test_classify_sync(self, synced, errored, offline, expected):
        assert classify_sync(synced, errored, offline) == expected

    def test_busy_has_no_notification(self):
        assert sync_notification(SyncReport.busy()) is None


@pytest.mark.asyncio
async def test_confirm_primitive_receives_responsibility(probe, fake_store):
    confirm = AsyncMock(return_value=OK)
    routes = ConfirmRoutingTable({"LOAD_TO_DOCK": confirm})
    coordinator = TransactionSyncCoordinator(probe, fake_store, routes)

    await coordinator.sync_all(["LOAD_TO_DOCK"])

    confirm.assert_awaited_once_with("LOAD_TO_DOCK")
