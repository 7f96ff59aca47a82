"""Transaction sync coordinator: replays locally queued transactions.

A sync pass is gated on connectivity, then asks each responsibility's
confirm primitive to push its pending transactions to the backend, one
responsibility at a time. Losing connectivity mid-pass abandons the rest
of the pass; the transactions simply stay queued for the next one.

Example:
    coordinator = TransactionSyncCoordinator(probe, store, routes, notifier)
    report = await coordinator.sync_all(["LOAD_TO_DOCK"])
    unsubscribe = coordinator.enable_auto_sync(["LOAD_TO_DOCK"])
"""

import asyncio
import logging
from collections.abc import Callable, Sequence

from wmsync.errors import EmptyResponsibilitiesError, NetworkUnavailableError
from wmsync.services.connectivity import ConnectivityProbe, NetworkState
from wmsync.services.notifier import Notification, NotificationType, Notifier, send
from wmsync.services.transaction_store import PendingTransactionStore
from wmsync.sync.models import (
    OutcomeStatus,
    SyncClassification,
    SyncOutcome,
    SyncReport,
)
from wmsync.sync.routing import ConfirmRoutingTable

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "Data saved locally. Will sync when online."


def sync_notification(report: SyncReport) -> Notification | None:
    """Notification for a finished sync pass; None for busy passes."""
    classification = report.classification
    if classification == SyncClassification.busy:
        return None
    if classification == SyncClassification.offline:
        if not report.outcomes:
            return Notification(
                NotificationType.info, "No Internet Connection", OFFLINE_MESSAGE
            )
        return Notification(
            NotificationType.info, "Offline Mode", report.message or OFFLINE_MESSAGE
        )
    if classification == SyncClassification.success:
        return Notification(
            NotificationType.success,
            "Sync Complete",
            f"Successfully synced {report.synced} transaction(s)!",
        )
    if classification == SyncClassification.partial:
        return Notification(
            NotificationType.error,
            "Partial Sync",
            f"Synced {report.synced} transaction(s), but {report.errored} failed. "
            "Check logs for details.",
        )
    return Notification(
        NotificationType.error, "Sync Failed", "Please try again or contact support."
    )


def classify_sync(synced: int, errored: int, offline: bool) -> SyncClassification:
    if offline:
        return SyncClassification.offline
    if errored == 0:
        return SyncClassification.success
    if synced > 0:
        return SyncClassification.partial
    return SyncClassification.failed


class TransactionSyncCoordinator:
    """Runs sync passes over responsibilities with pending transactions."""

    def __init__(
        self,
        probe: ConnectivityProbe,
        store: PendingTransactionStore,
        routes: ConfirmRoutingTable,
        notifier: Notifier | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            probe: Connectivity probe gating every pass.
            store: Local store, queried for the pending count.
            routes: Confirm primitive per responsibility.
            notifier: Receives one notification per non-busy pass.
        """
        self._probe = probe
        self._store = store
        self._routes = routes
        self._notifier = notifier
        self._syncing = False
        self._pending_count = 0
        self._auto_sync_task: asyncio.Task | None = None
        self._auto_sync_tasks: set[asyncio.Task] = set()

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    @property
    def pending_count(self) -> int:
        """Pending transactions as of the last count refresh."""
        return self._pending_count

    @property
    def has_pending(self) -> bool:
        return self._pending_count > 0

    @property
    def auto_sync_task(self) -> asyncio.Task | None:
        """Most recent pass started by auto-sync, if any."""
        return self._auto_sync_task

    @property
    def running_auto_syncs(self) -> frozenset[asyncio.Task]:
        """Auto-sync passes that have not finished yet."""
        return frozenset(self._auto_sync_tasks)

    async def refresh_pending_count(self) -> int:
        """Re-query the store for the number of pending transactions.

        A failing store is logged and counted as zero pending.
        """
        try:
            pending = await self._store.list_pending()
            self._pending_count = len(pending)
        except Exception as e:
            logger.error("Error checking pending transactions: %s", e)
            self._pending_count = 0
        logger.debug("Pending transactions: %d", self._pending_count)
        return self._pending_count

    async def sync_all(self, responsibilities: Sequence[str]) -> SyncReport:
        """Confirm the pending transactions of each responsibility.

        Args:
            responsibilities: Responsibilities in processing order.

        Returns:
            SyncReport classified as success, partial, failed, offline, or
            busy when another pass is already running.

        Raises:
            EmptyResponsibilitiesError: If responsibilities is empty.
        """
        if self._syncing:
            logger.info("Sync already in progress, ignoring request")
            return SyncReport.busy()
        responsibilities = list(responsibilities)
        if not responsibilities:
            raise EmptyResponsibilitiesError("sync")

        self._syncing = True
        try:
            if not await self._probe.is_online():
                logger.info("Offline, leaving %d responsibilities queued", len(responsibilities))
                report = SyncReport(
                    classification=SyncClassification.offline, message=OFFLINE_MESSAGE
                )
                self._notify(report)
                return report

            outcomes: list[SyncOutcome] = []
            offline_message: str | None = None
            for responsibility in responsibilities:
                logger.info("Syncing transactions for %s", responsibility)
                try:
                    confirm = self._routes.resolve(responsibility)
                    result = await confirm(responsibility)
                except NetworkUnavailableError as e:
                    offline_message = str(e) or OFFLINE_MESSAGE
                except Exception as e:
                    message = str(e) or type(e).__name__
                    logger.error("Error syncing %s: %s", responsibility, message)
                    outcomes.append(
                        SyncOutcome(responsibility, OutcomeStatus.errored, error=message)
                    )
                    continue
                else:
                    if result.offline:
                        offline_message = result.error or OFFLINE_MESSAGE
                    elif result.success:
                        outcomes.append(
                            SyncOutcome(
                                responsibility,
                                OutcomeStatus.synced,
                                confirmed=result.confirmed,
                            )
                        )
                        continue
                    else:
                        error = result.error or "Transaction sync failed"
                        logger.error("Failed to sync %s: %s", responsibility, error)
                        outcomes.append(
                            SyncOutcome(responsibility, OutcomeStatus.errored, error=error)
                        )
                        continue

                # Offline: the rest of the pass would fail the same way.
                logger.warning("Connectivity lost while syncing %s", responsibility)
                outcomes.append(
                    SyncOutcome(responsibility, OutcomeStatus.offline, error=offline_message)
                )
                break

            synced = sum(1 for o in outcomes if o.status == OutcomeStatus.synced)
            errored = sum(1 for o in outcomes if o.status == OutcomeStatus.errored)
            pending_count = await self.refresh_pending_count()

            report = SyncReport(
                classification=classify_sync(synced, errored, offline_message is not None),
                synced=synced,
                errored=errored,
                outcomes=tuple(outcomes),
                pending_count=pending_count,
                message=offline_message,
            )
            logger.info(
                "Sync finished (%s): %d synced, %d failed, %d pending",
                report.classification.value,
                synced,
                errored,
                pending_count,
            )
            if report.errors:
                logger.error("Sync errors: %s", "; ".join(report.errors))
            self._notify(report)
            return report
        finally:
            self._syncing = False

    def enable_auto_sync(self, responsibilities: Sequence[str]) -> Callable[[], None]:
        """Start a sync pass whenever connectivity comes back.

        A pass is scheduled on every transition to online, including the
        first state published after subscribing.

        Returns:
            Function that disables auto-sync.
        """
        responsibilities = list(responsibilities)
        cached = self._probe.get_cached_state()
        was_online = cached.is_online if cached is not None else None

        def on_change(state: NetworkState) -> None:
            nonlocal was_online
            came_online = state.is_online and was_online is not True
            was_online = state.is_online
            if not came_online:
                return
            logger.info("Back online, starting sync")
            task = asyncio.create_task(
                self._auto_sync(responsibilities), name="wmsync-auto-sync"
            )
            # The loop only keeps weak references to tasks.
            self._auto_sync_tasks.add(task)
            task.add_done_callback(self._auto_sync_tasks.discard)
            self._auto_sync_task = task

        return self._probe.subscribe(on_change)

    async def _auto_sync(self, responsibilities: list[str]) -> SyncReport | None:
        try:
            return await self.sync_all(responsibilities)
        except Exception as e:
            logger.error("Auto-sync failed: %s", e)
            return None

    def _notify(self, report: SyncReport) -> None:
        notification = sync_notification(report)
        if notification is not None:
            send(self._notifier, notification)
