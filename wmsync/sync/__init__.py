"""Offline transaction sync.

Replays locally queued transactions through per-responsibility confirm
primitives once the device is online.
"""

from wmsync.sync.coordinator import (
    OFFLINE_MESSAGE,
    TransactionSyncCoordinator,
    classify_sync,
    sync_notification,
)
from wmsync.sync.load_to_dock import LOAD_TO_DOCK, LoadToDockConfirmer
from wmsync.sync.models import (
    ConfirmResult,
    OutcomeStatus,
    SyncClassification,
    SyncOutcome,
    SyncReport,
)
from wmsync.sync.routing import ConfirmPrimitive, ConfirmRoutingTable

__all__ = [
    "TransactionSyncCoordinator",
    "OFFLINE_MESSAGE",
    "classify_sync",
    "sync_notification",
    "ConfirmPrimitive",
    "ConfirmRoutingTable",
    "ConfirmResult",
    "OutcomeStatus",
    "SyncClassification",
    "SyncOutcome",
    "SyncReport",
    "LOAD_TO_DOCK",
    "LoadToDockConfirmer",
]
