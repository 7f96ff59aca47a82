"""Service layer for wmsync.

Provides connectivity detection, user notifications and pending
transaction storage. The HTTP fetch primitive lives in
``wmsync.services.fetcher``.
"""

from wmsync.services.connectivity import (
    DISCONNECTED,
    ConnectivityProbe,
    HttpReachabilitySource,
    NetworkState,
    NetworkStateSource,
)
from wmsync.services.notifier import (
    LoggingNotifier,
    Notification,
    NotificationType,
    Notifier,
    RecordingNotifier,
    send,
)
from wmsync.services.transaction_store import (
    PendingTransaction,
    PendingTransactionStore,
    SqlPendingTransactionStore,
)

__all__ = [
    "ConnectivityProbe",
    "HttpReachabilitySource",
    "NetworkState",
    "NetworkStateSource",
    "DISCONNECTED",
    "Notification",
    "NotificationType",
    "Notifier",
    "LoggingNotifier",
    "RecordingNotifier",
    "send",
    "PendingTransaction",
    "PendingTransactionStore",
    "SqlPendingTransactionStore",
]
