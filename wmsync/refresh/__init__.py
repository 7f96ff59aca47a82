"""Refresh orchestration for responsibility data.

Runs sequential refresh passes over responsibilities, tracks progress and
ETA, and reports per-responsibility results to observers.
"""

from wmsync.refresh.activity_log import ActivityLog
from wmsync.refresh.events import RefreshEventEmitter, RefreshEventObserver
from wmsync.refresh.models import (
    RefreshOutcome,
    RefreshProgress,
    RefreshResult,
    RefreshState,
    RefreshSummary,
    TypeBreakdown,
    progress_percentage,
)
from wmsync.refresh.notifications import classify_refresh
from wmsync.refresh.orchestrator import (
    OFFLINE_MESSAGE,
    FetchPrimitive,
    RefreshOrchestrator,
)
from wmsync.refresh.progress import ProgressTracker
from wmsync.refresh.registry import (
    DEFAULT_APIS,
    ApiConfig,
    ResponsibilityRegistry,
)

__all__ = [
    # Orchestration
    "RefreshOrchestrator",
    "FetchPrimitive",
    "OFFLINE_MESSAGE",
    "ActivityLog",
    "ProgressTracker",
    # Events
    "RefreshEventEmitter",
    "RefreshEventObserver",
    "classify_refresh",
    # Models
    "RefreshState",
    "RefreshProgress",
    "RefreshResult",
    "RefreshSummary",
    "RefreshOutcome",
    "TypeBreakdown",
    "progress_percentage",
    # Registry
    "ApiConfig",
    "ResponsibilityRegistry",
    "DEFAULT_APIS",
]
