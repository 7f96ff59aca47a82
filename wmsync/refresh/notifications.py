"""Notification for the end of a refresh pass."""

from wmsync.refresh.models import RefreshSummary
from wmsync.services.notifier import Notification, NotificationType


def classify_refresh(summary: RefreshSummary) -> Notification:
    """Build the end-of-pass notification for a refresh summary.

    Offline results are reported as such, never as failures.

    Args:
        summary: Summary of the finished pass.

    Returns:
        Notification describing a complete, partial, failed, offline or
        cancelled pass.
    """
    seconds = round(
        (summary.completed_at - summary.started_at).total_seconds()
    )

    if summary.cancelled:
        return Notification(
            NotificationType.warning,
            "Refresh Cancelled",
            f"Refresh stopped after {summary.total} API(s).",
        )

    if summary.failed == 0 and summary.offline == 0:
        return Notification(
            NotificationType.success,
            "Refresh Complete",
            f"Refreshed {summary.succeeded} API(s), "
            f"{summary.total_inserted} record(s) in {seconds}s.",
        )

    if summary.failed == 0:
        return Notification(
            NotificationType.info,
            "Offline",
            f"Refreshed {summary.succeeded} API(s); {summary.offline} will "
            "refresh when the device is back online.",
        )

    waiting = (
        f" {summary.offline} will refresh when the device is back online."
        if summary.offline
        else ""
    )

    if summary.succeeded > 0:
        return Notification(
            NotificationType.warning,
            "Refresh Partially Complete",
            f"{summary.succeeded} of {summary.total} API(s) refreshed, "
            f"{summary.failed} failed. You can retry them.{waiting}",
        )

    if summary.offline:
        return Notification(
            NotificationType.error,
            "Refresh Failed",
            f"{summary.failed} of {summary.total} API(s) failed.{waiting}",
        )

    return Notification(
        NotificationType.error,
        "Refresh Failed",
        f"All {summary.failed} API(s) failed. Check your connection and retry.",
    )
