"""Data models for refresh passes.

Defines the progress snapshot emitted while a pass runs and the result and
summary types returned when it ends. All of them are frozen snapshots.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional

from wmsync.activity.models import ApiType


class RefreshState(str, Enum):
    """Lifecycle of a refresh orchestrator.

    Lifecycle: idle -> running -> completed/cancelled
               completed/cancelled -> running (next pass) or idle (reset)
    """

    idle = "idle"
    running = "running"
    completed = "completed"
    cancelled = "cancelled"


def progress_percentage(current: int, total: int) -> int:
    """Percentage of a pass, rounded half-up and clamped to 0-100."""
    if total <= 0:
        return 0
    value = math.floor(current / total * 100 + 0.5)
    return min(100, max(0, value))


@dataclass(frozen=True)
class RefreshProgress:
    """Snapshot of an in-flight pass, emitted before each responsibility."""

    current: int
    """1-based index of the responsibility being processed."""

    total: int
    """Number of responsibilities in the pass."""

    percentage: int
    """round(current / total * 100), clamped to 0-100."""

    current_api: Optional[str] = None
    """Responsibility being processed."""

    current_api_type: Optional[ApiType] = None
    """Type of the API being processed, when known."""

    estimated_time_remaining: Optional[int] = None
    """Milliseconds left, or None before any duration sample exists."""

    @classmethod
    def at(
        cls,
        current: int,
        total: int,
        current_api: str | None = None,
        current_api_type: ApiType | None = None,
        estimated_time_remaining: int | None = None,
    ) -> "RefreshProgress":
        return cls(
            current=current,
            total=total,
            percentage=progress_percentage(current, total),
            current_api=current_api,
            current_api_type=current_api_type,
            estimated_time_remaining=estimated_time_remaining,
        )


@dataclass(frozen=True)
class RefreshResult:
    """Outcome for one responsibility after one pass."""

    responsibility: str
    """Responsibility this result belongs to."""

    success: bool
    """Whether the responsibility refreshed without errors."""

    error: Optional[str] = None
    """Error message for failed or offline results."""

    offline: bool = False
    """Soft result: not attempted because the device is offline."""

    api_type: ApiType = ApiType.unknown
    """Type of the API behind the responsibility."""

    records_total: int = 0
    """Records reported by the backend."""

    records_inserted: int = 0
    """Records written locally."""

    duration_ms: int = 0
    """Wall time spent on the fetch."""

    @property
    def is_failure(self) -> bool:
        """Hard failure; offline results are not failures."""
        return not self.success and not self.offline


@dataclass(frozen=True)
class TypeBreakdown:
    """Per API type counts of a pass."""

    total: int = 0
    successful: int = 0
    failed: int = 0


@dataclass(frozen=True)
class RefreshSummary:
    """Outcome of a full pass."""

    succeeded: int
    """Responsibilities refreshed successfully."""

    failed: int
    """Responsibilities that failed (hard failures only)."""

    offline: int
    """Responsibilities skipped because the device went offline."""

    total: int
    """Responsibilities processed (recorded results)."""

    started_at: datetime
    """When the pass started."""

    completed_at: datetime
    """When the pass ended."""

    cancelled: bool = False
    """Whether the pass stopped early on request."""

    total_inserted: int = 0
    """Records inserted across all results."""

    duration_ms: int = 0
    """Sum of per-responsibility fetch durations."""

    by_type: Mapping[ApiType, TypeBreakdown] = field(
        default_factory=lambda: MappingProxyType({})
    )
    """Counts per API type, read-only."""

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form for JSON output."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["by_type"] = {
            api_type.value: asdict(breakdown)
            for api_type, breakdown in self.by_type.items()
        }
        return data

    @classmethod
    def from_results(
        cls,
        results: Sequence[RefreshResult],
        started_at: datetime,
        completed_at: datetime,
        cancelled: bool = False,
    ) -> "RefreshSummary":
        by_type: dict[ApiType, TypeBreakdown] = {}
        for result in results:
            current = by_type.get(result.api_type, TypeBreakdown())
            by_type[result.api_type] = TypeBreakdown(
                total=current.total + 1,
                successful=current.successful + (1 if result.success else 0),
                failed=current.failed + (1 if result.is_failure else 0),
            )

        return cls(
            succeeded=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if r.is_failure),
            offline=sum(1 for r in results if r.offline),
            total=len(results),
            started_at=started_at,
            completed_at=completed_at,
            cancelled=cancelled,
            total_inserted=sum(r.records_inserted for r in results),
            duration_ms=sum(r.duration_ms for r in results),
            by_type=MappingProxyType(by_type),
        )


@dataclass(frozen=True)
class RefreshOutcome:
    """Summary plus per-responsibility results returned by a pass."""

    summary: RefreshSummary
    results: tuple[RefreshResult, ...]

    @property
    def failed_responsibilities(self) -> list[str]:
        return [r.responsibility for r in self.results if r.is_failure]
