"""Data models for API activity tracking.

Defines the raw per-call activity record produced by refresh passes and the
consolidated per-API record shown to users.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from wmsync.errors import MalformedActivityRecordError

ORG_ID_PENDING = "pending"
"""Sentinel org id for records created before the organization is resolved."""


def utc_now() -> datetime:
    """Current UTC time as an aware datetime."""
    return datetime.now(UTC)


class ApiType(str, Enum):
    """Logical class of a backend API."""

    master = "master"
    config = "config"
    transactional = "transactional"
    unknown = "unknown"


class ActivityStatus(str, Enum):
    """Status values for a single API call attempt.

    Lifecycle: pending -> processing -> success/error/failure
    """

    pending = "pending"
    processing = "processing"
    success = "success"
    error = "error"
    failure = "failure"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_error(self) -> bool:
        return self in (ActivityStatus.error, ActivityStatus.failure)


TERMINAL_STATUSES = frozenset(
    {ActivityStatus.success, ActivityStatus.error, ActivityStatus.failure}
)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # epoch milliseconds, as emitted by the mobile client
        return datetime.fromtimestamp(value / 1000, UTC)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _non_negative_int(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class RawActivityRecord:
    """One attempt to call one backend endpoint.

    Records are immutable; progress is expressed by replacing a record with
    an updated copy (see ``with_status``).
    """

    api_name: str
    """Name of the API (the responsibility key for refresh-created records)."""

    status: ActivityStatus
    """Current status of the call."""

    api_type: ApiType = ApiType.unknown
    """Logical class of the API."""

    org_id: str = ORG_ID_PENDING
    """Inventory organization the call ran for, or the pending sentinel."""

    url: str = ""
    """Relative path of the endpoint."""

    total_records: int = 0
    """Records reported by the backend."""

    inserted_records: int = 0
    """Records written locally."""

    error: Optional[str] = None
    """Error message for failed calls."""

    retry_count: int = 0
    """How many times this API was retried before this attempt."""

    started_at: Optional[datetime] = None
    """When the call started, if it has."""

    completed_at: Optional[datetime] = None
    """When the call reached a terminal status."""

    id: str = field(default_factory=lambda: str(uuid4()))
    """Unique identifier of this attempt."""

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None

    def with_status(
        self,
        status: ActivityStatus,
        *,
        at: datetime | None = None,
        **changes: Any,
    ) -> "RawActivityRecord":
        """Return a copy moved to status, keeping the completed_at invariant.

        Args:
            status: New status.
            at: Timestamp for the transition. Defaults to now.
            **changes: Other fields to replace.

        Returns:
            Updated copy of this record.
        """
        at = at or utc_now()
        if status == ActivityStatus.processing and self.started_at is None:
            changes.setdefault("started_at", at)
        changes["completed_at"] = at if status in TERMINAL_STATUSES else None
        return replace(self, status=status, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase wire shape."""
        return {
            "id": self.id,
            "apiName": self.api_name,
            "apiType": self.api_type.value,
            "status": self.status.value,
            "orgId": self.org_id,
            "url": self.url,
            "totalRecords": self.total_records,
            "insertedRecords": self.inserted_records,
            "error": self.error,
            "retryCount": self.retry_count,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawActivityRecord":
        """Build a record from a camelCase wire dictionary.

        Args:
            data: Mapping with at least ``apiName`` and ``status``.

        Returns:
            Parsed record.

        Raises:
            MalformedActivityRecordError: If apiName or status is missing,
                empty or not a known value, or a timestamp cannot be parsed.
        """
        api_name = data.get("apiName")
        if not api_name or not isinstance(api_name, str):
            raise MalformedActivityRecordError("missing apiName")

        raw_status = data.get("status")
        if not raw_status:
            raise MalformedActivityRecordError(f"missing status for {api_name}")
        try:
            status = ActivityStatus(raw_status)
        except ValueError:
            raise MalformedActivityRecordError(
                f"unknown status '{raw_status}' for {api_name}"
            ) from None

        try:
            api_type = ApiType(data.get("apiType") or ApiType.unknown)
        except ValueError:
            api_type = ApiType.unknown

        try:
            started_at = _parse_timestamp(data.get("startedAt"))
            completed_at = _parse_timestamp(data.get("completedAt"))
        except (TypeError, ValueError, OverflowError, OSError):
            raise MalformedActivityRecordError(
                f"invalid timestamp for {api_name}"
            ) from None

        kwargs: dict[str, Any] = {}
        if data.get("id"):
            kwargs["id"] = str(data["id"])

        return cls(
            api_name=api_name,
            status=status,
            api_type=api_type,
            org_id=str(data.get("orgId") or ORG_ID_PENDING),
            url=str(data.get("url") or ""),
            total_records=_non_negative_int(data.get("totalRecords")),
            inserted_records=_non_negative_int(data.get("insertedRecords")),
            error=data.get("error") or None,
            retry_count=_non_negative_int(data.get("retryCount")),
            started_at=started_at,
            completed_at=completed_at,
            **kwargs,
        )


def coerce_record(item: Any) -> RawActivityRecord:
    """Return item as a well-formed RawActivityRecord.

    Wire dictionaries are parsed with ``from_dict``. Records built with raw
    strings get their enums coerced; an unknown api type maps to
    ``ApiType.unknown``.

    Raises:
        MalformedActivityRecordError: If the item is not a record or mapping,
            or has no api name or a missing or unknown status.
    """
    if isinstance(item, Mapping):
        return RawActivityRecord.from_dict(item)
    if not isinstance(item, RawActivityRecord):
        raise MalformedActivityRecordError(
            f"unsupported activity item of type {type(item).__name__}"
        )
    if not item.api_name:
        raise MalformedActivityRecordError(f"missing api name on record {item.id}")
    if item.status is None:
        raise MalformedActivityRecordError(f"missing status for {item.api_name}")
    try:
        status = ActivityStatus(item.status)
    except ValueError:
        raise MalformedActivityRecordError(
            f"unknown status '{item.status}' for {item.api_name}"
        ) from None
    try:
        api_type = ApiType(item.api_type or ApiType.unknown)
    except ValueError:
        api_type = ApiType.unknown

    if status is item.status and api_type is item.api_type:
        return item
    return replace(item, status=status, api_type=api_type)


@dataclass(frozen=True)
class ConsolidatedApiRecord:
    """Display-level aggregate of all attempts for one API.

    Keyed by ``(api_name, type)``. Never built with an empty activities
    tuple.
    """

    id: str
    """Stable identifier derived from the group key."""

    api_name: str
    """Name of the API."""

    type: ApiType
    """Logical class of the API."""

    status: ActivityStatus
    """Aggregated status, by precedence over constituents."""

    activities: tuple[RawActivityRecord, ...]
    """Constituent attempts in insertion order."""

    total_records: int
    """Corrected record total."""

    inserted_records: int
    """Inserted count from the record-source constituent."""

    can_expand: bool
    """Whether the card exposes details and retry."""

    error: Optional[str] = None
    """Most recent error message among constituents."""

    last_sync_time: Optional[datetime] = None
    """Latest start time among constituents."""

    last_retry_time: Optional[datetime] = None
    """Latest start time among retried constituents."""

    retry_count: int = 0
    """Maximum retry count among constituents."""

    @property
    def key(self) -> tuple[str, ApiType]:
        return (self.api_name, self.type)
