"""Consolidation of raw API activity into per-API display records.

The engine is a pure transform: given the current list of raw activity
records it rebuilds a keyed store of ``(api_name, api_type)`` groups and
derives one ``ConsolidatedApiRecord`` per group. It owns no state between
calls, so it can be re-run at any point of an in-flight refresh.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any, Optional, Union

from wmsync.activity.models import (
    ActivityStatus,
    ApiType,
    ConsolidatedApiRecord,
    RawActivityRecord,
    coerce_record,
)
from wmsync.errors import MalformedActivityRecordError

logger = logging.getLogger(__name__)

ActivityInput = Union[RawActivityRecord, Mapping[str, Any]]
GroupKey = tuple[str, ApiType]
ExpandPolicy = Callable[[Sequence[RawActivityRecord]], bool]

# Higher wins. error and failure share a rank and aggregate to error.
STATUS_PRECEDENCE: dict[ActivityStatus, int] = {
    ActivityStatus.pending: 0,
    ActivityStatus.success: 1,
    ActivityStatus.error: 2,
    ActivityStatus.failure: 2,
    ActivityStatus.processing: 3,
}


def aggregate_status(statuses: Iterable[ActivityStatus]) -> ActivityStatus:
    """Pick the group status: processing > error/failure > success > pending.

    Args:
        statuses: Constituent statuses.

    Returns:
        Aggregated status. An empty input yields pending.
    """
    best = ActivityStatus.pending
    for status in statuses:
        if STATUS_PRECEDENCE[status] > STATUS_PRECEDENCE[best]:
            best = status
    if best == ActivityStatus.failure:
        return ActivityStatus.error
    return best


def correct_records_total(
    total_records: int,
    inserted_records: int,
    api_type: ApiType | str,
) -> int:
    """Correct a reported record total that is known to be misleading.

    Config feeds report a structural total smaller than what they insert,
    and any feed inserting more than twice its reported total is trusted
    on the inserted side.

    Args:
        total_records: Total reported by the backend.
        inserted_records: Records written locally.
        api_type: Type of the API the counts belong to.

    Returns:
        Corrected total, never negative.
    """
    total = max(0, total_records or 0)
    inserted = max(0, inserted_records or 0)

    if inserted > total:
        if ApiType(api_type) == ApiType.config or inserted > total * 2:
            return inserted
    return total


def is_partial_result(record: RawActivityRecord) -> bool:
    """True when a non-error attempt did some but not all requested work."""
    if record.status.is_error:
        return False
    return 0 < record.inserted_records < record.total_records


def default_expand_policy(activities: Sequence[RawActivityRecord]) -> bool:
    """Expandable when any attempt failed or reported a partial result."""
    return any(a.status.is_error or is_partial_result(a) for a in activities)


def _ts(value: Optional[datetime]) -> float:
    return value.timestamp() if value is not None else 0.0


def _latest(
    activities: Iterable[RawActivityRecord],
    key: Callable[[RawActivityRecord], Optional[datetime]],
) -> Optional[RawActivityRecord]:
    # max() keeps the first of equal keys, which keeps results stable.
    candidates = list(activities)
    if not candidates:
        return None
    return max(candidates, key=lambda a: _ts(key(a)))


def group_key(record: RawActivityRecord) -> GroupKey:
    return (record.api_name, record.api_type)


def consolidated_id(key: GroupKey) -> str:
    api_name, api_type = key
    return f"consolidated_{api_name}_{api_type.value}"


class ActivityConsolidationEngine:
    """Groups raw activity records into consolidated API records.

    Attributes:
        expand_policy: Rule deciding whether a group is expandable.
    """

    def __init__(self, expand_policy: ExpandPolicy | None = None) -> None:
        """Initialize the engine.

        Args:
            expand_policy: Override for the can_expand rule. Defaults to
                ``default_expand_policy``.
        """
        self.expand_policy: ExpandPolicy = expand_policy or default_expand_policy

    def consolidate(
        self, activities: Iterable[ActivityInput]
    ) -> list[ConsolidatedApiRecord]:
        """Consolidate raw activity into one record per API.

        Args:
            activities: Raw records (or camelCase wire dictionaries) in
                arrival order.

        Returns:
            Consolidated records ordered by first appearance of their key.
        """
        groups: dict[GroupKey, list[RawActivityRecord]] = {}
        for item in activities:
            record = self._normalize(item)
            if record is None:
                continue
            groups.setdefault(group_key(record), []).append(record)

        return [self._build(key, members) for key, members in groups.items()]

    @staticmethod
    def flatten(records: Iterable[ConsolidatedApiRecord]) -> list[RawActivityRecord]:
        """Expand consolidated records back into their constituent activity."""
        return [activity for record in records for activity in record.activities]

    def _normalize(self, item: ActivityInput) -> RawActivityRecord | None:
        try:
            return coerce_record(item)
        except MalformedActivityRecordError as e:
            logger.warning("Dropping activity record: %s", e.details)
            return None

    def _build(
        self, key: GroupKey, members: list[RawActivityRecord]
    ) -> ConsolidatedApiRecord:
        api_name, api_type = key

        latest_success = _latest(
            (a for a in members if a.status == ActivityStatus.success),
            key=lambda a: a.completed_at,
        )
        latest_any = _latest(
            members,
            key=lambda a: max(
                (t for t in (a.completed_at, a.started_at) if t is not None),
                key=_ts,
                default=None,
            ),
        )
        source = latest_success or latest_any

        latest_error = _latest(
            (a for a in members if a.error), key=lambda a: a.completed_at
        )
        last_sync = _latest(
            (a for a in members if a.started_at), key=lambda a: a.started_at
        )
        last_retry = _latest(
            (a for a in members if a.retry_count > 0 and a.started_at),
            key=lambda a: a.started_at,
        )

        return ConsolidatedApiRecord(
            id=consolidated_id(key),
            api_name=api_name,
            type=api_type,
            status=aggregate_status(a.status for a in members),
            activities=tuple(members),
            total_records=correct_records_total(
                source.total_records, source.inserted_records, api_type
            ),
            inserted_records=source.inserted_records,
            can_expand=bool(self.expand_policy(members)),
            error=latest_error.error if latest_error else None,
            last_sync_time=last_sync.started_at if last_sync else None,
            last_retry_time=last_retry.started_at if last_retry else None,
            retry_count=max(a.retry_count for a in members),
        )


def consolidate_activities(
    activities: Iterable[ActivityInput],
    expand_policy: ExpandPolicy | None = None,
) -> list[ConsolidatedApiRecord]:
    """Consolidate activity with a one-off engine.

    Args:
        activities: Raw records or wire dictionaries.
        expand_policy: Optional can_expand override.

    Returns:
        Consolidated records in first-appearance order.
    """
    return ActivityConsolidationEngine(expand_policy).consolidate(activities)
