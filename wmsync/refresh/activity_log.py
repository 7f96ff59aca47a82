"""Per-responsibility store of raw activity records for the current pass."""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, Union

from wmsync.activity.models import (
    ORG_ID_PENDING,
    ActivityStatus,
    ApiType,
    RawActivityRecord,
    coerce_record,
    utc_now,
)
from wmsync.errors import MalformedActivityRecordError

logger = logging.getLogger(__name__)


class ActivityLog:
    """Raw activity records grouped in slots, one slot per responsibility.

    A slot starts with a single pending placeholder and is replaced wholesale
    when the responsibility's fetch resolves. Slot order is the order in
    which responsibilities were first seeded, so flattening is stable.
    """

    def __init__(self, now: Callable[[], datetime] = utc_now) -> None:
        self._slots: dict[str, list[RawActivityRecord]] = {}
        self._now = now

    def __len__(self) -> int:
        return sum(len(records) for records in self._slots.values())

    def __contains__(self, responsibility: object) -> bool:
        return responsibility in self._slots

    def reset(self) -> None:
        self._slots.clear()

    def records(self) -> tuple[RawActivityRecord, ...]:
        """Flattened snapshot of all slots."""
        return tuple(record for records in self._slots.values() for record in records)

    def slot(self, responsibility: str) -> tuple[RawActivityRecord, ...]:
        return tuple(self._slots.get(responsibility, ()))

    def seed(
        self,
        responsibility: str,
        api_type: ApiType = ApiType.unknown,
        retry_count: int = 0,
    ) -> RawActivityRecord:
        """Replace a slot with a fresh pending placeholder."""
        placeholder = RawActivityRecord(
            api_name=responsibility,
            status=ActivityStatus.pending,
            api_type=api_type,
            org_id=ORG_ID_PENDING,
            retry_count=retry_count,
        )
        self._slots[responsibility] = [placeholder]
        return placeholder

    def _update(self, responsibility: str, status: ActivityStatus, **changes: Any) -> None:
        records = self._slots.get(responsibility)
        if not records:
            records = [self.seed(responsibility)]
        at = self._now()
        self._slots[responsibility] = [
            record.with_status(status, at=at, **changes) for record in records
        ]

    def mark_processing(self, responsibility: str) -> None:
        self._update(responsibility, ActivityStatus.processing, error=None)

    def mark_failed(self, responsibility: str, error: str) -> None:
        self._update(responsibility, ActivityStatus.error, error=error)

    def mark_offline(self, responsibility: str, message: str) -> None:
        # Offline slots stay pending: the call was never made.
        self._update(responsibility, ActivityStatus.pending, error=message)

    def mark_empty_success(self, responsibility: str) -> None:
        self._update(
            responsibility,
            ActivityStatus.success,
            total_records=0,
            inserted_records=0,
            error=None,
        )

    def replace(
        self,
        responsibility: str,
        records: Iterable[Union[RawActivityRecord, Mapping[str, Any]]],
    ) -> list[RawActivityRecord]:
        """Replace a slot with the records a fetch resolved to.

        Wire dictionaries are parsed; malformed items are dropped.

        Returns:
            The records kept. When none are, the slot holds an empty
            success and the list is empty.
        """
        parsed: list[RawActivityRecord] = []
        for item in records:
            try:
                parsed.append(coerce_record(item))
            except MalformedActivityRecordError as e:
                logger.warning(
                    "Dropping activity record from %s: %s", responsibility, e.details
                )

        if not parsed:
            self.mark_empty_success(responsibility)
            return parsed

        self._slots[responsibility] = parsed
        return parsed
