"""API activity records and their consolidation for display."""

from wmsync.activity.consolidation import (
    ActivityConsolidationEngine,
    aggregate_status,
    consolidate_activities,
    correct_records_total,
    default_expand_policy,
    is_partial_result,
)
from wmsync.activity.models import (
    ORG_ID_PENDING,
    ActivityStatus,
    ApiType,
    ConsolidatedApiRecord,
    RawActivityRecord,
    coerce_record,
)

__all__ = [
    "ActivityConsolidationEngine",
    "ActivityStatus",
    "ApiType",
    "ConsolidatedApiRecord",
    "ORG_ID_PENDING",
    "RawActivityRecord",
    "aggregate_status",
    "coerce_record",
    "consolidate_activities",
    "correct_records_total",
    "default_expand_policy",
    "is_partial_result",
]
