"""Error handling framework for wmsync.

This package provides:
- Error code registry with E-XXXX format codes
- Typed domain exceptions carrying those codes

Error categories:
- E-1xxx: Connectivity errors (soft)
- E-2xxx: Remote call errors
- E-3xxx: Routing errors
- E-4xxx: Activity data errors
- E-5xxx: Precondition errors
"""

from wmsync.errors.domain import (
    EmptyResponsibilitiesError,
    InvalidResponseError,
    InvalidResponsibilityError,
    MalformedActivityRecordError,
    NetworkUnavailableError,
    NothingToRetryError,
    RefreshInProgressError,
    RemoteCallFailedError,
    RetryLimitExceededError,
    WmsyncError,
)
from wmsync.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Exceptions
    "WmsyncError",
    "NetworkUnavailableError",
    "RemoteCallFailedError",
    "InvalidResponseError",
    "InvalidResponsibilityError",
    "MalformedActivityRecordError",
    "EmptyResponsibilitiesError",
    "RefreshInProgressError",
    "NothingToRetryError",
    "RetryLimitExceededError",
]
