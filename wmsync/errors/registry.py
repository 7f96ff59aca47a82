"""Error code registry with E-XXXX format codes.

This module defines the error code system for wmsync, organizing errors
into categories:
- E-1xxx: Connectivity errors
- E-2xxx: Remote call errors
- E-3xxx: Routing errors
- E-4xxx: Activity data errors
- E-5xxx: Precondition errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    NETWORK = "network"  # E-1xxx: Connectivity errors
    REMOTE = "remote"  # E-2xxx: Remote call errors
    ROUTING = "routing"  # E-3xxx: Routing errors
    DATA = "data"  # E-4xxx: Activity data errors
    PRECONDITION = "precondition"  # E-5xxx: Precondition errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
        is_soft: Whether the condition is expected to self-resolve and must
            not be reported as a user error.
    """

    code: str  # E-XXXX format
    category: ErrorCategory
    title: str  # Short title for display
    message_template: str  # Message with {placeholders}
    remediation: str  # Action user should take
    is_retryable: bool = False  # Can be retried without user action
    is_soft: bool = False  # Offline-style condition, not a failure


# Error registry - all defined error codes
ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Connectivity errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.NETWORK,
        title="Network Unavailable",
        message_template="No internet connection while processing {responsibility}.",
        remediation="Data is saved locally and will sync when the device is back online.",
        is_retryable=True,
        is_soft=True,
    ),
    # Remote call errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.REMOTE,
        title="Remote Call Failed",
        message_template="Call for {responsibility} failed: {details}",
        remediation="Retry the failed API. Check the backend status if the issue persists.",
        is_retryable=True,
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.REMOTE,
        title="Invalid Remote Response",
        message_template="Response for {responsibility} has an unexpected shape: {details}",
        remediation="Verify the backend version configured for this responsibility.",
    ),
    # Routing errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.ROUTING,
        title="Invalid Responsibility",
        message_template="No handler is registered for responsibility '{responsibility}'.",
        remediation="Register the responsibility or remove it from the configured list.",
    ),
    # Activity data errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.DATA,
        title="Malformed Activity Record",
        message_template="Activity record dropped: {details}",
        remediation="No action needed. The record is excluded from consolidation.",
    ),
    # Precondition errors (E-5xxx)
    "E-5001": ErrorCode(
        code="E-5001",
        category=ErrorCategory.PRECONDITION,
        title="No Responsibilities",
        message_template="At least one responsibility is required to start a {operation} pass.",
        remediation="Assign responsibilities to the user or pass them explicitly.",
    ),
    "E-5002": ErrorCode(
        code="E-5002",
        category=ErrorCategory.PRECONDITION,
        title="Refresh Already Running",
        message_template="A refresh pass is already in progress.",
        remediation="Wait for the current refresh to finish or cancel it.",
    ),
    "E-5003": ErrorCode(
        code="E-5003",
        category=ErrorCategory.PRECONDITION,
        title="Nothing To Retry",
        message_template="The last refresh pass has no failed responsibilities.",
        remediation="No action needed.",
    ),
    "E-5004": ErrorCode(
        code="E-5004",
        category=ErrorCategory.PRECONDITION,
        title="Retry Limit Exceeded",
        message_template="Maximum retry attempts ({max_attempts}) exceeded for {responsibilities}.",
        remediation="Run a full refresh to reset retry counters.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
