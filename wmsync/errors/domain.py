"""Typed domain exceptions for the refresh and sync core.

Each exception carries an E-XXXX code from the error registry so callers
and the CLI can render consistent titles and remediation text.

Usage:
    # In a fetch primitive
    raise NetworkUnavailableError("SHIP_CONFIRM")

    # In a caller
    try:
        outcome = await orchestrator.run(responsibilities, fetch)
    except RefreshInProgressError:
        ...
"""

from collections.abc import Sequence

from wmsync.errors.registry import ErrorCode, get_error


class WmsyncError(Exception):
    """Base exception for all wmsync domain errors."""

    code: str = ""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def error_code(self) -> ErrorCode | None:
        """Registry entry for this error, if the code is registered."""
        return get_error(self.code)

    @property
    def is_retryable(self) -> bool:
        entry = self.error_code
        return bool(entry and entry.is_retryable)

    @property
    def is_soft(self) -> bool:
        entry = self.error_code
        return bool(entry and entry.is_soft)


def _render(code: str, **context: object) -> str:
    """Render the registry template for code, keeping it raw on missing keys."""
    entry = get_error(code)
    if entry is None:
        return f"Unknown error: {code}"
    try:
        return entry.message_template.format(**context)
    except KeyError:
        return entry.message_template


class NetworkUnavailableError(WmsyncError):
    """No connectivity. Soft: the work is queued or reported offline."""

    code = "E-1001"

    def __init__(self, responsibility: str = "request", message: str | None = None) -> None:
        super().__init__(message or _render(self.code, responsibility=responsibility))
        self.responsibility = responsibility


class RemoteCallFailedError(WmsyncError):
    """A remote call for one responsibility failed. Retryable."""

    code = "E-2001"

    def __init__(
        self,
        responsibility: str,
        details: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            _render(self.code, responsibility=responsibility, details=details)
        )
        self.responsibility = responsibility
        self.details = details
        self.status_code = status_code


class InvalidResponseError(RemoteCallFailedError):
    """The backend answered, but with a payload we cannot interpret."""

    code = "E-2002"


class InvalidResponsibilityError(WmsyncError):
    """No handler or API configuration exists for a responsibility."""

    code = "E-3001"

    def __init__(self, responsibility: str) -> None:
        super().__init__(_render(self.code, responsibility=responsibility))
        self.responsibility = responsibility


class MalformedActivityRecordError(WmsyncError):
    """An activity record cannot be interpreted and is dropped."""

    code = "E-4001"

    def __init__(self, details: str) -> None:
        super().__init__(_render(self.code, details=details))
        self.details = details


class EmptyResponsibilitiesError(WmsyncError):
    """A pass was started with no responsibilities."""

    code = "E-5001"

    def __init__(self, operation: str = "refresh") -> None:
        super().__init__(_render(self.code, operation=operation))
        self.operation = operation


class RefreshInProgressError(WmsyncError):
    """A refresh pass was requested while another one is running."""

    code = "E-5002"

    def __init__(self) -> None:
        super().__init__(_render(self.code))


class NothingToRetryError(WmsyncError):
    """retry_failed_only was called with no failed responsibilities."""

    code = "E-5003"

    def __init__(self) -> None:
        super().__init__(_render(self.code))


class RetryLimitExceededError(WmsyncError):
    """Every failed responsibility has used up its retry attempts."""

    code = "E-5004"

    def __init__(self, responsibilities: Sequence[str], max_attempts: int) -> None:
        super().__init__(
            _render(
                self.code,
                responsibilities=", ".join(responsibilities),
                max_attempts=max_attempts,
            )
        )
        self.responsibilities = list(responsibilities)
        self.max_attempts = max_attempts
