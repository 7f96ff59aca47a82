"""Data models for transaction sync passes."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ConfirmResult:
    """Outcome of confirming one responsibility's pending transactions."""

    success: bool
    """All transactions sent were accepted (or there was nothing to send)."""

    error: Optional[str] = None
    """Failure or offline message."""

    offline: bool = False
    """The device went offline; the transactions stay queued."""

    confirmed: int = 0
    """Transactions the backend accepted."""


class SyncClassification(str, Enum):
    """Overall classification of a sync pass."""

    success = "success"
    partial = "partial"
    failed = "failed"
    offline = "offline"
    busy = "busy"


class OutcomeStatus(str, Enum):
    synced = "synced"
    errored = "errored"
    offline = "offline"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one responsibility within a sync pass."""

    responsibility: str
    status: OutcomeStatus
    error: Optional[str] = None
    confirmed: int = 0


@dataclass(frozen=True)
class SyncReport:
    """Summary of a sync pass, returned by ``sync_all``."""

    classification: SyncClassification
    synced: int = 0
    """Responsibilities confirmed without errors."""

    errored: int = 0
    """Responsibilities whose confirmation failed."""

    outcomes: tuple[SyncOutcome, ...] = ()
    """Per-responsibility outcomes in processing order."""

    pending_count: Optional[int] = None
    """Pending transactions after the pass; None when the store was not read."""

    message: Optional[str] = None
    """Offline message, when the pass stopped for lack of connectivity."""

    @classmethod
    def busy(cls) -> "SyncReport":
        return cls(classification=SyncClassification.busy)

    @property
    def errors(self) -> list[str]:
        return [
            f"{o.responsibility}: {o.error}"
            for o in self.outcomes
            if o.status == OutcomeStatus.errored
        ]
