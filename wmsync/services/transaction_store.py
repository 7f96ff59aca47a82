"""Local store for transactions waiting to be confirmed with the backend.

The sync coordinator only reads from a store; confirm primitives also mark
what they sent. ``SqlPendingTransactionStore`` persists to the SQLAlchemy
database, running each blocking session in a worker thread so the event
loop is never blocked.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from wmsync.db.connection import session_scope
from wmsync.db.models import PendingTransactionRow, TransactionStatus, utc_now_iso

logger = logging.getLogger(__name__)

_AWAITING = (TransactionStatus.pending.value, TransactionStatus.failed.value)


@dataclass(frozen=True)
class PendingTransaction:
    """Read-only view of a stored transaction."""

    id: str
    responsibility: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    retry_count: int = 0
    status: TransactionStatus = TransactionStatus.pending
    error_message: str | None = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: PendingTransactionRow) -> "PendingTransaction":
        try:
            payload = json.loads(row.payload) if row.payload else {}
        except json.JSONDecodeError:
            logger.warning("Transaction %s has an unreadable payload", row.id)
            payload = {}
        return cls(
            id=row.id,
            responsibility=row.responsibility,
            payload=payload,
            retry_count=row.retry_count,
            status=TransactionStatus(row.status),
            error_message=row.error_message,
            created_at=row.created_at,
        )


class PendingTransactionStore(Protocol):
    """What the sync coordinator needs from local storage."""

    async def list_pending(
        self, responsibility: str | None = None
    ) -> list[PendingTransaction]:
        """Transactions still awaiting confirmation, oldest first."""
        ...


class SqlPendingTransactionStore:
    """Pending transactions persisted with SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    async def add(
        self, responsibility: str, payload: Mapping[str, Any]
    ) -> PendingTransaction:
        """Queue a transaction captured on the device."""
        return await asyncio.to_thread(self._add, responsibility, dict(payload))

    async def list_pending(
        self, responsibility: str | None = None
    ) -> list[PendingTransaction]:
        return await asyncio.to_thread(self._list_pending, responsibility)

    async def count_pending(self, responsibility: str | None = None) -> int:
        return await asyncio.to_thread(self._count_pending, responsibility)

    async def mark_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        error_message: str | None = None,
    ) -> None:
        """Record the outcome of a confirmation attempt.

        A failed attempt increments the transaction's retry count; a
        successful one clears the error and stamps the sync time.

        Raises:
            KeyError: If no transaction has this id.
        """
        await asyncio.to_thread(self._mark_status, transaction_id, status, error_message)

    def _add(self, responsibility: str, payload: dict[str, Any]) -> PendingTransaction:
        with session_scope(self._session_factory) as db:
            row = PendingTransactionRow(
                responsibility=responsibility,
                payload=json.dumps(payload, default=str),
                status=TransactionStatus.pending.value,
                retry_count=0,
                created_at=utc_now_iso(),
            )
            db.add(row)
            db.flush()
            logger.debug("Queued %s transaction %s", responsibility, row.id)
            return PendingTransaction.from_row(row)

    def _list_pending(self, responsibility: str | None) -> list[PendingTransaction]:
        with session_scope(self._session_factory) as db:
            stmt = select(PendingTransactionRow).where(
                PendingTransactionRow.status.in_(_AWAITING)
            )
            if responsibility is not None:
                stmt = stmt.where(PendingTransactionRow.responsibility == responsibility)
            stmt = stmt.order_by(PendingTransactionRow.created_at, PendingTransactionRow.id)
            return [PendingTransaction.from_row(row) for row in db.scalars(stmt)]

    def _count_pending(self, responsibility: str | None) -> int:
        with session_scope(self._session_factory) as db:
            stmt = select(func.count(PendingTransactionRow.id)).where(
                PendingTransactionRow.status.in_(_AWAITING)
            )
            if responsibility is not None:
                stmt = stmt.where(PendingTransactionRow.responsibility == responsibility)
            return db.scalar(stmt) or 0

    def _mark_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        error_message: str | None,
    ) -> None:
        with session_scope(self._session_factory) as db:
            row = db.get(PendingTransactionRow, transaction_id)
            if row is None:
                raise KeyError(transaction_id)
            row.status = status.value
            if status == TransactionStatus.failed:
                row.retry_count += 1
                row.error_message = error_message
            elif status == TransactionStatus.synced:
                row.error_message = None
                row.synced_at = utc_now_iso()
