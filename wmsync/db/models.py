"""SQLAlchemy ORM models for the local pending-transaction database.

Transactions captured while offline (or whose confirmation failed) are kept
here until a sync pass confirms them with the backend. Uses SQLAlchemy 2.0
style with Mapped and mapped_column.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


class TransactionStatus(str, Enum):
    """Status values for locally stored transactions.

    Lifecycle: pending -> synced
               pending -> failed -> synced (on a later pass)
    """

    pending = "pending"
    synced = "synced"
    failed = "failed"

    @property
    def awaits_sync(self) -> bool:
        return self in (TransactionStatus.pending, TransactionStatus.failed)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class PendingTransactionRow(Base):
    """A warehouse transaction waiting to be confirmed with the backend.

    Attributes:
        id: UUID primary key, sent as the mobile transaction id
        responsibility: Confirm route the transaction belongs to
        payload: JSON blob with the transaction fields
        status: Current transaction status
        retry_count: Failed confirmation attempts so far
        error_message: Error from the last failed attempt
        created_at: ISO8601 timestamp of capture
        synced_at: ISO8601 timestamp of successful confirmation
    """

    __tablename__ = "pending_transactions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    responsibility: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.pending.value
    )
    retry_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    synced_at: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_pending_transactions_status", "status"),
        Index(
            "idx_pending_transactions_responsibility_status",
            "responsibility",
            "status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<PendingTransactionRow(id={self.id!r}, "
            f"responsibility={self.responsibility!r}, status={self.status!r})>"
        )
