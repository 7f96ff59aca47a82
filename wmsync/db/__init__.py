"""Database module for locally stored pending transactions."""

from wmsync.db.connection import (
    create_db_engine,
    create_session_factory,
    get_database_url,
    init_db,
    session_scope,
)
from wmsync.db.models import Base, PendingTransactionRow, TransactionStatus

__all__ = [
    # Models
    "Base",
    "PendingTransactionRow",
    # Enums
    "TransactionStatus",
    # Connection
    "create_db_engine",
    "create_session_factory",
    "get_database_url",
    "init_db",
    "session_scope",
]
