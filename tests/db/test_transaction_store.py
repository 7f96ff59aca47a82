"""Tests for the SQLAlchemy pending-transaction store."""

import pytest
from sqlalchemy import inspect

from wmsync.db.connection import (
    DEFAULT_DATABASE_URL,
    create_db_engine,
    create_session_factory,
    get_database_url,
    init_db,
    session_scope,
)
from wmsync.db.models import PendingTransactionRow, TransactionStatus
from wmsync.services.transaction_store import SqlPendingTransactionStore


class TestDatabaseUrl:
    """Tests for database URL precedence."""

    def test_default(self, monkeypatch):
        monkeypatch.delenv("WMSYNC_DATABASE_URL", raising=False)
        assert get_database_url() == DEFAULT_DATABASE_URL

    def test_configured(self, monkeypatch):
        monkeypatch.delenv("WMSYNC_DATABASE_URL", raising=False)
        assert get_database_url("sqlite:///tmp/x.db") == "sqlite:///tmp/x.db"

    def test_env_wins(self, monkeypatch):
        monkeypatch.setenv("WMSYNC_DATABASE_URL", "sqlite:///env.db")
        assert get_database_url("sqlite:///tmp/x.db") == "sqlite:///env.db"


def test_init_db_creates_table(tmp_path, monkeypatch):
    monkeypatch.delenv("WMSYNC_DATABASE_URL", raising=False)
    engine = create_db_engine(f"sqlite:///{tmp_path / 'wmsync.db'}")
    init_db(engine)
    assert "pending_transactions" in inspect(engine).get_table_names()
    engine.dispose()


def test_session_scope_rolls_back(store):
    factory = store._session_factory
    with pytest.raises(RuntimeError):
        with session_scope(factory) as db:
            db.add(PendingTransactionRow(responsibility="LOAD_TO_DOCK", payload="{}"))
            db.flush()
            raise RuntimeError("abort")
    with session_scope(factory) as db:
        assert db.query(PendingTransactionRow).count() == 0


class TestSqlPendingTransactionStore:
    """Tests for queueing and marking transactions."""

    @pytest.mark.asyncio
    async def test_add_and_list(self, store):
        first = await store.add("LOAD_TO_DOCK", {"DockDoor": "D1"})
        second = await store.add("LOAD_TO_DOCK", {"DockDoor": "D2"})
        await store.add("PICK", {"Lpn": "1"})

        pending = await store.list_pending("LOAD_TO_DOCK")
        assert [t.id for t in pending] == [first.id, second.id]
        assert pending[0].payload == {"DockDoor": "D1"}
        assert pending[0].status == TransactionStatus.pending
        assert pending[0].retry_count == 0
        assert await store.count_pending() == 3
        assert await store.count_pending("PICK") == 1

    @pytest.mark.asyncio
    async def test_failed_stays_pending_and_counts_retry(self, store):
        transaction = await store.add("LOAD_TO_DOCK", {})
        await store.mark_status(transaction.id, TransactionStatus.failed, "Invalid LPN")
        await store.mark_status(transaction.id, TransactionStatus.failed, "Dock closed")

        [pending] = await store.list_pending()
        assert pending.status == TransactionStatus.failed
        assert pending.retry_count == 2
        assert pending.error_message == "Dock closed"

    @pytest.mark.asyncio
    async def test_synced_leaves_queue(self, store):
        transaction = await store.add("LOAD_TO_DOCK", {})
        await store.mark_status(transaction.id, TransactionStatus.failed, "Invalid LPN")
        await store.mark_status(transaction.id, TransactionStatus.synced)

        assert await store.list_pending() == []
        with session_scope(store._session_factory) as db:
            row = db.get(PendingTransactionRow, transaction.id)
            assert row.synced_at is not None
            assert row.error_message is None

    @pytest.mark.asyncio
    async def test_mark_unknown_id(self, store):
        with pytest.raises(KeyError):
            await store.mark_status("missing", TransactionStatus.synced)

    @pytest.mark.asyncio
    async def test_unreadable_payload(self, store):
        with session_scope(store._session_factory) as db:
            db.add(PendingTransactionRow(responsibility="LOAD_TO_DOCK", payload="{not json"))
        [pending] = await store.list_pending()
        assert pending.payload == {}

    @pytest.mark.asyncio
    async def test_file_database_persists(self, tmp_path, monkeypatch):
        monkeypatch.delenv("WMSYNC_DATABASE_URL", raising=False)
        url = f"sqlite:///{tmp_path / 'queue.db'}"

        engine = create_db_engine(url)
        init_db(engine)
        await SqlPendingTransactionStore(create_session_factory(engine)).add("LOAD_TO_DOCK", {})
        engine.dispose()

        engine = create_db_engine(url)
        reopened = SqlPendingTransactionStore(create_session_factory(engine))
        assert await reopened.count_pending() == 1
        engine.dispose()


def test_awaits_sync():
    assert TransactionStatus.pending.awaits_sync
    assert TransactionStatus.failed.awaits_sync
    assert not TransactionStatus.synced.awaits_sync
