"""Root-level pytest fixtures for all tests.

Provides shared fixtures for:
- Connectivity probes backed by a fake network source
- Recording observers and notifiers
- In-memory pending-transaction store
"""

from collections.abc import Iterator

import pytest

from tests.helpers import ONLINE, FakeNetworkSource, RecordingObserver
from wmsync.db.connection import create_db_engine, create_session_factory, init_db
from wmsync.services.connectivity import DISCONNECTED, ConnectivityProbe
from wmsync.services.notifier import RecordingNotifier
from wmsync.services.transaction_store import SqlPendingTransactionStore


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: tests that wire several components together"
    )


# ============================================================================
# Connectivity Fixtures
# ============================================================================


@pytest.fixture
def network() -> FakeNetworkSource:
    return FakeNetworkSource(ONLINE)


@pytest.fixture
def probe(network: FakeNetworkSource) -> ConnectivityProbe:
    return ConnectivityProbe(network)


@pytest.fixture
def offline_probe() -> ConnectivityProbe:
    return ConnectivityProbe(FakeNetworkSource(DISCONNECTED))


# ============================================================================
# Observer Fixtures
# ============================================================================


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def store() -> Iterator[SqlPendingTransactionStore]:
    """In-memory SQLite store shared across worker threads."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield SqlPendingTransactionStore(create_session_factory(engine))
    engine.dispose()
