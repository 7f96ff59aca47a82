"""Component factory wiring the core from configuration.

CLI commands never construct core services directly; everything they
need is assembled here from a WmsyncConfig.
"""

import logging
import sys

import httpx

from wmsync.cli.config import LoggingSettings, WmsyncConfig
from wmsync.db.connection import create_db_engine, create_session_factory, init_db
from wmsync.refresh.orchestrator import RefreshOrchestrator
from wmsync.refresh.registry import ResponsibilityRegistry
from wmsync.services.connectivity import ConnectivityProbe, HttpReachabilitySource
from wmsync.services.fetcher import HttpResponsibilityFetcher
from wmsync.services.notifier import Notifier
from wmsync.services.transaction_store import SqlPendingTransactionStore
from wmsync.sync.coordinator import TransactionSyncCoordinator
from wmsync.sync.load_to_dock import LOAD_TO_DOCK, LoadToDockConfirmer
from wmsync.sync.routing import ConfirmRoutingTable


def configure_logging(settings: LoggingSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.level),
        format=settings.format,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    logging.getLogger("wmsync").setLevel(getattr(logging, settings.level))


def create_http_client(
    config: WmsyncConfig, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """Create the shared backend client.

    Args:
        config: Loaded configuration.
        transport: Optional transport override, used by tests.
    """
    headers = {"Accept": "application/json"}
    if config.api.token:
        headers["Authorization"] = f"Bearer {config.api.token}"
    return httpx.AsyncClient(
        base_url=config.api.base_url,
        timeout=config.api.timeout,
        headers=headers,
        transport=transport,
    )


def create_probe(config: WmsyncConfig, client: httpx.AsyncClient) -> ConnectivityProbe:
    source = HttpReachabilitySource(
        client,
        config.connectivity.check_url,
        timeout=config.connectivity.timeout,
    )
    return ConnectivityProbe(source)


def create_store(config: WmsyncConfig) -> SqlPendingTransactionStore:
    """Open the local database, creating tables on first use."""
    engine = create_db_engine(config.store.database_url, echo=config.store.echo)
    init_db(engine)
    return SqlPendingTransactionStore(create_session_factory(engine))


def refresh_responsibilities(
    config: WmsyncConfig, registry: ResponsibilityRegistry
) -> list[str]:
    """Configured refresh responsibilities, or every registered one."""
    return list(config.refresh.responsibilities) or registry.names()


def create_orchestrator(
    config: WmsyncConfig,
    probe: ConnectivityProbe,
    registry: ResponsibilityRegistry,
) -> RefreshOrchestrator:
    return RefreshOrchestrator(
        probe=probe,
        registry=registry,
        max_retry_attempts=config.refresh.max_retry_attempts,
        eta_window=config.refresh.eta_window,
    )


def create_fetcher(
    config: WmsyncConfig,
    client: httpx.AsyncClient,
    registry: ResponsibilityRegistry,
) -> HttpResponsibilityFetcher:
    return HttpResponsibilityFetcher(
        client,
        registry,
        org_id=config.api.org_id,
        default_org_id=config.api.default_org_id,
    )


def create_routes(
    config: WmsyncConfig,
    client: httpx.AsyncClient,
    store: SqlPendingTransactionStore,
) -> ConfirmRoutingTable:
    routes = ConfirmRoutingTable()
    routes.register(
        LOAD_TO_DOCK,
        LoadToDockConfirmer(client, store, endpoint=config.sync.load_to_dock_endpoint),
    )
    return routes


def create_coordinator(
    config: WmsyncConfig,
    client: httpx.AsyncClient,
    probe: ConnectivityProbe,
    store: SqlPendingTransactionStore,
    notifier: Notifier | None = None,
) -> TransactionSyncCoordinator:
    return TransactionSyncCoordinator(
        probe, store, create_routes(config, client, store), notifier=notifier
    )
