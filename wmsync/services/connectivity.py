"""Connectivity probe for online/offline detection.

Wraps a network state source into a cached, subscribable "online" signal.
Online means the device reports a data connection AND internet
reachability is confirmed; an unknown reachability counts as offline.

Usage:
    probe = ConnectivityProbe(HttpReachabilitySource(client, url))
    if await probe.is_online():
        ...
    unsubscribe = probe.subscribe(on_change)
    ...
    unsubscribe()
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional, Protocol, Union

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkState:
    """Network state as reported by the platform."""

    is_connected: bool
    """Device has a data connection."""

    is_internet_reachable: Optional[bool]
    """Internet reachability; None while unknown."""

    type: Optional[str] = None
    """Connection type label, e.g. wifi or cellular."""

    @property
    def is_online(self) -> bool:
        return self.is_connected and self.is_internet_reachable is True


DISCONNECTED = NetworkState(is_connected=False, is_internet_reachable=False, type="none")

StateCallback = Callable[[NetworkState], Union[None, Awaitable[None]]]


class NetworkStateSource(Protocol):
    """Platform connectivity check."""

    async def fetch(self) -> NetworkState:
        """Perform a fresh connectivity check."""
        ...


class HttpReachabilitySource:
    """Network state source backed by an HTTP reachability request.

    - Connection failure: disconnected.
    - Timeout: connected, reachability unknown.
    - 2xx response: reachable.
    - Any other status: connected but not reachable (captive portals,
      proxies).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        timeout: float = 5.0,
        connection_type: str = "http",
    ) -> None:
        """Initialize the source.

        Args:
            client: Shared httpx client.
            url: Endpoint expected to answer with 2xx when online.
            timeout: Per-check timeout in seconds.
            connection_type: Label reported as NetworkState.type.
        """
        self._client = client
        self._url = url
        self._timeout = timeout
        self._type = connection_type

    async def fetch(self) -> NetworkState:
        try:
            response = await self._client.get(self._url, timeout=self._timeout)
        except httpx.TimeoutException:
            logger.debug("Reachability check timed out: %s", self._url)
            return NetworkState(is_connected=True, is_internet_reachable=None, type=self._type)
        except httpx.TransportError as e:
            logger.debug("Reachability check failed: %s", e)
            return DISCONNECTED

        return NetworkState(
            is_connected=True,
            is_internet_reachable=response.is_success,
            type=self._type,
        )


class ConnectivityProbe:
    """Cached, subscribable online signal over a NetworkStateSource.

    Gating decisions must call ``is_online()``; ``get_cached_state()`` is
    for display only and may be stale.
    """

    def __init__(self, source: NetworkStateSource) -> None:
        """Initialize the probe.

        Args:
            source: Platform connectivity check.
        """
        self._source = source
        self._current: NetworkState | None = None
        self._subscribers: list[StateCallback] = []
        self._poll_task: asyncio.Task | None = None
        self._published_online: bool | None = None

    async def get_current_state(self) -> NetworkState:
        """Perform a fresh check and cache the result.

        Source failures are treated as disconnected.
        """
        try:
            state = await self._source.fetch()
        except Exception as e:
            logger.warning("Connectivity check failed, assuming offline: %s", e)
            state = DISCONNECTED
        self._current = state
        return state

    async def is_online(self) -> bool:
        """Fresh check: connected and reachability confirmed true."""
        state = await self.get_current_state()
        return state.is_online

    def get_cached_state(self) -> NetworkState | None:
        """Last observed state without a network check, for display."""
        return self._current

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Register for network state transitions.

        Args:
            callback: Called with each new NetworkState. May be a plain
                function or a coroutine function.

        Returns:
            Function that removes the subscription. Calling it twice is
            harmless.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, state: NetworkState) -> None:
        """Record a state pushed by the platform and notify subscribers.

        Exceptions from individual subscribers are logged so one broken
        subscriber cannot stop delivery to the others.
        """
        self._current = state
        self._published_online = state.is_online
        for callback in list(self._subscribers):
            try:
                result = callback(state)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Connectivity subscriber %s failed: %s",
                    getattr(callback, "__name__", type(callback).__name__),
                    e,
                )

    async def poll_once(self) -> bool:
        """Check the source and publish if the online signal changed.

        Returns:
            True if a transition was published.
        """
        state = await self.get_current_state()
        if self._published_online == state.is_online:
            return False
        logger.info("Connectivity changed: %s", "online" if state.is_online else "offline")
        await self.publish(state)
        return True

    def start_polling(self, interval: float = 10.0) -> asyncio.Task:
        """Poll the source in the background, publishing transitions.

        Must be called from a running event loop. Stop with
        ``stop_polling()``.
        """
        if self._poll_task is not None and not self._poll_task.done():
            return self._poll_task

        async def _loop() -> None:
            while True:
                await self.poll_once()
                await asyncio.sleep(interval)

        self._poll_task = asyncio.create_task(_loop(), name="wmsync-connectivity-poll")
        return self._poll_task

    async def stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
