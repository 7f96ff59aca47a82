"""Observer pattern for refresh lifecycle events.

Provides the RefreshEventObserver protocol and RefreshEventEmitter class
for notifying observers of refresh pass progress.
"""

import logging
from typing import Protocol

from wmsync.refresh.models import RefreshProgress, RefreshResult, RefreshSummary

logger = logging.getLogger(__name__)


class RefreshEventObserver(Protocol):
    """Observer protocol for refresh lifecycle events.

    Implementations can subscribe to refresh events via RefreshEventEmitter
    to drive progress bars, update displays, or log activity.
    """

    async def on_refresh_started(self, responsibilities: list[str]) -> None:
        """Called when a pass begins.

        Args:
            responsibilities: Responsibilities of the pass, in order.
        """
        ...

    async def on_progress(self, progress: RefreshProgress) -> None:
        """Called before each responsibility is fetched.

        Args:
            progress: Snapshot for the responsibility about to run.
        """
        ...

    async def on_responsibility_completed(self, result: RefreshResult) -> None:
        """Called when a responsibility result is recorded.

        Args:
            result: Result for the responsibility, including offline ones.
        """
        ...

    async def on_refresh_completed(self, summary: RefreshSummary) -> None:
        """Called when a pass runs to its end.

        Args:
            summary: Summary of the pass.
        """
        ...

    async def on_refresh_cancelled(self, summary: RefreshSummary) -> None:
        """Called when a pass stops early after cancel().

        Args:
            summary: Summary covering the responsibilities processed.
        """
        ...


class RefreshEventEmitter:
    """Emits refresh lifecycle events to registered observers.

    Exceptions from individual observers are caught and logged to prevent
    one broken observer from stopping event delivery to others or from
    failing the pass.
    """

    def __init__(self) -> None:
        """Initialize emitter with empty observer list."""
        self._observers: list[RefreshEventObserver] = []

    def add_observer(self, observer: RefreshEventObserver) -> None:
        """Register an observer to receive refresh events.

        Args:
            observer: Observer implementing RefreshEventObserver protocol.
        """
        self._observers.append(observer)

    def remove_observer(self, observer: RefreshEventObserver) -> None:
        """Unregister an observer.

        Args:
            observer: Observer to remove from notification list.
        """
        self._observers.remove(observer)

    async def _emit(self, hook: str, *args: object) -> None:
        for observer in list(self._observers):
            callback = getattr(observer, hook, None)
            if callback is None:
                continue
            try:
                await callback(*args)
            except Exception as e:
                logger.error(
                    "Observer %s failed %s: %s",
                    type(observer).__name__,
                    hook,
                    e,
                )

    async def emit_refresh_started(self, responsibilities: list[str]) -> None:
        """Emit refresh started event to all observers."""
        await self._emit("on_refresh_started", list(responsibilities))

    async def emit_progress(self, progress: RefreshProgress) -> None:
        """Emit a progress snapshot to all observers."""
        await self._emit("on_progress", progress)

    async def emit_responsibility_completed(self, result: RefreshResult) -> None:
        """Emit a recorded responsibility result to all observers."""
        await self._emit("on_responsibility_completed", result)

    async def emit_refresh_completed(self, summary: RefreshSummary) -> None:
        """Emit refresh completed event to all observers."""
        await self._emit("on_refresh_completed", summary)

    async def emit_refresh_cancelled(self, summary: RefreshSummary) -> None:
        """Emit refresh cancelled event to all observers."""
        await self._emit("on_refresh_cancelled", summary)
