"""Progress and ETA tracking for a refresh pass."""

import time
from collections import deque
from collections.abc import Callable

from wmsync.activity.models import ApiType
from wmsync.refresh.models import RefreshProgress


class ProgressTracker:
    """Tracks per-responsibility durations and builds progress snapshots.

    The ETA is the moving average of completed durations multiplied by the
    number of responsibilities not yet finished, the current one included.
    """

    def __init__(
        self,
        total: int,
        window: int | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            total: Responsibilities in the pass.
            window: Number of most recent durations to average. None
                averages every completed duration.
            clock: Monotonic clock in seconds. Defaults to time.monotonic.
        """
        self.total = total
        self._clock = clock or time.monotonic
        self._durations: deque[float] = deque(maxlen=window)
        self._completed = 0
        self._started: float | None = None

    @property
    def completed(self) -> int:
        return self._completed

    def average_ms(self) -> float | None:
        """Moving average duration in milliseconds, None without samples."""
        if not self._durations:
            return None
        return sum(self._durations) / len(self._durations) * 1000

    def estimated_time_remaining(self) -> int | None:
        average = self.average_ms()
        if average is None:
            return None
        remaining = max(0, self.total - self._completed)
        return round(average * remaining)

    def start(
        self, index: int, responsibility: str, api_type: ApiType | None = None
    ) -> RefreshProgress:
        """Mark responsibility at 1-based index as started.

        Returns:
            Progress snapshot to emit before fetching.
        """
        self._started = self._clock()
        return RefreshProgress.at(
            current=index,
            total=self.total,
            current_api=responsibility,
            current_api_type=api_type,
            estimated_time_remaining=self.estimated_time_remaining(),
        )

    def finish(self) -> int:
        """Record the duration of the responsibility started last.

        Returns:
            Duration in milliseconds.
        """
        if self._started is None:
            return 0
        elapsed = max(0.0, self._clock() - self._started)
        self._durations.append(elapsed)
        self._completed += 1
        self._started = None
        return round(elapsed * 1000)
