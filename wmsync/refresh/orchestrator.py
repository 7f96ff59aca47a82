"""Refresh orchestrator: sequential, cancellable, retryable refresh passes.

Drives one fetch per responsibility strictly in input order so progress
reports a single well-defined position and every API group has at most one
call in flight. Per-responsibility failures never abort a pass; losing
connectivity turns the rest of the pass into soft offline results.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any, Union

from wmsync.activity.consolidation import ActivityConsolidationEngine
from wmsync.activity.models import (
    ApiType,
    ConsolidatedApiRecord,
    RawActivityRecord,
    utc_now,
)
from wmsync.errors import (
    EmptyResponsibilitiesError,
    MalformedActivityRecordError,
    NetworkUnavailableError,
    NothingToRetryError,
    RefreshInProgressError,
    RetryLimitExceededError,
)
from wmsync.refresh.activity_log import ActivityLog
from wmsync.refresh.events import RefreshEventEmitter
from wmsync.refresh.models import (
    RefreshOutcome,
    RefreshResult,
    RefreshState,
    RefreshSummary,
)
from wmsync.refresh.progress import ProgressTracker
from wmsync.refresh.registry import ResponsibilityRegistry
from wmsync.services.connectivity import ConnectivityProbe

logger = logging.getLogger(__name__)

ActivityDelta = Sequence[Union[RawActivityRecord, Mapping[str, Any]]]
FetchPrimitive = Callable[[str], Awaitable[ActivityDelta]]

OFFLINE_MESSAGE = "Device is offline. Will refresh when back online."
DEFAULT_MAX_RETRY_ATTEMPTS = 3


class RefreshOrchestrator:
    """Runs refresh passes over an ordered list of responsibilities.

    Attributes:
        events: Event emitter for registering lifecycle observers.
        max_retry_attempts: Retries allowed per responsibility between two
            full passes.
    """

    def __init__(
        self,
        probe: ConnectivityProbe | None = None,
        registry: ResponsibilityRegistry | None = None,
        engine: ActivityConsolidationEngine | None = None,
        max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS,
        eta_window: int | None = None,
        clock: Callable[[], float] | None = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            probe: Connectivity probe checked before each responsibility.
                Without one the pass only learns about connectivity loss
                from NetworkUnavailableError raised by the fetch primitive.
            registry: Used to label progress and results with API types.
            engine: Consolidation engine for ``consolidated()``.
            max_retry_attempts: Retry budget per responsibility.
            eta_window: Durations averaged for the ETA (None = all).
            clock: Monotonic clock in seconds, for durations.
            now: Wall clock, for timestamps.
        """
        self._probe = probe
        self._registry = registry
        self._engine = engine or ActivityConsolidationEngine()
        self.max_retry_attempts = max_retry_attempts
        self._eta_window = eta_window
        self._clock = clock
        self._now = now
        self._event_emitter = RefreshEventEmitter()

        self._state = RefreshState.idle
        self._cancel_requested = False
        self._log = ActivityLog(now=now)
        self._last_results: dict[str, RefreshResult] = {}
        self._last_outcome: RefreshOutcome | None = None
        self._last_fetch: FetchPrimitive | None = None
        self._retry_attempts: dict[str, int] = {}

    @property
    def events(self) -> RefreshEventEmitter:
        """Get event emitter for observer registration."""
        return self._event_emitter

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == RefreshState.running

    @property
    def last_outcome(self) -> RefreshOutcome | None:
        """Outcome of the most recent pass, full or retry."""
        return self._last_outcome

    @property
    def last_results(self) -> tuple[RefreshResult, ...]:
        """Latest result per responsibility since the last full pass."""
        return tuple(self._last_results.values())

    @property
    def activities(self) -> tuple[RawActivityRecord, ...]:
        """Snapshot of raw activity records of the current pass."""
        return self._log.records()

    def retry_attempts(self, responsibility: str) -> int:
        return self._retry_attempts.get(responsibility, 0)

    def consolidated(self) -> list[ConsolidatedApiRecord]:
        """Consolidate the current activity; safe to call mid-pass."""
        return self._engine.consolidate(self._log.records())

    def cancel(self) -> bool:
        """Request cooperative cancellation of the running pass.

        The fetch in flight completes and is recorded; later
        responsibilities are skipped.

        Returns:
            True if a pass was running and will stop, False otherwise.
        """
        if not self.is_running:
            return False
        logger.info("Refresh cancellation requested")
        self._cancel_requested = True
        return True

    def reset(self) -> None:
        """Return a finished orchestrator to idle, dropping pass state.

        Raises:
            RefreshInProgressError: If a pass is running.
        """
        if self.is_running:
            raise RefreshInProgressError()
        self._state = RefreshState.idle
        self._log.reset()
        self._last_results.clear()
        self._last_outcome = None
        self._retry_attempts.clear()

    async def run(
        self, responsibilities: Sequence[str], fetch: FetchPrimitive
    ) -> RefreshOutcome:
        """Run a full refresh pass.

        Args:
            responsibilities: Responsibilities in processing order.
            fetch: Async primitive performing one responsibility's remote
                call; resolves to the activity records it produced.

        Returns:
            RefreshOutcome with the summary and one result per processed
            responsibility.

        Raises:
            EmptyResponsibilitiesError: If responsibilities is empty.
            RefreshInProgressError: If a pass is already running.
        """
        return await self._run(list(responsibilities), fetch, full=True)

    async def retry(
        self, responsibility: str, fetch: FetchPrimitive | None = None
    ) -> RefreshOutcome:
        """Re-run a single responsibility, e.g. from a retry affordance.

        Args:
            responsibility: Responsibility to refresh again.
            fetch: Fetch primitive; defaults to the one used last.

        Raises:
            RefreshInProgressError: If a pass is already running.
            RetryLimitExceededError: If the retry budget is used up.
        """
        self._ensure_idle()
        if self.retry_attempts(responsibility) >= self.max_retry_attempts:
            raise RetryLimitExceededError([responsibility], self.max_retry_attempts)
        return await self._run([responsibility], self._resolve_fetch(fetch), full=False)

    async def retry_failed_only(
        self, fetch: FetchPrimitive | None = None
    ) -> RefreshOutcome:
        """Re-run only the responsibilities whose last result failed.

        Offline results are not failures and are not retried. Relative
        order of the original pass is preserved.

        Args:
            fetch: Fetch primitive; defaults to the one used last.

        Raises:
            RefreshInProgressError: If a pass is already running.
            NothingToRetryError: If no responsibility failed.
            RetryLimitExceededError: If every failed responsibility has
                used up its retry budget.
        """
        self._ensure_idle()
        failed = [r.responsibility for r in self._last_results.values() if r.is_failure]
        if not failed:
            raise NothingToRetryError()

        exhausted = [r for r in failed if self.retry_attempts(r) >= self.max_retry_attempts]
        eligible = [r for r in failed if r not in exhausted]
        if exhausted:
            logger.warning(
                "Skipping %d responsibilities past %d retries: %s",
                len(exhausted),
                self.max_retry_attempts,
                ", ".join(exhausted),
            )
        if not eligible:
            raise RetryLimitExceededError(exhausted, self.max_retry_attempts)

        return await self._run(eligible, self._resolve_fetch(fetch), full=False)

    def _ensure_idle(self) -> None:
        if self.is_running:
            raise RefreshInProgressError()

    def _resolve_fetch(self, fetch: FetchPrimitive | None) -> FetchPrimitive:
        fetch = fetch or self._last_fetch
        if fetch is None:
            raise ValueError("No fetch primitive given and no previous pass to reuse")
        return fetch

    def _api_type(self, responsibility: str) -> ApiType:
        if self._registry is None:
            return ApiType.unknown
        return self._registry.api_type(responsibility)

    async def _is_online(self) -> bool:
        if self._probe is None:
            return True
        return await self._probe.is_online()

    async def _run(
        self, responsibilities: list[str], fetch: FetchPrimitive, full: bool
    ) -> RefreshOutcome:
        # Preconditions are checked and the running flag set before the
        # first await, so a concurrent caller is always rejected.
        if not responsibilities:
            raise EmptyResponsibilitiesError("refresh")
        self._ensure_idle()

        self._state = RefreshState.running
        self._cancel_requested = False
        self._last_fetch = fetch
        started_at = self._now()

        if full:
            self._log.reset()
            self._last_results.clear()
            self._retry_attempts.clear()
        else:
            for responsibility in responsibilities:
                self._retry_attempts[responsibility] = self.retry_attempts(responsibility) + 1

        for responsibility in responsibilities:
            self._log.seed(
                responsibility,
                api_type=self._api_type(responsibility),
                retry_count=self.retry_attempts(responsibility),
            )

        results: list[RefreshResult] = []
        cancelled = False
        try:
            logger.info(
                "Starting refresh for %d responsibilities: %s",
                len(responsibilities),
                ", ".join(responsibilities),
            )
            await self._event_emitter.emit_refresh_started(responsibilities)

            tracker = ProgressTracker(
                len(responsibilities), window=self._eta_window, clock=self._clock
            )
            offline_from: int | None = None
            offline_message = OFFLINE_MESSAGE

            for index, responsibility in enumerate(responsibilities):
                if self._cancel_requested:
                    cancelled = True
                    logger.info(
                        "Refresh cancelled after %d/%d responsibilities",
                        index,
                        len(responsibilities),
                    )
                    break

                if not await self._is_online():
                    offline_from = index
                    logger.warning("Connectivity lost before %s", responsibility)
                    break

                api_type = self._api_type(responsibility)
                progress = tracker.start(index + 1, responsibility, api_type)
                self._log.mark_processing(responsibility)
                await self._event_emitter.emit_progress(progress)
                logger.info(
                    "Processing %d/%d: %s (%s)",
                    index + 1,
                    len(responsibilities),
                    responsibility,
                    api_type.value,
                )

                try:
                    delta = await fetch(responsibility)
                except NetworkUnavailableError as e:
                    tracker.finish()
                    offline_from = index
                    offline_message = str(e) or OFFLINE_MESSAGE
                    logger.warning("Fetch for %s found no connectivity", responsibility)
                    break
                except Exception as e:
                    result = self._failed(responsibility, api_type, e, tracker.finish())
                else:
                    duration_ms = tracker.finish()
                    try:
                        result = self._apply_delta(
                            responsibility, api_type, delta, duration_ms
                        )
                    except Exception as e:
                        result = self._failed(responsibility, api_type, e, duration_ms)

                await self._record(result, results)

            if offline_from is not None:
                for responsibility in responsibilities[offline_from:]:
                    self._log.mark_offline(responsibility, offline_message)
                    await self._record(
                        RefreshResult(
                            responsibility=responsibility,
                            success=False,
                            offline=True,
                            error=offline_message,
                            api_type=self._api_type(responsibility),
                        ),
                        results,
                    )

            summary = RefreshSummary.from_results(
                results, started_at, self._now(), cancelled=cancelled
            )
            outcome = RefreshOutcome(summary=summary, results=tuple(results))
            self._last_outcome = outcome

            logger.info(
                "Refresh finished: %d succeeded, %d failed, %d offline of %d",
                summary.succeeded,
                summary.failed,
                summary.offline,
                len(responsibilities),
            )
            if cancelled:
                self._state = RefreshState.cancelled
                await self._event_emitter.emit_refresh_cancelled(summary)
            else:
                self._state = RefreshState.completed
                await self._event_emitter.emit_refresh_completed(summary)
            return outcome
        finally:
            if self._state == RefreshState.running:
                # Interrupted, e.g. the task running the pass was cancelled.
                self._state = RefreshState.cancelled
            self._cancel_requested = False

    async def _record(self, result: RefreshResult, results: list[RefreshResult]) -> None:
        results.append(result)
        self._last_results[result.responsibility] = result
        await self._event_emitter.emit_responsibility_completed(result)

    def _failed(
        self,
        responsibility: str,
        api_type: ApiType,
        error: Exception,
        duration_ms: int,
    ) -> RefreshResult:
        message = str(error) or type(error).__name__
        logger.error("Refresh of %s failed: %s", responsibility, message)
        self._log.mark_failed(responsibility, message)
        return RefreshResult(
            responsibility=responsibility,
            success=False,
            error=message,
            api_type=api_type,
            duration_ms=duration_ms,
        )

    def _apply_delta(
        self,
        responsibility: str,
        api_type: ApiType,
        delta: ActivityDelta,
        duration_ms: int,
    ) -> RefreshResult:
        """Store a resolved delta and derive the responsibility's result.

        Raises:
            MalformedActivityRecordError: If the delta is missing or none of
                its items is a usable activity record.
        """
        if delta is None:
            raise MalformedActivityRecordError(
                f"fetch for {responsibility} resolved to nothing"
            )
        items = list(self._stamp(responsibility, delta))
        kept = self._log.replace(responsibility, items)
        if items and not kept:
            raise MalformedActivityRecordError(
                f"no usable activity records for {responsibility}"
            )

        result = self._result_from_records(
            responsibility, api_type, self._log.slot(responsibility), duration_ms
        )
        logger.info(
            "Refresh of %s completed in %dms (%d/%d records)",
            responsibility,
            duration_ms,
            result.records_inserted,
            result.records_total,
        )
        return result

    def _stamp(self, responsibility: str, delta: ActivityDelta) -> ActivityDelta:
        attempt = self.retry_attempts(responsibility)
        if attempt == 0:
            return delta
        stamped: list[Union[RawActivityRecord, Mapping[str, Any]]] = []
        for item in delta:
            if isinstance(item, RawActivityRecord) and item.retry_count < attempt:
                item = replace(item, retry_count=attempt)
            stamped.append(item)
        return stamped

    @staticmethod
    def _result_from_records(
        responsibility: str,
        api_type: ApiType,
        records: Sequence[RawActivityRecord],
        duration_ms: int,
    ) -> RefreshResult:
        if api_type == ApiType.unknown and records:
            api_type = records[0].api_type
        errors = [r for r in records if r.status.is_error]
        error = None
        if errors:
            error = errors[0].error or f"{errors[0].api_name} ended with {errors[0].status.value}"
        return RefreshResult(
            responsibility=responsibility,
            success=not errors,
            error=error,
            api_type=api_type,
            records_total=sum(r.total_records for r in records),
            records_inserted=sum(r.inserted_records for r in records),
            duration_ms=duration_ms,
        )
