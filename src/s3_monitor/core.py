# src/s3_monitor/core.py

"""
Core logic for delivering a batch of events synchronously.

The collector transport is asynchronous: it returns from ``submit`` at once
and reports outcomes later, from worker threads, through success and failure
callbacks that may each fire several times per batch. A Lambda execution
environment is frozen as soon as the handler returns, so the handler must not
return until every event of the batch is known to be delivered or failed.

`BatchEmissionCoordinator` bridges the two. For each batch it creates a fresh
completion tracker holding the running success and failure totals and a
one-shot ``concurrent.futures.Future``. Every callback updates the totals
under the tracker's lock, and the future is resolved exactly once, the first
time the totals cover the whole batch. The caller blocks on that future with
an explicit deadline.
"""

import enum
import logging
import threading
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .emitter import FailureCallback, SuccessCallback
from .events import EventEnvelope
from .exceptions import (
    CoordinatorStateError,
    EmissionTimeoutError,
    InterruptedWaitError,
    TransportFailureError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EmissionOutcome:
    """Accumulated delivery results for one batch."""

    success_count: int
    failure_count: int

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count


class Transport(Protocol):
    def submit(self, batch: Sequence[EventEnvelope]) -> None: ...

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None: ...


class TransportFactory(Protocol):
    def __call__(
        self,
        endpoint: str,
        *,
        namespace: str,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
    ) -> Transport: ...


class EmissionState(enum.Enum):
    IDLE = "IDLE"
    SUBMITTED = "SUBMITTED"
    COMPLETED_SUCCESS = "COMPLETED_SUCCESS"
    COMPLETED_WITH_FAILURES = "COMPLETED_WITH_FAILURES"
    ABORTED = "ABORTED"


class _CompletionTracker:
    """
    Running outcome totals for one batch and the future they resolve.

    Reports are deltas since the previous report. Counts that would take the
    total past the batch size are clamped, successes first, and the excess is
    discarded with a warning; reports arriving after completion are ignored.
    """

    def __init__(self, expected: int):
        self._expected = expected
        self._lock = threading.Lock()
        self._successes = 0
        self._failures = 0
        self._completion: "Future[EmissionOutcome]" = Future()

    def on_success(self, success_count: int) -> None:
        self._record(success_count, 0)

    def on_failure(self, success_count: int, failed_events: list[EventEnvelope]) -> None:
        self._record(success_count, len(failed_events))

    def _record(self, successes: int, failures: int) -> None:
        successes = max(successes, 0)
        failures = max(failures, 0)
        with self._lock:
            if self._completion.done():
                if successes or failures:
                    logger.warning(
                        "Ignoring delivery outcome reported after completion",
                        extra={"successes": successes, "failures": failures},
                    )
                return

            remaining = self._expected - self._successes - self._failures
            accepted_successes = min(successes, remaining)
            accepted_failures = min(failures, remaining - accepted_successes)
            discarded = successes + failures - accepted_successes - accepted_failures
            if discarded:
                logger.warning(
                    "Discarding over-reported delivery outcomes",
                    extra={
                        "reported_successes": successes,
                        "reported_failures": failures,
                        "discarded": discarded,
                        "expected": self._expected,
                    },
                )

            self._successes += accepted_successes
            self._failures += accepted_failures
            if self._successes + self._failures == self._expected:
                self._completion.set_result(
                    EmissionOutcome(self._successes, self._failures)
                )

    def snapshot(self) -> EmissionOutcome:
        with self._lock:
            return EmissionOutcome(self._successes, self._failures)

    def wait(self, timeout: Optional[float]) -> EmissionOutcome:
        return self._completion.result(timeout=timeout)

    def cancel(self) -> bool:
        """Cancels the pending completion; False if it has already resolved."""
        with self._lock:
            return self._completion.cancel()


class BatchEmissionCoordinator:
    """
    Delivers one batch of envelopes and blocks until every outcome is known.

    A coordinator is single-use: IDLE -> SUBMITTED -> COMPLETED_SUCCESS or
    COMPLETED_WITH_FAILURES (ABORTED on deadline or interruption). Create a
    new instance for every batch.
    """

    def __init__(
        self,
        endpoint: str,
        namespace: str,
        transport_factory: TransportFactory,
    ):
        self._endpoint = endpoint
        self._namespace = namespace
        self._transport_factory = transport_factory
        self._state = EmissionState.IDLE
        self._state_lock = threading.Lock()
        self._tracker: Optional[_CompletionTracker] = None

    @property
    def state(self) -> EmissionState:
        return self._state

    def emit(
        self,
        envelopes: Sequence[EventEnvelope],
        timeout_seconds: Optional[float] = None,
    ) -> EmissionOutcome:
        """
        Submits *envelopes* in one batch and waits for all of their outcomes.

        Returns the outcome when every event was delivered. Raises
        TransportFailureError if any failed, EmissionTimeoutError if the
        outcomes are not all known within *timeout_seconds*, and
        InterruptedWaitError if the wait is interrupted or cancelled.
        """
        with self._state_lock:
            if self._state is not EmissionState.IDLE:
                raise CoordinatorStateError(self._state.value)

            if not envelopes:
                # Nothing will ever be reported for an empty batch.
                self._state = EmissionState.COMPLETED_SUCCESS
                logger.debug("Empty batch, nothing to emit")
                return EmissionOutcome(0, 0)

            tracker = _CompletionTracker(len(envelopes))
            self._tracker = tracker
            self._state = EmissionState.SUBMITTED

        transport = self._transport_factory(
            self._endpoint,
            namespace=self._namespace,
            on_success=tracker.on_success,
            on_failure=tracker.on_failure,
        )
        logger.info(
            "Submitting batch to collector",
            extra={
                "endpoint": self._endpoint,
                "namespace": self._namespace,
                "events": len(envelopes),
                "timeout_seconds": timeout_seconds,
            },
        )

        outcome: Optional[EmissionOutcome] = None
        try:
            transport.submit(list(envelopes))
            outcome = self._await_outcome(tracker, len(envelopes), timeout_seconds)
        finally:
            if outcome is None:
                self._state = EmissionState.ABORTED
            transport.shutdown(wait=outcome is not None, cancel_pending=outcome is None)

        if outcome.failure_count:
            self._state = EmissionState.COMPLETED_WITH_FAILURES
            logger.error(
                "Collector did not confirm every event",
                extra={
                    "endpoint": self._endpoint,
                    "success_count": outcome.success_count,
                    "failure_count": outcome.failure_count,
                },
            )
            raise TransportFailureError(outcome.failure_count, len(envelopes))

        self._state = EmissionState.COMPLETED_SUCCESS
        logger.info(
            "All events delivered to collector",
            extra={"endpoint": self._endpoint, "success_count": outcome.success_count},
        )
        return outcome

    def cancel(self) -> bool:
        """
        Aborts a pending wait from another thread. The blocked ``emit`` raises
        InterruptedWaitError. Returns False when there is nothing to cancel.
        """
        tracker = self._tracker
        return tracker is not None and tracker.cancel()

    def _await_outcome(
        self,
        tracker: _CompletionTracker,
        total: int,
        timeout_seconds: Optional[float],
    ) -> EmissionOutcome:
        try:
            return tracker.wait(timeout_seconds)
        except FuturesTimeoutError as e:
            if not tracker.cancel():
                # Resolved between the timeout and the cancel.
                return tracker.wait(0)
            partial = tracker.snapshot()
            raise EmissionTimeoutError(
                timeout_seconds or 0.0,
                partial.success_count,
                partial.failure_count,
                total,
            ) from e
        except CancelledError as e:
            partial = tracker.snapshot()
            raise InterruptedWaitError(
                "wait was cancelled",
                context={
                    "success_count": partial.success_count,
                    "failure_count": partial.failure_count,
                    "total_count": total,
                },
            ) from e
        except KeyboardInterrupt as e:
            tracker.cancel()
            raise InterruptedWaitError("KeyboardInterrupt") from e


def emit_batch(
    envelopes: Sequence[EventEnvelope],
    endpoint: str,
    namespace: str,
    transport_factory: TransportFactory,
    timeout_seconds: Optional[float] = None,
) -> EmissionOutcome:
    """Emits *envelopes* through a coordinator created for this call only."""
    coordinator = BatchEmissionCoordinator(endpoint, namespace, transport_factory)
    return coordinator.emit(envelopes, timeout_seconds=timeout_seconds)
