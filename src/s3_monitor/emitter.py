# src/s3_monitor/emitter.py

"""
Asynchronous transport for delivering envelopes to a Snowplow collector.

`CollectorEmitter` is a thin adapter over the ``snowplow-tracker`` library:
each envelope is tracked as a self-describing event on a server-side
`Tracker`, and an `AsyncEmitter` POSTs the batch from its worker threads.
It never blocks the caller: outcomes are reported through the
``on_success`` / ``on_failure`` callbacks, possibly several times per batch
when the batch is split into multiple requests. Turning that into a blocking
call is the coordinator's job (see ``core.py``).
"""

import logging
import threading
from typing import Any, Callable, Optional, Sequence
from urllib.parse import urlsplit

from snowplow_tracker import AsyncEmitter, SelfDescribingJson, Subject, Tracker
from snowplow_tracker.events import SelfDescribing

from .events import EventEnvelope

logger = logging.getLogger(__name__)

SERVER_SIDE_APP_PLATFORM = "srv"

SuccessCallback = Callable[[int], None]
FailureCallback = Callable[[int, list], None]


class _ReportingAsyncEmitter(AsyncEmitter):
    """
    `AsyncEmitter` whose sends always end in a callback.

    The library only turns `requests` errors into a failed status; anything
    else raised while sending would kill the worker thread without a report.
    """

    def send_events(self, evts: list) -> None:
        try:
            super().send_events(evts)
        except Exception:
            logger.exception(
                "Unexpected error while sending events", extra={"events": len(evts)}
            )
            if self.on_failure is not None and evts:
                self.on_failure(0, list(evts))


class CollectorEmitter:
    """
    Delivers a batch of envelopes to one collector without blocking.

    Built by the coordinator through a factory with the signature
    ``factory(endpoint, *, namespace, on_success, on_failure)``; the remaining
    keyword arguments are bound from configuration in ``app.py``.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        namespace: str,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
        app_id: str,
        timeout_seconds: float = 5.0,
        buffer_size: int = 0,
        max_workers: int = 1,
        base64_encode: bool = True,
    ):
        parts = urlsplit(endpoint)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Collector endpoint must be an http(s) URL: {endpoint!r}")

        self.endpoint = endpoint
        self.namespace = namespace
        self.app_id = app_id
        self.timeout_seconds = timeout_seconds
        self.buffer_size = max(buffer_size, 0)
        self.max_workers = max(max_workers, 1)
        self.base64_encode = base64_encode

        self._protocol = parts.scheme
        self._host = (parts.netloc + parts.path).rstrip("/")
        self._on_success = on_success
        self._on_failure = on_failure
        self._lock = threading.Lock()
        self._closed = False
        self._emitter: Optional[AsyncEmitter] = None
        self._tracker: Optional[Tracker] = None

    # --- Callbacks handed to the library ---

    def _report_success(self, success_events: list) -> None:
        with self._lock:
            if self._closed:
                return
        logger.debug("Collector accepted events", extra={"events": len(success_events)})
        self._on_success(len(success_events))

    def _report_failure(self, success_count: int, failure_events: list) -> None:
        with self._lock:
            if self._closed:
                return
        logger.warning(
            "Collector rejected events",
            extra={"success_count": success_count, "failure_count": len(failure_events)},
        )
        self._on_failure(success_count, list(failure_events))

    def _build_tracker(self, batch_size: int) -> Tracker:
        self._emitter = _ReportingAsyncEmitter(
            self._host,
            protocol=self._protocol,
            method="post",
            batch_size=batch_size,
            on_success=self._report_success,
            on_failure=self._report_failure,
            thread_count=self.max_workers,
            request_timeout=(self.timeout_seconds, self.timeout_seconds),
        )
        return Tracker(
            namespace=self.namespace,
            emitters=self._emitter,
            subject=Subject().set_platform(SERVER_SIDE_APP_PLATFORM),
            app_id=self.app_id,
            encode_base64=self.base64_encode,
        )

    # --- Transport protocol ---

    def submit(self, batch: Sequence[EventEnvelope]) -> None:
        """Tracks every envelope and flushes the buffer to the worker threads."""
        if not batch:
            return
        batch_size = self.buffer_size or len(batch)
        self._tracker = self._build_tracker(batch_size)
        for envelope in batch:
            self._tracker.track(
                SelfDescribing(SelfDescribingJson(envelope.schema, envelope.data))
            )
        self._tracker.flush(is_async=True)
        logger.debug(
            "Queued events for collector",
            extra={"endpoint": self.endpoint, "events": len(batch), "batch_size": batch_size},
        )

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """
        Detaches the callbacks. When ``cancel_pending`` is set, events still
        buffered in the emitter are dropped. The library's worker threads are
        daemons and need no joining.
        """
        with self._lock:
            self._closed = True
        if cancel_pending and self._emitter is not None:
            dropped = self._drop_buffered_events()
            if dropped:
                logger.warning(
                    "Dropped undelivered events on shutdown", extra={"events": dropped}
                )

    def _drop_buffered_events(self) -> int:
        store: Any = getattr(self._emitter, "event_store", None)
        if store is None or not hasattr(store, "event_buffer"):
            return 0
        dropped = len(store.event_buffer)
        store.event_buffer.clear()
        return dropped
