"""Span reporters — ABC, the Datadog background flusher, and a no-op."""

from __future__ import annotations

import logging
import math
import threading
from abc import ABC, abstractmethod
from collections import deque

from zipkin_datadog.reporter.aggregator import TraceAggregator
from zipkin_datadog.reporter.models import DDSpan, Span
from zipkin_datadog.reporter.translator import HexFormatError
from zipkin_datadog.transport.interface import TraceTransport

logger = logging.getLogger(__name__)

DEFAULT_FLUSH_INTERVAL: float = 1.0


class SpanReporter(ABC):
    """Receives finished spans from the tracing library.

    ``report`` must never raise into the instrumented application.
    """

    @abstractmethod
    def report(self, span: Span) -> None: ...

    @abstractmethod
    def flush(self, force: bool = False) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self) -> SpanReporter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Datadog implementation
# ---------------------------------------------------------------------------

class DatadogReporter(SpanReporter):
    """Groups spans into traces and ships completed ones to a transport.

    Traces are sent after a span that looks like the root is reported, or
    after the aggregator's timeout. One daemon thread named
    ``zipkin-datadog-flusher`` sweeps and sends every ``flush_interval``
    seconds; it is started by the first ``report`` or by ``start()``.

    Once closed the reporter stays closed: ``report`` and ``flush`` become
    no-ops and pending spans are dropped.
    """

    def __init__(
        self,
        transport: TraceTransport,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        aggregator: TraceAggregator | None = None,
    ) -> None:
        self._transport = transport
        self._flush_interval = flush_interval
        self._aggregator = aggregator if aggregator is not None else TraceAggregator()
        self._ready: deque[list[DDSpan]] = deque()

        self._stop = threading.Event()
        self._start_lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_traces(self) -> int:
        return len(self._aggregator)

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Start the flusher thread. Safe to call more than once."""
        if self._thread is not None or self._closed:
            return
        with self._start_lock:
            if self._thread is not None or self._closed:
                return
            thread = threading.Thread(
                target=self._flush_periodically,
                name="zipkin-datadog-flusher",
                daemon=True,
            )
            thread.start()
            self._thread = thread
            logger.info("Started %s (interval=%.2fs)", thread.name, self._flush_interval)

    def close(self) -> None:
        with self._start_lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
        self._stop.set()
        if thread is not None:
            thread.join()
            self._thread = None
        # wait for any flush already sending on another thread
        with self._flush_lock:
            self._transport.close()
        logger.info("Reporter closed; %d trace(s) dropped", len(self._aggregator) + len(self._ready))

    # -- inbound ------------------------------------------------------------

    def report(self, span: Span) -> None:
        if self._closed:
            logger.debug("Reporter closed, dropping span %s", span.id)
            return
        self.start()
        try:
            self._aggregator.record(span)
        except HexFormatError as exc:
            logger.warning("Dropping span %s of trace %s: %s", span.id, span.trace_id, exc)
        except Exception:
            logger.exception("Unexpected error recording span %s", span.id)

    # -- outbound -----------------------------------------------------------

    def flush(self, force: bool = False) -> None:
        """Sweep expired traces and send them. ``force`` sends everything pending."""
        with self._flush_lock:
            if self._closed:
                return
            self._ready.extend(self._aggregator.sweep(math.inf if force else None))
            if self._ready:
                self._send_ready()

    def _send_ready(self) -> None:
        traces: list[list[DDSpan]] = []
        while self._ready:
            traces.append(self._ready.popleft())
        self._transport.send_traces(traces)

    def _flush_periodically(self) -> None:
        while not self._stop.is_set():
            try:
                self.flush()
            except Exception:
                logger.exception("Flush cycle failed")
            self._stop.wait(self._flush_interval)


# ---------------------------------------------------------------------------
# Disabled reporter
# ---------------------------------------------------------------------------

class NoopReporter(SpanReporter):
    """Discards everything. Used when reporting is disabled."""

    def report(self, span: Span) -> None:
        pass

    def flush(self, force: bool = False) -> None:
        pass

    def close(self) -> None:
        pass
