"""In-memory transport — keeps every batch instead of sending it."""

from __future__ import annotations

import threading

from zipkin_datadog.reporter.models import DDSpan
from zipkin_datadog.transport.interface import TraceTransport


class InMemoryTransport(TraceTransport):
    """Collects batches in a list. Used in tests and for dry runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._batches: list[list[list[DDSpan]]] = []
        self.closed = False

    def send_traces(self, traces: list[list[DDSpan]]) -> None:
        with self._lock:
            self._batches.append(list(traces))

    def close(self) -> None:
        self.closed = True

    @property
    def batches(self) -> list[list[list[DDSpan]]]:
        with self._lock:
            return list(self._batches)

    @property
    def traces(self) -> list[list[DDSpan]]:
        """All traces received so far, across batches."""
        return [trace for batch in self.batches for trace in batch]
