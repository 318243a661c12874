"""Groups spans into traces and decides when a trace is complete."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from zipkin_datadog.reporter.models import DDSpan, Span, SpanKind
from zipkin_datadog.reporter.translator import translate

logger = logging.getLogger(__name__)

TIMEOUT_DELAY: float = 30.0
COMPLETION_DELAY: float = 1.0

_ROOT_KINDS = (SpanKind.SERVER, SpanKind.CONSUMER)


@dataclass
class PendingTrace:
    """Spans seen so far for one trace id."""

    expiration: float
    spans: list[DDSpan] = field(default_factory=list)
    closed: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


def is_root(span: Span) -> bool:
    return span.kind in _ROOT_KINDS or span.parent_id is None


class TraceAggregator:
    """Unbounded trace-id → PendingTrace map with time-based eviction.

    A trace expires ``completion_delay`` after a span that looks like its
    root (SERVER/CONSUMER kind or no parent) and ``timeout_delay`` after
    any other span. The expiration is recomputed on every insertion, so a
    child reported after the root pushes the expiration back out. Spikes
    of traffic grow the map without bound.

    Each trace carries its own lock; ``record`` calls for different trace
    ids never contend with each other.
    """

    def __init__(
        self,
        completion_delay: float = COMPLETION_DELAY,
        timeout_delay: float = TIMEOUT_DELAY,
        clock: Callable[[], float] = time.monotonic,
        translator: Callable[[Span], DDSpan] = translate,
    ) -> None:
        self._completion_delay = completion_delay
        self._timeout_delay = timeout_delay
        self._clock = clock
        self._translate = translator
        self._pending: dict[str, PendingTrace] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def record(self, span: Span) -> None:
        """Add *span* to its trace. ``HexFormatError`` leaves state untouched."""
        dd_span = self._translate(span)
        delay = self._completion_delay if is_root(span) else self._timeout_delay

        while True:
            now = self._clock()
            trace = self._pending.setdefault(
                span.trace_id, PendingTrace(expiration=now + self._timeout_delay)
            )
            with trace.lock:
                if trace.closed:
                    # swept between lookup and lock; start a new trace
                    continue
                trace.spans.append(dd_span)
                trace.expiration = now + delay
                return

    def sweep(self, now: float | None = None) -> list[list[DDSpan]]:
        """Remove and return every trace whose expiration is before *now*."""
        if now is None:
            now = self._clock()
        ready: list[list[DDSpan]] = []
        for trace_id, trace in list(self._pending.items()):
            if trace.expiration >= now:
                continue
            with trace.lock:
                if trace.closed or trace.expiration >= now:
                    continue
                trace.closed = True
                if self._pending.get(trace_id) is trace:
                    del self._pending[trace_id]
                ready.append(list(trace.spans))
        if ready:
            logger.debug("Swept %d expired trace(s), %d pending", len(ready), len(self._pending))
        return ready
