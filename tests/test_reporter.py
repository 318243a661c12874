"""Tests for DatadogReporter — flush cycle, background thread, shutdown."""

from __future__ import annotations

import threading
import time

from zipkin_datadog.reporter.aggregator import TraceAggregator
from zipkin_datadog.reporter.reporter import DatadogReporter, NoopReporter
from zipkin_datadog.transport.in_memory import InMemoryTransport
from zipkin_datadog.transport.interface import TraceTransport


class SlowTransport(TraceTransport):
    """Records send/close order; each send blocks for *delay* seconds."""

    def __init__(self, delay: float) -> None:
        self._delay = delay
        self.started = threading.Event()
        self.events: list[str] = []

    def send_traces(self, traces) -> None:
        self.started.set()
        time.sleep(self._delay)
        self.events.append("sent")

    def close(self) -> None:
        self.events.append("closed")


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestFlush:
    def test_flush_sends_only_expired_traces(self, reporter_factory, transport, clock, make_span):
        reporter = reporter_factory(aggregator=TraceAggregator(clock=clock))
        reporter.report(make_span(traceId="a", kind="SERVER"))
        reporter.report(make_span(traceId="b", kind="CLIENT"))

        clock.advance(2)
        reporter.flush()

        assert len(transport.batches) == 1
        assert [t[0].trace_id for t in transport.traces] == [0xA]
        assert reporter.pending_traces == 1

    def test_batch_holds_all_ready_traces(self, reporter_factory, transport, clock, make_span):
        reporter = reporter_factory(aggregator=TraceAggregator(clock=clock))
        for trace_id in ("a", "b", "c"):
            reporter.report(make_span(traceId=trace_id, parentId=None))

        clock.advance(2)
        reporter.flush()

        assert len(transport.batches) == 1
        assert len(transport.batches[0]) == 3

    def test_nothing_expired_sends_nothing(self, reporter_factory, transport, make_span):
        reporter = reporter_factory()
        reporter.report(make_span(kind="CLIENT"))
        reporter.flush()
        assert transport.batches == []

    def test_force_flush_sends_everything(self, reporter_factory, transport, make_span):
        reporter = reporter_factory()
        reporter.report(make_span(kind="CLIENT"))
        reporter.flush(force=True)
        assert len(transport.traces) == 1
        assert reporter.pending_traces == 0


class TestReport:
    def test_malformed_span_is_dropped_and_logged(self, reporter_factory, make_span, caplog):
        reporter = reporter_factory()
        reporter.report(make_span(traceId="NOT-HEX"))
        assert reporter.pending_traces == 0
        assert "Dropping span" in caplog.text

    def test_unexpected_errors_do_not_escape(self, transport, make_span, caplog):
        def _broken(span):
            raise RuntimeError("boom")

        reporter = DatadogReporter(
            transport, flush_interval=60.0, aggregator=TraceAggregator(translator=_broken)
        )
        try:
            reporter.report(make_span())
        finally:
            reporter.close()
        assert "Unexpected error recording span" in caplog.text


class TestBackgroundThread:
    def test_first_report_starts_one_flusher(self, reporter_factory, make_span):
        reporter = reporter_factory()
        assert reporter._thread is None

        threads = [threading.Thread(target=reporter.report, args=(make_span(id=str(i + 1)),)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        flushers = [t for t in threading.enumerate() if t is reporter._thread]
        assert len(flushers) == 1
        assert reporter._thread.daemon
        assert reporter._thread.name == "zipkin-datadog-flusher"

    def test_start_is_idempotent(self, reporter_factory):
        reporter = reporter_factory()
        reporter.start()
        thread = reporter._thread
        reporter.start()
        assert reporter._thread is thread

    def test_worker_ships_completed_traces(self, transport, make_span):
        reporter = DatadogReporter(
            transport,
            flush_interval=0.02,
            aggregator=TraceAggregator(completion_delay=0.01),
        )
        try:
            reporter.report(make_span(kind="SERVER"))
            assert _wait_for(lambda: len(transport.traces) == 1)
        finally:
            reporter.close()


class TestClose:
    def test_close_stops_thread_promptly(self, transport, make_span):
        reporter = DatadogReporter(transport, flush_interval=60.0)
        reporter.report(make_span())
        thread = reporter._thread

        t0 = time.monotonic()
        reporter.close()
        assert time.monotonic() - t0 < 5.0
        assert not thread.is_alive()
        assert transport.closed

    def test_close_waits_for_send_in_flight(self, make_span):
        transport = SlowTransport(delay=0.3)
        reporter = DatadogReporter(transport, flush_interval=60.0)
        reporter.report(make_span(kind="CLIENT"))

        sender = threading.Thread(target=reporter.flush, kwargs={"force": True})
        sender.start()
        assert transport.started.wait(5.0)

        reporter.close()
        assert transport.events == ["sent", "closed"]

        reporter.report(make_span(kind="SERVER", id="b"))
        reporter.flush(force=True)
        sender.join()
        assert transport.events == ["sent", "closed"]

    def test_close_is_idempotent(self, transport):
        reporter = DatadogReporter(transport)
        reporter.close()
        reporter.close()
        assert reporter.closed

    def test_no_sends_after_close(self, transport, make_span):
        reporter = DatadogReporter(
            transport,
            flush_interval=0.01,
            aggregator=TraceAggregator(completion_delay=0.0),
        )
        reporter.close()

        reporter.report(make_span(kind="SERVER"))
        reporter.flush(force=True)
        time.sleep(0.05)

        assert transport.batches == []
        assert reporter._thread is None

    def test_context_manager_closes(self, make_span):
        transport = InMemoryTransport()
        with DatadogReporter(transport) as reporter:
            reporter.report(make_span())
        assert reporter.closed
        assert transport.closed


class TestNoopReporter:
    def test_discards_everything(self, make_span):
        reporter = NoopReporter()
        reporter.report(make_span())
        reporter.flush(force=True)
        reporter.close()
