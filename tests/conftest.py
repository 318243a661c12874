"""Shared fixtures for zipkin_datadog tests."""

from __future__ import annotations

import pytest

from zipkin_datadog.reporter.aggregator import TraceAggregator
from zipkin_datadog.reporter.models import Span
from zipkin_datadog.reporter.reporter import DatadogReporter
from zipkin_datadog.transport.in_memory import InMemoryTransport


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def aggregator(clock):
    return TraceAggregator(clock=clock)


@pytest.fixture
def transport():
    return InMemoryTransport()


@pytest.fixture
def make_span():
    def _make(**overrides) -> Span:
        fields = dict(
            traceId="463ac35c9f6413ad",
            id="a2fb4a1d1a96d312",
            parentId="463ac35c9f6413ad",
            name="get /users",
            timestamp=1_700_000_000_000_000,
            duration=250,
            localEndpoint={"serviceName": "frontend"},
        )
        fields.update(overrides)
        return Span.model_validate(fields)

    return _make


@pytest.fixture
def reporter_factory(transport):
    """Builds reporters and closes them after the test."""
    created: list[DatadogReporter] = []

    def _make(**kwargs) -> DatadogReporter:
        kwargs.setdefault("flush_interval", 60.0)
        reporter = DatadogReporter(transport, **kwargs)
        created.append(reporter)
        return reporter

    yield _make
    for reporter in created:
        reporter.close()
