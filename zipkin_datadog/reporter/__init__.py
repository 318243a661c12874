from zipkin_datadog.reporter.models import (
    DDSpan,
    Endpoint,
    Span,
    SpanKind,
    decode_spans,
)
from zipkin_datadog.reporter.translator import HexFormatError, lower_hex_to_unsigned_long, translate
from zipkin_datadog.reporter.aggregator import PendingTrace, TraceAggregator
from zipkin_datadog.reporter.reporter import DatadogReporter, NoopReporter, SpanReporter

__all__ = [
    "DDSpan",
    "DatadogReporter",
    "Endpoint",
    "HexFormatError",
    "NoopReporter",
    "PendingTrace",
    "Span",
    "SpanKind",
    "SpanReporter",
    "TraceAggregator",
    "decode_spans",
    "lower_hex_to_unsigned_long",
    "translate",
]
