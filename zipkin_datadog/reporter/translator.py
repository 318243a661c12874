"""Zipkin span → Datadog span translation. Pure functions, no I/O."""

from __future__ import annotations

import re

from zipkin_datadog.reporter.models import DDSpan, Span, SpanKind

_LOWER_HEX = re.compile(r"[0-9a-f]{1,32}")

# Checked in order; the first tag present names the resource.
RESOURCE_TAGS: tuple[str, ...] = (
    "http.route",
    "sql.query",
    "cassandra.query",
    "db.statement",
)

_HTTP_TAGS = ("http.path", "http.uri")


class HexFormatError(ValueError):
    """Raised for an identifier that is not 1 to 32 lower-hex characters."""

    def __init__(self, value: str) -> None:
        super().__init__(
            f"{value!r} should be a 1 to 32 character lower-hex string with no prefix"
        )
        self.value = value


def lower_hex_to_unsigned_long(lower_hex: str) -> int:
    """Parse a 1–32 character lower-hex string, keeping only the low 64 bits."""
    if not _LOWER_HEX.fullmatch(lower_hex):
        raise HexFormatError(lower_hex)
    return int(lower_hex[-16:], 16)


def span_type(span: Span) -> str | None:
    if span.kind is None:
        return "other"
    tags = span.tags
    if span.kind in (SpanKind.PRODUCER, SpanKind.CONSUMER):
        return "queue"
    if span.kind is SpanKind.CLIENT:
        if "sql.query" in tags:
            return "sql"
        if "cassandra.query" in tags:
            return "cassandra"
        if any(t in tags for t in _HTTP_TAGS):
            return "http"
    elif span.kind is SpanKind.SERVER:
        if any(t in tags for t in _HTTP_TAGS):
            return "web"
    return None


def resource_name(span: Span) -> str:
    for tag in RESOURCE_TAGS:
        if tag in span.tags:
            return span.tags[tag]
    return span.name


def translate(span: Span) -> DDSpan:
    """Build the Datadog record for *span*.

    Raises ``HexFormatError`` when the trace, span or parent id is malformed.
    """
    dd_type = span_type(span)
    duration = (span.duration or 0) * 1000
    return DDSpan(
        start=(span.timestamp or 0) * 1000,
        duration=duration or 1,
        service=span.local_service_name,
        trace_id=lower_hex_to_unsigned_long(span.trace_id),
        span_id=lower_hex_to_unsigned_long(span.id),
        parent_id=(
            lower_hex_to_unsigned_long(span.parent_id)
            if span.parent_id is not None
            else 0
        ),
        resource=resource_name(span),
        # the agent rejects operation names without alphanumerics
        name=f"{dd_type or 'other'} {span.name}",
        sampling_priority=1 if span.debug else 0,
        meta=dict(span.tags),
        type=dd_type,
        error=1 if "error" in span.tags else 0,
    )
