"""Core data models — no internal dependencies, only Pydantic + stdlib."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


# ---------------------------------------------------------------------------
# Inbound Zipkin v2 span (producer → reporter)
# ---------------------------------------------------------------------------

class SpanKind(str, Enum):
    CLIENT = "CLIENT"
    SERVER = "SERVER"
    PRODUCER = "PRODUCER"
    CONSUMER = "CONSUMER"


class Endpoint(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    service_name: str | None = Field(default=None, alias="serviceName")
    ipv4: str | None = None
    ipv6: str | None = None
    port: int | None = None


class Span(BaseModel):
    """A finished Zipkin v2 span. Read-only once built.

    Accepts the Zipkin JSON field names (``traceId``, ``parentId``,
    ``localEndpoint``) as well as the Python ones.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    trace_id: str = Field(alias="traceId")
    id: str
    parent_id: str | None = Field(default=None, alias="parentId")
    name: str = ""
    kind: SpanKind | None = None
    timestamp: int | None = None  # epoch microseconds
    duration: int | None = None  # microseconds
    local_endpoint: Endpoint | None = Field(default=None, alias="localEndpoint")
    tags: dict[str, str] = Field(default_factory=dict)
    debug: bool | None = None

    @property
    def local_service_name(self) -> str | None:
        if self.local_endpoint is None:
            return None
        return self.local_endpoint.service_name


# ---------------------------------------------------------------------------
# Outbound Datadog span record (reporter → agent)
# ---------------------------------------------------------------------------

class DDSpan(BaseModel):
    """One span in the Datadog agent trace API format."""

    model_config = ConfigDict(frozen=True)

    start: int  # nanoseconds
    duration: int  # nanoseconds, never 0
    service: str | None = None
    trace_id: int
    span_id: int
    parent_id: int = 0
    resource: str
    name: str
    sampling_priority: int = 0
    meta: dict[str, str] = Field(default_factory=dict)
    type: str | None = None
    error: int = 0

    def to_wire(self) -> dict[str, Any]:
        """Map sent to the agent; ``None`` fields are left out."""
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Zipkin v2 JSON decoding
# ---------------------------------------------------------------------------

_SPAN_LIST = TypeAdapter(list[Span])


def decode_spans(raw: str | bytes) -> list[Span]:
    """Decode a Zipkin v2 JSON payload.

    Accepts the standard JSON array form and newline-delimited spans
    (one JSON object per line). Raises ``ValueError`` (including
    ``pydantic.ValidationError``) on malformed input.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    text = raw.strip()
    if not text:
        return []
    if text.startswith("["):
        return _SPAN_LIST.validate_json(text)
    return [
        Span.model_validate(json.loads(line))
        for line in text.splitlines()
        if line.strip()
    ]
