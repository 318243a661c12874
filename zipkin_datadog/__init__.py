"""zipkin_datadog — report Zipkin spans to a Datadog agent.

Usage::

    from zipkin_datadog import create_reporter

    reporter = create_reporter()
    reporter.report(span)
    ...
    reporter.close()
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()  # reads .env into os.environ (no-op if file missing)

from zipkin_datadog.reporter.models import DDSpan, Span, SpanKind, decode_spans
from zipkin_datadog.reporter.reporter import (
    DEFAULT_FLUSH_INTERVAL,
    DatadogReporter,
    NoopReporter,
    SpanReporter,
)
from zipkin_datadog.transport.agent import DEFAULT_HOSTNAME, DEFAULT_PORT, DatadogAgentTransport

__version__ = "0.1.0"

__all__ = [
    "DDSpan",
    "DatadogReporter",
    "Span",
    "SpanKind",
    "SpanReporter",
    "create_reporter",
    "decode_spans",
]

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "y", "on")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def create_reporter(
    *,
    host: str | None = None,
    port: int | None = None,
    message_timeout: float | None = None,
    enabled: bool | None = None,
) -> SpanReporter:
    """Wire a transport and return a ready-to-use reporter.

    Environment variables (all optional):
      ZIPKIN_DATADOG_HOST             — agent host, default ``localhost``
      ZIPKIN_DATADOG_PORT             — agent port, default ``8126``
      ZIPKIN_DATADOG_MESSAGE_TIMEOUT  — seconds between flushes, default ``1``;
                                        non-positive values fall back to the default
      ZIPKIN_DATADOG_ENABLED          — set to ``false`` to discard spans
    """
    enabled = enabled if enabled is not None else _env_flag("ZIPKIN_DATADOG_ENABLED", True)
    if not enabled:
        logger.info("Datadog reporting disabled")
        return NoopReporter()

    if host is None:
        host = os.environ.get("ZIPKIN_DATADOG_HOST", DEFAULT_HOSTNAME)
    if port is None:
        port = int(os.environ.get("ZIPKIN_DATADOG_PORT", str(DEFAULT_PORT)))
    interval = message_timeout
    if interval is None:
        interval = float(os.environ.get("ZIPKIN_DATADOG_MESSAGE_TIMEOUT", str(DEFAULT_FLUSH_INTERVAL)))
    if interval <= 0:
        logger.warning(
            "Flush interval must be positive, got %s; using %.1fs", interval, DEFAULT_FLUSH_INTERVAL
        )
        interval = DEFAULT_FLUSH_INTERVAL

    transport = DatadogAgentTransport(host, port)
    logger.info("Reporting to %s every %.2fs", transport.traces_endpoint, interval)
    return DatadogReporter(transport, flush_interval=interval)
