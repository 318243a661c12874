"""CLI adapter — reads Zipkin v2 JSON from files/stdin and forwards it to the agent."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from zipkin_datadog import create_reporter
from zipkin_datadog.reporter.models import Span, decode_spans
from zipkin_datadog.reporter.reporter import SpanReporter

USAGE = "Usage: zipkin-datadog [FILE ...]  OR  cat spans.json | zipkin-datadog"


def forward(spans: list[Span], reporter: SpanReporter) -> None:
    """Report every span, send all pending traces, then close."""
    try:
        for span in spans:
            reporter.report(span)
        reporter.flush(force=True)
    finally:
        reporter.close()


def _read_inputs(paths: list[str]) -> list[str]:
    if paths:
        return [Path(p).read_text(encoding="utf-8") for p in paths]
    return [sys.stdin.read()]


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    logging.basicConfig(
        level=os.environ.get("ZIPKIN_DATADOG_LOG_LEVEL", "WARNING"),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    if args and args[0] in ("-h", "--help"):
        print(USAGE)
        return

    try:
        spans = [span for raw in _read_inputs(args) for span in decode_spans(raw)]
    except (OSError, ValidationError, ValueError) as exc:
        print(f"zipkin-datadog: {exc}", file=sys.stderr)
        sys.exit(1)

    if not spans:
        print(USAGE, file=sys.stderr)
        sys.exit(1)

    forward(spans, create_reporter())
    # counts describe the input; spans with malformed ids are dropped by the reporter
    traces = len({span.trace_id for span in spans})
    print(json.dumps({"spans_read": len(spans), "traces_read": traces}), flush=True)


if __name__ == "__main__":
    main()
