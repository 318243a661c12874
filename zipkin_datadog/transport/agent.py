"""Datadog agent transport — msgpack over HTTP PUT, with v0.4 → v0.3 fallback."""

from __future__ import annotations

import logging
import platform
import time
from typing import Any, Callable

import msgpack
import requests

from zipkin_datadog.reporter.models import DDSpan
from zipkin_datadog.transport.interface import TraceTransport

logger = logging.getLogger(__name__)

DEFAULT_HOSTNAME = "localhost"
DEFAULT_PORT = 8126

TRACES_ENDPOINT_V3 = "/v0.3/traces"
TRACES_ENDPOINT_V4 = "/v0.4/traces"

DATADOG_META_LANG = "Datadog-Meta-Lang"
DATADOG_META_LANG_VERSION = "Datadog-Meta-Lang-Version"
DATADOG_META_LANG_INTERPRETER = "Datadog-Meta-Lang-Interpreter"
DATADOG_META_TRACER_VERSION = "Datadog-Meta-Tracer-Version"
X_DATADOG_TRACE_COUNT = "X-Datadog-Trace-Count"

TRACER_VERSION = "zipkin-reporter"

SECONDS_BETWEEN_ERROR_LOG: float = 5 * 60
PROBE_TIMEOUT: tuple[float, float] = (1.0, 1.0)  # (connect, read)
DEFAULT_SEND_TIMEOUT: tuple[float, float] = (1.0, 10.0)


def _default_headers() -> dict[str, str]:
    return {
        "Content-Type": "application/msgpack",
        DATADOG_META_LANG: "python",
        DATADOG_META_LANG_VERSION: platform.python_version(),
        DATADOG_META_LANG_INTERPRETER: platform.python_implementation(),
        DATADOG_META_TRACER_VERSION: TRACER_VERSION,
    }


class DatadogAgentTransport(TraceTransport):
    """Sends trace batches to a local Datadog agent.

    On construction the v0.4 endpoint is probed with an empty batch (1 s
    connect/read timeout, one retry on network errors). If it does not
    answer 200 the instance uses v0.3 for its whole lifetime. Pass
    ``v04_available`` to skip the probe.

    Failed sends are dropped, never retried. Failure warnings are logged at
    most once every five minutes per instance; the rest go to debug.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOSTNAME,
        port: int = DEFAULT_PORT,
        *,
        session: requests.Session | None = None,
        v04_available: bool | None = None,
        send_timeout: tuple[float, float] = DEFAULT_SEND_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session if session is not None else requests.Session()
        self._headers = _default_headers()
        self._send_timeout = send_timeout
        self._clock = clock
        self._next_allowed_log_time = 0.0

        base_url = f"http://{host}:{port}"
        if v04_available is None:
            v04_available = self._endpoint_available(base_url + TRACES_ENDPOINT_V4)
        if v04_available:
            self.traces_endpoint = base_url + TRACES_ENDPOINT_V4
        else:
            logger.debug("API v0.4 endpoints not available. Downgrading to v0.3")
            self.traces_endpoint = base_url + TRACES_ENDPOINT_V3

    def __repr__(self) -> str:
        return f"DatadogAgentTransport(traces_endpoint={self.traces_endpoint!r})"

    # -- version negotiation ------------------------------------------------

    def _endpoint_available(self, endpoint: str, retry: bool = True) -> bool:
        try:
            response = self._session.put(
                endpoint,
                data=msgpack.packb([]),
                headers=self._headers,
                timeout=PROBE_TIMEOUT,
            )
        except requests.RequestException as exc:
            logger.debug("Probe of %s failed: %s", endpoint, exc)
            if retry:
                return self._endpoint_available(endpoint, retry=False)
            return False
        return response.status_code == 200

    # -- sending ------------------------------------------------------------

    def send_traces(self, traces: list[list[DDSpan]]) -> None:
        total = len(traces)
        logger.debug("Sending %d trace(s) to %s", total, self.traces_endpoint)
        payload = msgpack.packb([[span.to_wire() for span in trace] for trace in traces])
        headers = dict(self._headers)
        headers[X_DATADOG_TRACE_COUNT] = str(total)

        try:
            response = self._session.put(
                self.traces_endpoint,
                data=payload,
                headers=headers,
                timeout=self._send_timeout,
            )
        except requests.RequestException as exc:
            self._log_failure(
                "Error while sending %d traces to the DD agent. %s: %s",
                total, type(exc).__name__, exc,
            )
            return

        if response.status_code != 200:
            self._log_failure(
                "Error while sending %d traces to the DD agent. Status: %d %s",
                total, response.status_code, response.reason,
            )
            return

        logger.debug("Successfully sent %d traces to the DD agent.", total)
        self._inspect_response(response)

    def _inspect_response(self, response: requests.Response) -> None:
        body = (response.text or "").strip()
        if not body or body.upper() == "OK":
            return
        try:
            parsed: Any = response.json()
        except ValueError:
            logger.warning("Failed to parse DD agent response: %s", body)
            return
        if isinstance(parsed, dict) and "rate_by_service" in parsed:
            logger.debug("Agent sampling rates: %s", parsed["rate_by_service"])

    def _log_failure(self, msg: str, *args: Any) -> None:
        now = self._clock()
        if now >= self._next_allowed_log_time:
            self._next_allowed_log_time = now + SECONDS_BETWEEN_ERROR_LOG
            logger.warning(
                msg + " (going silent for %d minutes)",
                *args, int(SECONDS_BETWEEN_ERROR_LOG // 60),
            )
        else:
            logger.debug(msg, *args)

    def close(self) -> None:
        self._session.close()
