"""TraceTransport ABC — depends only on reporter.models.DDSpan."""

from __future__ import annotations

from abc import ABC, abstractmethod

from zipkin_datadog.reporter.models import DDSpan


class TraceTransport(ABC):
    """Ships batches of completed traces somewhere.

    Implementations must absorb their own failures: ``send_traces`` never
    raises to the reporter.
    """

    @abstractmethod
    def send_traces(self, traces: list[list[DDSpan]]) -> None: ...

    def close(self) -> None:
        """Release any held resources. Optional."""
