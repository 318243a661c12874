"""FastAPI adapter — Zipkin-compatible span intake, thin layer over a reporter."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from zipkin_datadog import __version__, create_reporter
from zipkin_datadog.reporter.models import decode_spans
from zipkin_datadog.reporter.reporter import SpanReporter

logger = logging.getLogger(__name__)


def create_app(reporter: SpanReporter | None = None) -> FastAPI:
    reporter = reporter if reporter is not None else create_reporter()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        # blocking HTTP, must not run on the event loop
        await asyncio.to_thread(reporter.flush, True)
        await asyncio.to_thread(reporter.close)

    app = FastAPI(title="Zipkin → Datadog", version=__version__, lifespan=lifespan)

    @app.post("/api/v2/spans", status_code=202)
    async def post_spans(request: Request) -> Response:
        body = await request.body()
        try:
            spans = decode_spans(body)
        except (ValidationError, ValueError) as exc:
            logger.info("Rejected malformed span payload: %s", exc)
            return JSONResponse({"error": str(exc)}, status_code=400)

        for span in spans:
            reporter.report(span)
        return Response(status_code=202)

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    return app


def serve() -> None:
    """Entry-point for ``zipkin-datadog-web`` console script."""
    import uvicorn

    logging.basicConfig(
        level=os.environ.get("ZIPKIN_DATADOG_LOG_LEVEL", "INFO"),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    uvicorn.run(
        "zipkin_datadog.adapters.web_fastapi.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.environ.get("ZIPKIN_DATADOG_WEB_PORT", "9411")),
        log_level="info",
    )
