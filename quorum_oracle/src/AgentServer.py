"""AgentServer: informational HTTP endpoints exposed by each node.

Endpoints:
    - GET /health: liveness probe, always 200 while the process is up
    - GET /price?coin=<id>: live USD quote from the node's price source

The server shares only the fetcher with the submission loop, so it stays
reachable whatever happens to submissions.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterator

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from .fetchers import BaseFetcher, FetchFailed
from .ReporterAgent import QUOTE_CURRENCY

logger = logging.getLogger(__name__)

HEALTH_MESSAGE = "Oracle Node is running\n"


def create_app(fetcher: BaseFetcher, node_id: int | None = None) -> FastAPI:
    """Create the FastAPI application of a node.

    :param fetcher: Price source used by the /price endpoint.
    :param node_id: Optional node id shown in the API title.
    :returns: Configured FastAPI app.
    """
    title = "Quorum Oracle Node" if node_id is None else f"Quorum Oracle Node {node_id}"
    app = FastAPI(title=title, docs_url=None, redoc_url=None)

    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        return HEALTH_MESSAGE

    @app.get("/price")
    async def price(coin: str | None = None) -> dict:
        if not coin:
            raise HTTPException(status_code=400, detail="Missing 'coin' query parameter")
        try:
            value = await fetcher.fetch(coin, QUOTE_CURRENCY)
        except FetchFailed as exc:
            raise HTTPException(
                status_code=500, detail=f"Failed to fetch price: {exc}"
            ) from exc
        return {"coin": coin, "price": value, "currency": QUOTE_CURRENCY}

    return app


class AgentHTTPServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the node runner."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


async def serve(
    app: FastAPI, port: int, stop: asyncio.Event, host: str = "0.0.0.0"
) -> None:
    """Serve an app until the stop event is set.

    :param app: Application to serve.
    :param port: TCP port.
    :param stop: Event that shuts the server down.
    :param host: Bind address (default: all interfaces).
    """
    server = AgentHTTPServer(
        uvicorn.Config(app, host=host, port=port, log_level="warning", lifespan="off")
    )

    async def _shutdown_on_stop() -> None:
        await stop.wait()
        server.should_exit = True

    watcher = asyncio.create_task(_shutdown_on_stop())
    logger.info(f"Starting HTTP server on {host}:{port}")
    try:
        await server.serve()
    finally:
        watcher.cancel()
