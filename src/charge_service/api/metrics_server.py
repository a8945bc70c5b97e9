"""HTTP side channel: Prometheus scrape endpoint and a database-aware health check."""

import asyncio
import contextlib

import structlog
import uvicorn
from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from charge_service.infrastructure.database import Database


logger = structlog.get_logger()


def create_metrics_app(database: Database | None = None) -> FastAPI:
    app = FastAPI(
        title="Charge Service Metrics",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health")
    async def health() -> JSONResponse:
        if database is None:
            return JSONResponse({"status": "healthy"})
        if await database.health_check():
            return JSONResponse({"status": "healthy", "database": "up"})
        return JSONResponse({"status": "unhealthy", "database": "down"}, status_code=503)

    return app


class MetricsServer:
    """Serves the metrics app with uvicorn as a background task of the service loop."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 9090,
        database: Database | None = None,
        shutdown_timeout: float = 5.0,
    ) -> None:
        self.host = host
        self.port = port
        self._database = database
        self._shutdown_timeout = shutdown_timeout
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        config = uvicorn.Config(
            create_metrics_app(self._database),
            host=self.host,
            port=self.port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._server.serve(), name="metrics-server")
        logger.info("metrics_server_started", host=self.host, port=self.port)

    async def stop(self) -> None:
        if self._server is None or self._task is None:
            return

        self._server.should_exit = True
        done, _ = await asyncio.wait({self._task}, timeout=self._shutdown_timeout)
        if not done:
            logger.warning("metrics_server_stop_timeout", timeout_seconds=self._shutdown_timeout)
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

        self._server = None
        self._task = None
        logger.info("metrics_server_stopped")
