import asyncio
import contextlib
import signal

import httpx
import structlog

from charge_service.api.metrics_server import MetricsServer
from charge_service.application.orchestrator import FallbackPaymentOrchestrator
from charge_service.config import Settings, settings
from charge_service.grpc_server import GrpcServer
from charge_service.infrastructure.database import Database
from charge_service.infrastructure.providers import build_providers
from charge_service.logging import configure_logging


logger = structlog.get_logger()


async def serve(config: Settings) -> None:
    """Run the charge service until SIGINT or SIGTERM, then release everything in reverse order."""
    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_requested.set)

    async with contextlib.AsyncExitStack() as stack:
        database = Database(
            config.database_url,
            pool_size=config.database_pool_size,
            max_overflow=config.database_max_overflow,
        )
        stack.push_async_callback(database.close)

        http_client = await stack.enter_async_context(httpx.AsyncClient(timeout=config.provider_timeout_seconds))
        orchestrator = FallbackPaymentOrchestrator(
            build_providers(config, http_client),
            timeout_seconds=config.provider_timeout_seconds,
        )

        if config.metrics_enabled:
            metrics_server = MetricsServer(host=config.metrics_host, port=config.metrics_port, database=database)
            await metrics_server.start()
            stack.push_async_callback(metrics_server.stop)

        grpc_server = GrpcServer(database=database, orchestrator=orchestrator)
        await grpc_server.start(port=config.grpc_port)
        stack.push_async_callback(grpc_server.stop)

        await stop_requested.wait()
        logger.info("shutting_down")


def main() -> None:
    configure_logging(level=settings.log_level, log_format=settings.log_format)
    logger.info(
        "starting_charge_service",
        grpc_port=settings.grpc_port,
        metrics_enabled=settings.metrics_enabled,
        metrics_port=settings.metrics_port,
        provider_order=settings.provider_names,
        provider_timeout_seconds=settings.provider_timeout_seconds,
    )
    asyncio.run(serve(settings))
    logger.info("charge_service_stopped")


if __name__ == "__main__":
    main()
