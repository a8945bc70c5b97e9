import grpc
import structlog
from grpc_health.v1 import health, health_pb2, health_pb2_grpc

from charge_service.api.grpc_handlers import (
    SERVICE_NAME,
    ChargeServiceHandler,
    add_ChargeServiceHandler_to_server,
)
from charge_service.api.interceptors import MetricsInterceptor
from charge_service.application.orchestrator import FallbackPaymentOrchestrator
from charge_service.infrastructure.database import Database


logger = structlog.get_logger()

MAX_MESSAGE_BYTES = 4 * 1024 * 1024

# "" is the overall server status, queried by health checks that name no service
HEALTH_SERVICES = ("", SERVICE_NAME)


class GrpcServer:
    def __init__(self, database: Database, orchestrator: FallbackPaymentOrchestrator) -> None:
        self._database = database
        self._orchestrator = orchestrator
        self._server: grpc.aio.Server | None = None
        self._health = health.aio.HealthServicer()

    async def _set_health(self, status: health_pb2.HealthCheckResponse.ServingStatus) -> None:
        for service in HEALTH_SERVICES:
            await self._health.set(service, status)

    async def start(self, port: int = 50051) -> None:
        server = grpc.aio.server(
            interceptors=[MetricsInterceptor()],
            options=[
                ("grpc.max_send_message_length", MAX_MESSAGE_BYTES),
                ("grpc.max_receive_message_length", MAX_MESSAGE_BYTES),
            ],
        )
        add_ChargeServiceHandler_to_server(ChargeServiceHandler(self._database, self._orchestrator), server)
        health_pb2_grpc.add_HealthServicer_to_server(self._health, server)
        server.add_insecure_port(f"[::]:{port}")

        await server.start()
        self._server = server
        await self._set_health(health_pb2.HealthCheckResponse.SERVING)
        logger.info("grpc_server_started", port=port, providers=self._orchestrator.provider_names)

    async def stop(self, grace: float = 10.0) -> None:
        if self._server is None:
            return
        # Health checks see NOT_SERVING while in-flight calls drain
        await self._set_health(health_pb2.HealthCheckResponse.NOT_SERVING)
        await self._server.stop(grace)
        self._server = None
        logger.info("grpc_server_stopped")
