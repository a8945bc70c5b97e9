import time
from collections.abc import Awaitable, Callable
from typing import Any

import grpc
import structlog

from charge_service.infrastructure.metrics import (
    GRPC_REQUEST_DURATION,
    GRPC_REQUESTS_TOTAL,
)


logger = structlog.get_logger()

UNTRACKED_PREFIXES = ("/grpc.health.v1.Health/",)

UnaryBehavior = Callable[[Any, grpc.aio.ServicerContext], Awaitable[Any]]


def record_request(method: str, status_code: str, duration: float) -> None:
    GRPC_REQUEST_DURATION.labels(method=method, status_code=status_code).observe(duration)
    GRPC_REQUESTS_TOTAL.labels(method=method, status_code=status_code).inc()


def _status_name(context: grpc.aio.ServicerContext) -> str:
    code = context.code()
    return code.name if isinstance(code, grpc.StatusCode) else "UNKNOWN"


def timed_behavior(method: str, behavior: UnaryBehavior) -> UnaryBehavior:
    """Wrap a unary handler so the whole call, not only the lookup, is measured."""

    async def wrapper(request: Any, context: grpc.aio.ServicerContext) -> Any:
        start = time.perf_counter()
        status_code = "OK"
        try:
            return await behavior(request, context)
        except grpc.aio.AbortError:
            status_code = _status_name(context)
            raise
        except Exception:
            status_code = "UNKNOWN"
            raise
        finally:
            record_request(method, status_code, time.perf_counter() - start)

    return wrapper


class MetricsInterceptor(grpc.aio.ServerInterceptor):
    """Records duration and final status code of every unary charge RPC."""

    async def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler | None]],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler | None:
        method = handler_call_details.method
        handler = await continuation(handler_call_details)

        if method.startswith(UNTRACKED_PREFIXES):
            return handler
        if handler is None:
            logger.warning("grpc_method_not_found", method=method)
            record_request(method, "UNIMPLEMENTED", 0.0)
            return None
        if handler.unary_unary is None:
            return handler

        return handler._replace(unary_unary=timed_behavior(method, handler.unary_unary))
