import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Histogram


DURATION_BUCKETS = [0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]

CHARGE_REQUESTS_TOTAL = Counter(
    "charge_requests_total",
    "Total number of create-charge requests by final outcome",
    ["status"],
)

PROVIDER_ATTEMPTS_TOTAL = Counter(
    "provider_attempts_total",
    "Provider charge attempts by outcome (succeeded, declined, error)",
    ["provider", "outcome"],
)

PROVIDER_CALL_DURATION = Histogram(
    "provider_call_duration_seconds",
    "Duration of calls to external payment providers",
    ["provider", "operation"],
    buckets=DURATION_BUCKETS,
)

REFUNDS_TOTAL = Counter(
    "refunds_total",
    "Refund requests by outcome (refunded, compensated, skipped, error)",
    ["outcome"],
)

CHARGE_DURATION_SECONDS = Histogram(
    "charge_duration_seconds",
    "Create-charge processing duration",
    buckets=DURATION_BUCKETS,
)

GRPC_REQUEST_DURATION = Histogram(
    "grpc_request_duration_seconds",
    "gRPC request duration",
    ["method", "status_code"],
    buckets=DURATION_BUCKETS,
)

GRPC_REQUESTS_TOTAL = Counter(
    "grpc_requests_total",
    "Total number of gRPC requests",
    ["method", "status_code"],
)


P = ParamSpec("P")
R = TypeVar("R")


def track_charge_duration(
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            CHARGE_DURATION_SECONDS.observe(time.perf_counter() - start)

    return wrapper
