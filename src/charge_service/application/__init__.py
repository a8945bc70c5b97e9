"""Application layer - services and use cases."""

from charge_service.application.orchestrator import FallbackPaymentOrchestrator
from charge_service.application.services import ChargeService
from charge_service.application.unit_of_work import UnitOfWork


__all__ = [
    "ChargeService",
    "FallbackPaymentOrchestrator",
    "UnitOfWork",
]
