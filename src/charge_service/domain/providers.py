"""Capability every external payment provider integration implements."""

from abc import ABC, abstractmethod

from charge_service.domain.models import Charge, ProviderResult, RefundResult, RequestContext


class PaymentProvider(ABC):
    """
    One external payment processor.

    Business declines are NOT exceptions: ``create_charge`` returns a result
    with ``ChargeStatus.FAILED`` and ``refund_charge`` returns
    ``RefundResult(success=False)``. Timeouts, connection errors and 5xx
    responses raise ``ProviderUnavailableError``.
    """

    name: str

    @abstractmethod
    async def create_charge(self, charge: Charge, context: RequestContext) -> ProviderResult:
        """Submit the charge and its card to the provider."""

    @abstractmethod
    async def refund_charge(self, provider_id: str, amount: int, context: RequestContext) -> RefundResult:
        """Refund ``amount`` of the provider-side charge ``provider_id``."""
