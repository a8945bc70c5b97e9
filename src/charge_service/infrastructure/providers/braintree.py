import structlog

from charge_service.domain.models import (
    Charge,
    ChargeStatus,
    Provider,
    ProviderResult,
    RefundResult,
    RequestContext,
)
from charge_service.infrastructure.providers.http import HttpPaymentProvider


logger = structlog.get_logger(__name__)


class BraintreeProvider(HttpPaymentProvider):
    """Client for the braintree-style ``/transactions`` API (expiration as MM/YY)."""

    name = "braintree"
    status_map = {
        "paid": ChargeStatus.PAID,
        "failed": ChargeStatus.FAILED,
        "voided": ChargeStatus.VOIDED,
    }

    async def create_charge(self, charge: Charge, context: RequestContext) -> ProviderResult:
        card = self.require_card(charge)
        logger.info(
            "braintree_create_transaction",
            charge_id=charge.id,
            amount=charge.amount,
            card_last4=card.last4,
            request_id=context.request_id,
        )

        response = await self.post(
            "/transactions",
            {
                "amount": charge.amount,
                "currency": charge.currency.value,
                "statementDescriptor": charge.description,
                "paymentType": "card",
                "card": {
                    "number": card.number,
                    "holder": card.holder_name,
                    "cvv": card.cvv,
                    "expiration": f"{card.expiration_month}/{card.expiration_year[-2:]}",
                    "installmentNumber": charge.payment_method.installments,
                },
            },
            context,
        )
        body = self.parse_charge_response(response)

        return ProviderResult(
            provider=Provider(id=body["id"], name=self.name),
            source_id=body["cardId"],
            status=self.map_status(body["status"]),
        )

    async def refund_charge(self, provider_id: str, amount: int, context: RequestContext) -> RefundResult:
        logger.info("braintree_void_transaction", provider_id=provider_id, amount=amount, request_id=context.request_id)
        return await self.post_refund(f"/void/{provider_id}", amount, context)
