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


class StripeProvider(HttpPaymentProvider):
    """Client for the stripe-style ``/charges`` API.

    The provider answers ``authorized`` for a successful charge, which is a
    captured charge from our point of view.
    """

    name = "stripe"
    status_map = {
        "authorized": ChargeStatus.PAID,
        "failed": ChargeStatus.FAILED,
        "refunded": ChargeStatus.REFUNDED,
    }

    async def create_charge(self, charge: Charge, context: RequestContext) -> ProviderResult:
        card = self.require_card(charge)
        logger.info(
            "stripe_create_charge",
            charge_id=charge.id,
            amount=charge.amount,
            card_last4=card.last4,
            request_id=context.request_id,
        )

        response = await self.post(
            "/charges",
            {
                "amount": charge.amount,
                "currency": charge.currency.value,
                "description": charge.description,
                "paymentMethod": {
                    "type": "card",
                    "card": {
                        "number": card.number,
                        "holderName": card.holder_name,
                        "cvv": card.cvv,
                        "expirationDate": card.expiration_date,
                        "installments": charge.payment_method.installments,
                    },
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
        logger.info("stripe_refund_charge", provider_id=provider_id, amount=amount, request_id=context.request_id)
        return await self.post_refund(f"/refund/{provider_id}", amount, context)
