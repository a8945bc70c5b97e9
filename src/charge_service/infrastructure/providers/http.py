from typing import Any

import httpx
import structlog

from charge_service.domain.exceptions import InvalidPaymentSourceError, ProviderUnavailableError
from charge_service.domain.models import Card, Charge, ChargeStatus, RefundResult, RequestContext
from charge_service.domain.providers import PaymentProvider


logger = structlog.get_logger(__name__)


class HttpPaymentProvider(PaymentProvider):
    """
    Shared plumbing for providers reached over HTTP/JSON.

    Subclasses build provider-specific payloads and map native statuses onto
    ``ChargeStatus``; this class owns the request, the ``request-id`` header
    and the translation of transport failures into ``ProviderUnavailableError``.
    """

    name = "http"
    # Native status -> charge status; unknown statuses count as declines
    status_map: dict[str, ChargeStatus] = {}

    def __init__(self, base_url: str, http_client: httpx.AsyncClient) -> None:
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client

    def map_status(self, native_status: str) -> ChargeStatus:
        status = self.status_map.get(native_status)
        if status is None:
            logger.warning("provider_unknown_status", provider=self.name, status=native_status)
            return ChargeStatus.FAILED
        return status

    def require_card(self, charge: Charge) -> Card:
        card = charge.payment_source.card
        if card is None:
            raise InvalidPaymentSourceError(charge.id)
        return card

    async def post(self, path: str, payload: dict[str, Any], context: RequestContext) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.post(
                url,
                json=payload,
                headers={"request-id": context.request_id},
            )
        except httpx.TimeoutException as e:
            logger.error("provider_timeout", provider=self.name, url=url, request_id=context.request_id)
            raise ProviderUnavailableError(self.name, "timeout") from e
        except httpx.RequestError as e:
            logger.error(
                "provider_request_error",
                provider=self.name,
                url=url,
                request_id=context.request_id,
                error=str(e),
            )
            raise ProviderUnavailableError(self.name, f"request error: {e}") from e

        if response.status_code >= 500:
            logger.error(
                "provider_server_error",
                provider=self.name,
                url=url,
                status_code=response.status_code,
                request_id=context.request_id,
            )
            raise ProviderUnavailableError(self.name, f"status {response.status_code}")
        return response

    async def post_refund(self, path: str, amount: int, context: RequestContext) -> RefundResult:
        response = await self.post(path, {"amount": amount}, context)
        if response.status_code >= 400:
            logger.warning(
                "provider_refund_rejected",
                provider=self.name,
                status_code=response.status_code,
                request_id=context.request_id,
            )
            return RefundResult(success=False)
        return RefundResult(success=True)

    def parse_charge_response(self, response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            raise ProviderUnavailableError(self.name, f"rejected request with status {response.status_code}")
        try:
            body: dict[str, Any] = response.json()
        except ValueError as e:
            raise ProviderUnavailableError(self.name, "invalid JSON response") from e
        return body
