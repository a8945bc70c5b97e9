"""Unit tests for the HTTP payment provider clients."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from charge_service.domain.exceptions import InvalidPaymentSourceError, ProviderUnavailableError
from charge_service.domain.models import ChargeStatus, RequestContext
from charge_service.infrastructure.providers import BraintreeProvider, StripeProvider
from tests.conftest import create_charge


STRIPE_URL = "http://providers.test/stripe"
BRAINTREE_URL = "http://providers.test/braintree"


def make_response(status_code: int, json: dict | None = None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("POST", "http://providers.test")
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    return httpx.Response(status_code, text=text or "", request=request)


@pytest.fixture
def http_client() -> MagicMock:
    client = MagicMock(spec=httpx.AsyncClient)
    client.post = AsyncMock()
    return client


@pytest.fixture
def stripe(http_client: MagicMock) -> StripeProvider:
    return StripeProvider(STRIPE_URL + "/", http_client)


@pytest.fixture
def braintree(http_client: MagicMock) -> BraintreeProvider:
    return BraintreeProvider(BRAINTREE_URL, http_client)


class TestStripeProvider:
    @pytest.mark.asyncio
    async def test_create_charge_sends_payload(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(
            201, {"id": "ch_1", "status": "authorized", "cardId": "card_1"}
        )
        charge = create_charge()

        await stripe.create_charge(charge, request_context)

        http_client.post.assert_awaited_once()
        args, kwargs = http_client.post.call_args
        assert args[0] == f"{STRIPE_URL}/charges"
        assert kwargs["headers"] == {"request-id": "req-test-001"}
        assert kwargs["json"] == {
            "amount": 1000,
            "currency": "BRL",
            "description": "Order #001",
            "paymentMethod": {
                "type": "card",
                "card": {
                    "number": "4111111111111111",
                    "holderName": "Maria Silva",
                    "cvv": "123",
                    "expirationDate": "12/2099",
                    "installments": 1,
                },
            },
        }

    @pytest.mark.asyncio
    async def test_authorized_maps_to_paid(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(
            201, {"id": "ch_1", "status": "authorized", "cardId": "card_1"}
        )

        result = await stripe.create_charge(create_charge(), request_context)

        assert result.provider.id == "ch_1"
        assert result.provider.name == "stripe"
        assert result.source_id == "card_1"
        assert result.status == ChargeStatus.PAID

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("native", "expected"),
        [
            ("failed", ChargeStatus.FAILED),
            ("refunded", ChargeStatus.REFUNDED),
            ("something-new", ChargeStatus.FAILED),
        ],
    )
    async def test_status_mapping(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
        native: str,
        expected: ChargeStatus,
    ) -> None:
        http_client.post.return_value = make_response(201, {"id": "ch_1", "status": native, "cardId": "c"})

        result = await stripe.create_charge(create_charge(), request_context)

        assert result.status == expected

    @pytest.mark.asyncio
    async def test_refund_posts_amount(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(200, {"id": "ch_1", "status": "refunded"})

        result = await stripe.refund_charge("ch_1", 500, request_context)

        assert result.success is True
        args, kwargs = http_client.post.call_args
        assert args[0] == f"{STRIPE_URL}/refund/ch_1"
        assert kwargs["json"] == {"amount": 500}


class TestBraintreeProvider:
    @pytest.mark.asyncio
    async def test_create_transaction_sends_payload(
        self,
        braintree: BraintreeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(201, {"id": "tx_1", "status": "paid", "cardId": "card_9"})

        result = await braintree.create_charge(create_charge(), request_context)

        args, kwargs = http_client.post.call_args
        assert args[0] == f"{BRAINTREE_URL}/transactions"
        assert kwargs["json"] == {
            "amount": 1000,
            "currency": "BRL",
            "statementDescriptor": "Order #001",
            "paymentType": "card",
            "card": {
                "number": "4111111111111111",
                "holder": "Maria Silva",
                "cvv": "123",
                "expiration": "12/99",
                "installmentNumber": 1,
            },
        }
        assert result.provider.name == "braintree"
        assert result.status == ChargeStatus.PAID

    @pytest.mark.asyncio
    async def test_voided_maps_to_voided(
        self,
        braintree: BraintreeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(201, {"id": "tx_1", "status": "voided", "cardId": "c"})

        result = await braintree.create_charge(create_charge(), request_context)

        assert result.status == ChargeStatus.VOIDED

    @pytest.mark.asyncio
    async def test_refund_uses_void_endpoint(
        self,
        braintree: BraintreeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(200, {"id": "tx_1", "status": "voided"})

        result = await braintree.refund_charge("tx_1", 1000, request_context)

        assert result.success is True
        assert http_client.post.call_args.args[0] == f"{BRAINTREE_URL}/void/tx_1"


class TestTransportFailures:
    """Failures shared by all HTTP providers."""

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(503, text="down")

        with pytest.raises(ProviderUnavailableError, match="status 503"):
            await stripe.create_charge(create_charge(), request_context)

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(ProviderUnavailableError, match="timeout") as exc_info:
            await stripe.create_charge(create_charge(), request_context)

        assert exc_info.value.provider_name == "stripe"

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(
        self,
        braintree: BraintreeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(ProviderUnavailableError, match="request error"):
            await braintree.create_charge(create_charge(), request_context)

    @pytest.mark.asyncio
    async def test_client_error_on_charge_is_unavailable(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(422, {"message": "bad card"})

        with pytest.raises(ProviderUnavailableError, match="422"):
            await stripe.create_charge(create_charge(), request_context)

    @pytest.mark.asyncio
    async def test_invalid_json_is_unavailable(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(200, text="<html>")

        with pytest.raises(ProviderUnavailableError, match="invalid JSON"):
            await stripe.create_charge(create_charge(), request_context)

    @pytest.mark.asyncio
    async def test_refund_client_error_is_unsuccessful(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(404, {"message": "not found"})

        result = await stripe.refund_charge("ch_1", 500, request_context)

        assert result.success is False

    @pytest.mark.asyncio
    async def test_refund_server_error_raises(
        self,
        braintree: BraintreeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        http_client.post.return_value = make_response(500, text="oops")

        with pytest.raises(ProviderUnavailableError):
            await braintree.refund_charge("tx_1", 500, request_context)

    @pytest.mark.asyncio
    async def test_charge_without_card_rejected(
        self,
        stripe: StripeProvider,
        http_client: MagicMock,
        request_context: RequestContext,
    ) -> None:
        with pytest.raises(InvalidPaymentSourceError):
            await stripe.create_charge(create_charge(with_card=False), request_context)

        http_client.post.assert_not_awaited()
