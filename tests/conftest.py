"""Shared pytest fixtures for charge service tests."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from charge_service.application.unit_of_work import UnitOfWork
from charge_service.domain.models import (
    FULL_AMOUNT,
    Card,
    Charge,
    ChargeStatus,
    CreditPaymentMethod,
    Currency,
    PaymentSource,
    Provider,
    ProviderResult,
    RefundResult,
    RequestContext,
    SourceType,
)
from charge_service.domain.providers import PaymentProvider


VALID_CARD_NUMBER = "4111111111111111"
FUTURE_EXPIRATION = "12/2099"


class FakeProvider(PaymentProvider):
    """In-memory provider that records calls and replays scripted outcomes.

    ``outcome`` is a ChargeStatus to return, or an exception instance to raise.
    """

    def __init__(
        self,
        name: str,
        outcome: ChargeStatus | Exception = ChargeStatus.PAID,
        refund_outcome: bool | Exception = True,
        calls: list[str] | None = None,
    ) -> None:
        self.name = name
        self.outcome = outcome
        self.refund_outcome = refund_outcome
        self.calls = calls if calls is not None else []
        self.create_calls: list[Charge] = []
        self.refund_calls: list[tuple[str, int]] = []

    async def create_charge(self, charge: Charge, context: RequestContext) -> ProviderResult:
        self.calls.append(self.name)
        self.create_calls.append(charge)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return ProviderResult(
            provider=Provider(id=f"{self.name}-charge-{len(self.create_calls)}", name=self.name),
            source_id=f"{self.name}-card-{len(self.create_calls)}",
            status=self.outcome,
        )

    async def refund_charge(self, provider_id: str, amount: int, context: RequestContext) -> RefundResult:
        self.refund_calls.append((provider_id, amount))
        if isinstance(self.refund_outcome, Exception):
            raise self.refund_outcome
        return RefundResult(success=self.refund_outcome)


@pytest.fixture
def request_context() -> RequestContext:
    return RequestContext(request_id="req-test-001")


@pytest.fixture
def valid_card() -> Card:
    return Card(
        number=VALID_CARD_NUMBER,
        holder_name="Maria Silva",
        cvv="123",
        expiration_date=FUTURE_EXPIRATION,
    )


@pytest.fixture
def mock_charge_repository() -> AsyncMock:
    """Create mock ChargeRepository."""
    repo = AsyncMock()
    repo.find_by_id = AsyncMock(return_value=None)
    repo.find_by_natural_key = AsyncMock(return_value=None)
    repo.save = AsyncMock(return_value=None)
    repo.update = AsyncMock(return_value=None)
    repo.list = AsyncMock()
    return repo


@pytest.fixture
def mock_uow(mock_charge_repository: AsyncMock) -> AsyncMock:
    """Create mock Unit of Work."""
    uow = AsyncMock(spec=UnitOfWork)
    uow.charges = mock_charge_repository
    uow.commit = AsyncMock(return_value=None)
    uow.rollback = AsyncMock(return_value=None)

    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=None)

    return uow


def create_card(number: str = VALID_CARD_NUMBER) -> Card:
    return Card(
        number=number,
        holder_name="Maria Silva",
        cvv="123",
        expiration_date=FUTURE_EXPIRATION,
    )


def create_charge(
    charge_id: str = "01JCHARGE00000000000000001",
    merchant_id: str = "merchant-001",
    order_id: str = "order-001",
    amount: int = 1000,
    current_amount: int = FULL_AMOUNT,
    status: ChargeStatus = ChargeStatus.PENDING,
    provider_id: str | None = None,
    provider_name: str | None = None,
    with_card: bool = True,
) -> Charge:
    """Helper to create a Charge in any state."""
    return Charge(
        id=charge_id,
        merchant_id=merchant_id,
        order_id=order_id,
        amount=amount,
        current_amount=current_amount,
        currency=Currency.BRL,
        description="Order #001",
        payment_method=CreditPaymentMethod(installments=1),
        payment_source=PaymentSource(
            source_type=SourceType.CARD,
            id="card-source-001" if provider_id else None,
            card=create_card() if with_card else None,
        ),
        status=status,
        provider_id=provider_id,
        provider_name=provider_name,
        created_at=datetime.now(UTC),
    )


def create_paid_charge(
    amount: int = 1000,
    current_amount: int = FULL_AMOUNT,
    provider_id: str = "p1",
    provider_name: str = "stripe",
) -> Charge:
    return create_charge(
        amount=amount,
        current_amount=current_amount,
        status=ChargeStatus.PAID,
        provider_id=provider_id,
        provider_name=provider_name,
        with_card=False,
    )
