"""Unit tests for the SQL charge repository with a mocked session."""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from charge_service.domain.exceptions import DuplicateChargeError
from charge_service.domain.models import ChargeStatus, ListChargesQuery, SortOrder
from charge_service.infrastructure.repositories import ChargeRepository
from tests.conftest import create_charge


def charge_row(**overrides: object) -> SimpleNamespace:
    values: dict[str, object] = {
        "id": "01JCHARGE00000000000000001",
        "merchant_id": "merchant-001",
        "order_id": "order-001",
        "amount": 1000,
        "current_amount": 700,
        "currency": "BRL",
        "description": "Order #001",
        "status": "refunded",
        "payment_method_type": "credit",
        "installments": 3,
        "payment_source_type": "card",
        "payment_source_id": "card_1",
        "provider_id": "ch_1",
        "provider_name": "stripe",
        "created_at": datetime(2026, 1, 1, tzinfo=UTC),
        "updated_at": datetime(2026, 1, 2, tzinfo=UTC),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def session() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def repository(session: AsyncMock) -> ChargeRepository:
    return ChargeRepository(session)


class TestFind:
    @pytest.mark.asyncio
    async def test_find_by_id_maps_row(self, repository: ChargeRepository, session: AsyncMock) -> None:
        result = MagicMock()
        result.fetchone.return_value = charge_row()
        session.execute.return_value = result

        charge = await repository.find_by_id("01JCHARGE00000000000000001")

        assert charge is not None
        assert charge.status == ChargeStatus.REFUNDED
        assert charge.current_amount == 700
        assert charge.payment_method.installments == 3
        assert charge.payment_source.id == "card_1"
        assert charge.payment_source.card is None
        assert charge.provider_name == "stripe"

    @pytest.mark.asyncio
    async def test_find_by_id_missing(self, repository: ChargeRepository, session: AsyncMock) -> None:
        result = MagicMock()
        result.fetchone.return_value = None
        session.execute.return_value = result

        assert await repository.find_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_find_by_natural_key_binds_both_columns(
        self,
        repository: ChargeRepository,
        session: AsyncMock,
    ) -> None:
        result = MagicMock()
        result.fetchone.return_value = None
        session.execute.return_value = result

        await repository.find_by_natural_key("merchant-001", "order-001")

        params = session.execute.call_args.args[1]
        assert params == {"merchant_id": "merchant-001", "order_id": "order-001"}


class TestSave:
    @pytest.mark.asyncio
    async def test_save_never_writes_card(self, repository: ChargeRepository, session: AsyncMock) -> None:
        await repository.save(create_charge())

        params = session.execute.call_args.args[1]
        assert params["status"] == "pending"
        assert params["current_amount"] == 1000
        assert "4111111111111111" not in params.values()

    @pytest.mark.asyncio
    async def test_unique_violation_becomes_duplicate(
        self,
        repository: ChargeRepository,
        session: AsyncMock,
    ) -> None:
        session.execute.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(DuplicateChargeError) as exc_info:
            await repository.save(create_charge())

        assert exc_info.value.merchant_id == "merchant-001"
        assert exc_info.value.order_id == "order-001"


class TestList:
    @pytest.mark.asyncio
    async def test_empty_result_skips_select(self, repository: ChargeRepository, session: AsyncMock) -> None:
        count = MagicMock()
        count.scalar_one.return_value = 0
        session.execute.return_value = count

        page = await repository.list(ListChargesQuery(merchant_id="merchant-001"))

        assert page.items == []
        assert page.meta.total_pages == 0
        session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_page_with_filters_and_sort(self, repository: ChargeRepository, session: AsyncMock) -> None:
        count = MagicMock()
        count.scalar_one.return_value = 7
        rows = MagicMock()
        rows.fetchall.return_value = [charge_row(id="a"), charge_row(id="b")]
        session.execute.side_effect = [count, rows]

        page = await repository.list(
            ListChargesQuery(merchant_id="m1", order_id="o1", page=2, limit=5, sort=SortOrder.DESC)
        )

        assert [charge.id for charge in page.items] == ["a", "b"]
        assert page.meta.total_items == 7
        assert page.meta.total_pages == 2
        statement, params = session.execute.call_args.args
        assert "created_at DESC" in str(statement)
        assert params == {"merchant_id": "m1", "order_id": "o1", "limit": 5, "offset": 5}
