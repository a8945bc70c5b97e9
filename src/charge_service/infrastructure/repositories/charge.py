from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Row, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from charge_service.domain.exceptions import DuplicateChargeError
from charge_service.domain.models import (
    Charge,
    ChargePage,
    ChargeStatus,
    CreditPaymentMethod,
    Currency,
    ListChargesQuery,
    PaymentSource,
    SortOrder,
    SourceType,
)


_COLUMNS = """
    id, merchant_id, order_id, amount, current_amount, currency, description,
    status, payment_method_type, installments, payment_source_type,
    payment_source_id, provider_id, provider_name, created_at, updated_at
"""

_ORDER_BY = {
    SortOrder.ASC: "created_at ASC, id ASC",
    SortOrder.DESC: "created_at DESC, id DESC",
}


def _row_to_charge(row: Row[Any]) -> Charge:
    return Charge(
        id=row.id,
        merchant_id=row.merchant_id,
        order_id=row.order_id,
        amount=row.amount,
        current_amount=row.current_amount,
        currency=Currency(row.currency),
        description=row.description,
        status=ChargeStatus(row.status),
        payment_method=CreditPaymentMethod(installments=row.installments or 1),
        payment_source=PaymentSource(
            source_type=SourceType(row.payment_source_type),
            id=row.payment_source_id,
        ),
        provider_id=row.provider_id,
        provider_name=row.provider_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ChargeRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_id(self, charge_id: str) -> Charge | None:
        result = await self._session.execute(
            text(f"SELECT {_COLUMNS} FROM charges WHERE id = :id"),
            {"id": charge_id},
        )
        row = result.fetchone()
        if not row:
            return None
        return _row_to_charge(row)

    async def find_by_natural_key(self, merchant_id: str, order_id: str) -> Charge | None:
        result = await self._session.execute(
            text(f"""
                SELECT {_COLUMNS}
                FROM charges
                WHERE merchant_id = :merchant_id AND order_id = :order_id
            """),
            {"merchant_id": merchant_id, "order_id": order_id},
        )
        row = result.fetchone()
        if not row:
            return None
        return _row_to_charge(row)

    async def save(self, charge: Charge) -> None:
        try:
            await self._session.execute(
                text(f"""
                    INSERT INTO charges ({_COLUMNS})
                    VALUES
                        (:id, :merchant_id, :order_id, :amount, :current_amount, :currency,
                         :description, :status, :payment_method_type, :installments,
                         :payment_source_type, :payment_source_id, :provider_id,
                         :provider_name, :created_at, :updated_at)
                """),
                {
                    "id": charge.id,
                    "merchant_id": charge.merchant_id,
                    "order_id": charge.order_id,
                    "amount": charge.amount,
                    "current_amount": charge.current_amount,
                    "currency": charge.currency.value,
                    "description": charge.description,
                    "status": charge.status.value,
                    "payment_method_type": charge.payment_method.payment_type.value,
                    "installments": charge.payment_method.installments,
                    "payment_source_type": charge.payment_source.source_type.value,
                    "payment_source_id": charge.payment_source.id,
                    "provider_id": charge.provider_id,
                    "provider_name": charge.provider_name,
                    "created_at": charge.created_at,
                    "updated_at": charge.updated_at,
                },
            )
        except IntegrityError as e:
            raise DuplicateChargeError(charge.merchant_id, charge.order_id) from e

    async def update(self, charge: Charge) -> None:
        await self._session.execute(
            text("""
                UPDATE charges
                SET status = :status,
                    current_amount = :current_amount,
                    payment_source_type = :payment_source_type,
                    payment_source_id = :payment_source_id,
                    provider_id = :provider_id,
                    provider_name = :provider_name,
                    updated_at = :updated_at
                WHERE id = :id
            """),
            {
                "id": charge.id,
                "status": charge.status.value,
                "current_amount": charge.current_amount,
                "payment_source_type": charge.payment_source.source_type.value,
                "payment_source_id": charge.payment_source.id,
                "provider_id": charge.provider_id,
                "provider_name": charge.provider_name,
                "updated_at": charge.updated_at or datetime.now(UTC),
            },
        )

    async def list(self, query: ListChargesQuery) -> ChargePage:
        conditions: list[str] = []
        params: dict[str, Any] = {}
        if query.merchant_id:
            conditions.append("merchant_id = :merchant_id")
            params["merchant_id"] = query.merchant_id
        if query.order_id:
            conditions.append("order_id = :order_id")
            params["order_id"] = query.order_id
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        count_result = await self._session.execute(
            text(f"SELECT COUNT(*) FROM charges {where}"),
            params,
        )
        total_items = int(count_result.scalar_one())
        if total_items == 0:
            return ChargePage.build([], 0, query)

        result = await self._session.execute(
            text(f"""
                SELECT {_COLUMNS}
                FROM charges
                {where}
                ORDER BY {_ORDER_BY[query.sort]}
                LIMIT :limit OFFSET :offset
            """),
            {**params, "limit": query.limit, "offset": query.offset},
        )
        items = [_row_to_charge(row) for row in result.fetchall()]
        return ChargePage.build(items, total_items, query)
