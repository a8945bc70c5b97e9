"""Request validation and response projection for the gRPC API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator
from pydantic.alias_generators import to_camel

from charge_service.domain.models import (
    Card,
    Charge,
    ChargePage,
    CreditPaymentMethod,
    Currency,
    ListChargesQuery,
    SortOrder,
    parse_enum,
)


class RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class CardRequest(RequestModel):
    number: str = Field(min_length=13, max_length=19)
    holder_name: str = Field(min_length=1)
    cvv: str = Field(min_length=3, max_length=4)
    expiration_date: str = Field(pattern=r"^(0[1-9]|1[0-2])/\d{4}$")


class PaymentMethodRequest(RequestModel):
    type: Literal["credit"] = "credit"
    installments: int = Field(ge=1)
    card: CardRequest


class CreateChargeRequest(RequestModel):
    merchant_id: str = Field(min_length=1)
    order_id: str = Field(min_length=1)
    amount: PositiveInt
    currency: Literal["BRL"]
    description: str
    payment_method: PaymentMethodRequest

    def to_charge(self) -> Charge:
        """Build a pending charge; card and payment method rules raise domain validation errors."""
        card = Card(
            number=self.payment_method.card.number,
            holder_name=self.payment_method.card.holder_name,
            cvv=self.payment_method.card.cvv,
            expiration_date=self.payment_method.card.expiration_date,
        )
        return Charge.create(
            merchant_id=self.merchant_id,
            order_id=self.order_id,
            amount=self.amount,
            currency=parse_enum(Currency, self.currency, "currency"),
            description=self.description,
            payment_method=CreditPaymentMethod(installments=self.payment_method.installments),
            card=card,
        )


class GetChargeRequest(RequestModel):
    charge_id: str = Field(min_length=1)


class RefundChargeRequest(RequestModel):
    charge_id: str = Field(min_length=1)
    amount: PositiveInt


class ListChargesRequest(RequestModel):
    merchant_id: str | None = Field(default=None, min_length=1)
    order_id: str | None = Field(default=None, min_length=1)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=5, ge=1, le=100)
    sort: Literal["asc", "desc"] = "asc"

    @field_validator("sort", mode="before")
    @classmethod
    def lowercase_sort(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    def to_query(self) -> ListChargesQuery:
        return ListChargesQuery(
            merchant_id=self.merchant_id,
            order_id=self.order_id,
            page=self.page,
            limit=self.limit,
            sort=SortOrder(self.sort),
        )


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def charge_to_dict(charge: Charge) -> dict[str, Any]:
    """External projection of a charge. Card data is never part of it."""
    return {
        "id": charge.id,
        "merchantId": charge.merchant_id,
        "orderId": charge.order_id,
        "amount": charge.amount,
        "currentAmount": charge.current_amount,
        "currency": charge.currency.value,
        "description": charge.description,
        "status": charge.status.value,
        "paymentMethod": {
            "paymentType": charge.payment_method.payment_type.value,
            "installments": charge.payment_method.installments,
        },
        "providerId": charge.provider_id,
        "provider": charge.provider_name,
        "paymentSource": {
            "id": charge.payment_source.id,
            "sourceType": charge.payment_source.source_type.value,
        },
        "createdAt": _isoformat(charge.created_at),
        "updatedAt": _isoformat(charge.updated_at),
    }


def page_to_dict(page: ChargePage) -> dict[str, Any]:
    return {
        "items": [charge_to_dict(charge) for charge in page.items],
        "meta": {
            "itemCount": page.meta.item_count,
            "totalItems": page.meta.total_items,
            "itemsPerPage": page.meta.items_per_page,
            "totalPages": page.meta.total_pages,
            "currentPage": page.meta.current_page,
        },
    }
