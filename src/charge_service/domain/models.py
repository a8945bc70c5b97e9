import math
import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import TypeVar

from ulid import ULID

from charge_service.domain.exceptions import (
    InvalidAmountError,
    InvalidCardError,
    InvalidEnumValueError,
    InvalidInstallmentsError,
    InvalidRefundAmountError,
    RefundNotAllowedError,
    ValidationError,
)


class ChargeStatus(Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    VOIDED = "voided"


class Currency(Enum):
    BRL = "BRL"


class PaymentType(Enum):
    CREDIT = "credit"


class SourceType(Enum):
    CARD = "card"


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"


E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: object, field_name: str) -> E:
    """Build an enum member from an external value, raising a domain error on mismatch."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidEnumValueError(field_name, value, [str(member.value) for member in enum_cls]) from None


_WHITESPACE = re.compile(r"\s")
_EXPIRATION = re.compile(r"^(\d{1,2})/(\d{4})$")


def luhn_check(digits: str) -> bool:
    parity = len(digits) % 2
    total = 0
    for index, char in enumerate(digits):
        digit = int(char)
        if index % 2 == parity:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def _today() -> date:
    return datetime.now(UTC).date()


@dataclass(frozen=True)
class Card:
    """Card data as sent by the merchant.

    Only lives on a charge until it has been handed to a provider; it is never
    persisted and its number and CVV are kept out of ``repr``.
    """

    number: str = field(repr=False)
    holder_name: str = field(repr=False)
    cvv: str = field(repr=False)
    expiration_date: str

    def __post_init__(self) -> None:
        if not self.number:
            raise InvalidCardError("number", "must not be empty")
        number = _WHITESPACE.sub("", self.number)
        if not number.isdigit():
            raise InvalidCardError("number", "must contain only digits")
        if len(number) != 16:
            raise InvalidCardError("number", "must be 16 digits")
        if not luhn_check(number):
            raise InvalidCardError("number", "failed Luhn algorithm")

        if not self.holder_name:
            raise InvalidCardError("holder name", "must not be empty")
        if len(self.holder_name) < 3:
            raise InvalidCardError("holder name", "must contain at least 3 characters")

        cvv = _WHITESPACE.sub("", self.cvv)
        if not cvv.isdigit():
            raise InvalidCardError("cvv", "must contain only digits")
        if len(cvv) != 3:
            raise InvalidCardError("cvv", "must be 3 digits")

        expiration = _WHITESPACE.sub("", self.expiration_date)
        match = _EXPIRATION.match(expiration)
        if not match:
            raise InvalidCardError("expiration date", f"must be MM/YYYY, received {expiration}")
        month, year = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise InvalidCardError("expiration month", "must be between 1 and 12")
        today = _today()
        if (year, month) < (today.year, today.month):
            raise InvalidCardError("expiration date", "card is expired", {"expiration_date": expiration})

        object.__setattr__(self, "number", number)
        object.__setattr__(self, "cvv", cvv)
        object.__setattr__(self, "expiration_date", f"{month:02d}/{year}")

    @property
    def last4(self) -> str:
        return self.number[-4:]

    @property
    def expiration_month(self) -> str:
        return self.expiration_date.split("/")[0]

    @property
    def expiration_year(self) -> str:
        return self.expiration_date.split("/")[1]


@dataclass(frozen=True)
class CreditPaymentMethod:
    installments: int = 1
    payment_type: PaymentType = PaymentType.CREDIT

    def __post_init__(self) -> None:
        if isinstance(self.installments, bool) or not isinstance(self.installments, int):
            raise InvalidInstallmentsError(self.installments)
        if self.installments < 1:
            raise InvalidInstallmentsError(self.installments)


@dataclass
class PaymentSource:
    source_type: SourceType = SourceType.CARD
    id: str | None = None
    card: Card | None = None


@dataclass(frozen=True)
class Provider:
    id: str
    name: str


@dataclass(frozen=True)
class ProviderResult:
    provider: Provider
    source_id: str
    status: ChargeStatus


@dataclass(frozen=True)
class RefundResult:
    success: bool


@dataclass(frozen=True)
class RequestContext:
    """Per-request values passed explicitly down to provider calls."""

    request_id: str

    @classmethod
    def new(cls, request_id: str | None = None) -> "RequestContext":
        return cls(request_id=request_id or str(ULID()))


# Placeholder for current_amount meaning "not yet refunded", resolved to amount
FULL_AMOUNT = -1


@dataclass
class Charge:
    id: str
    merchant_id: str
    order_id: str
    amount: int
    currency: Currency
    description: str
    payment_method: CreditPaymentMethod
    payment_source: PaymentSource = field(default_factory=PaymentSource)
    status: ChargeStatus = ChargeStatus.PENDING
    current_amount: int = FULL_AMOUNT
    provider_id: str | None = None
    provider_name: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int) or self.amount <= 0:
            raise InvalidAmountError(self.amount, "must be a positive integer in minor units")
        if self.current_amount == FULL_AMOUNT:
            self.current_amount = self.amount
        if not 0 <= self.current_amount <= self.amount:
            raise InvalidAmountError(self.current_amount, f"current amount must be within [0, {self.amount}]")

    @classmethod
    def create(
        cls,
        merchant_id: str,
        order_id: str,
        amount: int,
        currency: Currency,
        description: str,
        payment_method: CreditPaymentMethod,
        card: Card,
    ) -> "Charge":
        return cls(
            id=str(ULID()),
            merchant_id=merchant_id,
            order_id=order_id,
            amount=amount,
            currency=currency,
            description=description,
            payment_method=payment_method,
            payment_source=PaymentSource(source_type=SourceType.CARD, card=card),
        )

    def mismatched_terms(self, other: "Charge") -> list[str]:
        """Names of the charge terms on which ``other`` disagrees with this charge."""
        terms = {
            "amount": (self.amount, other.amount),
            "currency": (self.currency, other.currency),
            "description": (self.description, other.description),
            "installments": (self.payment_method.installments, other.payment_method.installments),
        }
        return [name for name, (mine, theirs) in terms.items() if mine != theirs]

    def is_ready_to_process(self) -> bool:
        return self.status in (ChargeStatus.PENDING, ChargeStatus.FAILED) and self.provider_id is None

    def allow_refund(self) -> bool:
        return self.status == ChargeStatus.PAID and self.current_amount > 0 and self.provider_id is not None

    def apply_provider_result(self, result: ProviderResult) -> None:
        if self.provider_id is not None:
            raise ValidationError(
                f"Charge {self.id} is already bound to provider {self.provider_name}",
                {"charge_id": self.id, "provider_id": self.provider_id},
            )
        self.provider_id = result.provider.id
        self.provider_name = result.provider.name
        self.payment_source.id = result.source_id
        self.status = result.status
        self._touch()

    def refund(self, amount: int) -> None:
        if not self.allow_refund():
            raise RefundNotAllowedError(self.id, self.status.value)
        if amount <= 0 or amount > self.current_amount:
            raise InvalidRefundAmountError(self.id, amount, self.current_amount)
        self.current_amount -= amount
        self.status = ChargeStatus.REFUNDED
        self._touch()

    def cancel_refund(self, amount: int) -> None:
        """Reverse a refund whose remote counterpart did not go through."""
        if amount <= 0 or self.current_amount + amount > self.amount:
            raise InvalidRefundAmountError(self.id, amount, self.amount - self.current_amount)
        self.current_amount += amount
        self.status = ChargeStatus.PAID
        self._touch()

    def _touch(self) -> None:
        self.updated_at = datetime.now(UTC)


@dataclass(frozen=True)
class ListChargesQuery:
    merchant_id: str | None = None
    order_id: str | None = None
    page: int = 1
    limit: int = 5
    sort: SortOrder = SortOrder.ASC

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationError(f"Invalid page {self.page}: must be 1 or greater")
        if not 1 <= self.limit <= 100:
            raise ValidationError(f"Invalid limit {self.limit}: must be between 1 and 100")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class PageMeta:
    item_count: int
    total_items: int
    items_per_page: int
    total_pages: int
    current_page: int


@dataclass(frozen=True)
class ChargePage:
    items: list[Charge]
    meta: PageMeta

    @classmethod
    def build(cls, items: list[Charge], total_items: int, query: ListChargesQuery) -> "ChargePage":
        return cls(
            items=items,
            meta=PageMeta(
                item_count=len(items),
                total_items=total_items,
                items_per_page=query.limit,
                total_pages=math.ceil(total_items / query.limit),
                current_page=query.page,
            ),
        )
