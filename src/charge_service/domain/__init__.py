"""Domain layer - business entities and rules."""

from charge_service.domain.exceptions import (
    AllProvidersFailedError,
    ChargeMismatchError,
    DomainError,
    DuplicateChargeError,
    InvalidAmountError,
    InvalidCardError,
    InvalidEnumValueError,
    InvalidInstallmentsError,
    InvalidPaymentSourceError,
    InvalidRefundAmountError,
    ProviderError,
    ProviderNotFoundError,
    ProviderUnavailableError,
    RefundFailedError,
    RefundNotAllowedError,
    ValidationError,
)
from charge_service.domain.models import (
    Card,
    Charge,
    ChargePage,
    ChargeStatus,
    CreditPaymentMethod,
    Currency,
    ListChargesQuery,
    PageMeta,
    PaymentSource,
    PaymentType,
    Provider,
    ProviderResult,
    RefundResult,
    RequestContext,
    SortOrder,
    SourceType,
)


__all__ = [
    "AllProvidersFailedError",
    "Card",
    "Charge",
    "ChargeMismatchError",
    "ChargePage",
    "ChargeStatus",
    "CreditPaymentMethod",
    "Currency",
    "DomainError",
    "DuplicateChargeError",
    "InvalidAmountError",
    "InvalidCardError",
    "InvalidEnumValueError",
    "InvalidInstallmentsError",
    "InvalidPaymentSourceError",
    "InvalidRefundAmountError",
    "ListChargesQuery",
    "PageMeta",
    "PaymentSource",
    "PaymentType",
    "Provider",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderResult",
    "ProviderUnavailableError",
    "RefundFailedError",
    "RefundNotAllowedError",
    "RefundResult",
    "RequestContext",
    "SortOrder",
    "SourceType",
    "ValidationError",
]
