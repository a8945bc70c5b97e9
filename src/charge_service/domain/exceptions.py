from typing import Any


class DomainError(Exception):
    """Base exception for domain errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)


class ValidationError(DomainError):
    """Raised when a value object or entity mutation receives an illegal value."""


class InvalidCardError(ValidationError):
    """Raised when card data fails validation."""

    def __init__(self, field: str, reason: str, context: dict[str, Any] | None = None) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid card {field}: {reason}", context)


class InvalidInstallmentsError(ValidationError):
    """Raised when a credit payment method has fewer than one installment."""

    def __init__(self, installments: int) -> None:
        self.installments = installments
        super().__init__(
            f"Invalid installments {installments}: must be greater than 0",
            {"installments": installments},
        )


class InvalidEnumValueError(ValidationError):
    """Raised when an external string does not match any enum member."""

    def __init__(self, field: str, value: object, expected: list[str]) -> None:
        self.field = field
        self.value = value
        self.expected = expected
        if len(expected) == 1:
            message = f'Invalid value for "{field}": received "{value}", expected "{expected[0]}"'
        else:
            message = f'Invalid value for "{field}": received "{value}", expected one of: {", ".join(expected)}'
        super().__init__(message)


class InvalidAmountError(ValidationError):
    """Raised when a charge amount is invalid."""

    def __init__(self, amount: int, reason: str) -> None:
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}", {"amount": amount})


class InvalidRefundAmountError(ValidationError):
    """Raised when a refund amount is non-positive or exceeds the refundable balance."""

    def __init__(self, charge_id: str, amount: int, available: int) -> None:
        self.charge_id = charge_id
        self.amount = amount
        self.available = available
        super().__init__(
            f"Invalid refund amount {amount} for charge {charge_id}: available {available}",
            {"charge_id": charge_id, "amount": amount, "available": available},
        )


class RefundNotAllowedError(ValidationError):
    """Raised when refunding a charge that is not paid, empty, or unbound to a provider."""

    def __init__(self, charge_id: str, status: str) -> None:
        self.charge_id = charge_id
        self.status = status
        super().__init__(
            f"Charge {charge_id} cannot be refunded in status {status}",
            {"charge_id": charge_id, "status": status},
        )


class ChargeMismatchError(ValidationError):
    """Raised when a retried order carries different charge terms than the stored charge."""

    def __init__(self, charge_id: str, fields: list[str]) -> None:
        self.charge_id = charge_id
        self.fields = fields
        super().__init__(
            f"Charge {charge_id} already exists with different {', '.join(fields)}",
            {"charge_id": charge_id, "fields": fields},
        )


class DuplicateChargeError(DomainError):
    """Raised by storage when the (merchant_id, order_id) pair already exists."""

    def __init__(self, merchant_id: str, order_id: str) -> None:
        self.merchant_id = merchant_id
        self.order_id = order_id
        super().__init__(f"Charge for merchant {merchant_id} order {order_id} already exists")


class ProviderError(DomainError):
    """Base exception for payment provider failures."""


class ProviderUnavailableError(ProviderError):
    """Raised when a provider call fails at the transport level (timeout, 5xx, connection)."""

    def __init__(self, provider_name: str, reason: str) -> None:
        self.provider_name = provider_name
        self.reason = reason
        super().__init__(f"Provider {provider_name} unavailable: {reason}", {"provider": provider_name})


class InvalidPaymentSourceError(ProviderError):
    """Raised when a charge reaches a provider without card data."""

    def __init__(self, charge_id: str) -> None:
        self.charge_id = charge_id
        super().__init__(f"Charge {charge_id} has no card to send to a provider")


class AllProvidersFailedError(ProviderError):
    """Raised when every configured provider declined or errored."""

    def __init__(self, charge_id: str, attempts: list[tuple[str, str]]) -> None:
        self.charge_id = charge_id
        self.attempts = attempts
        summary = ", ".join(f"{name}={outcome}" for name, outcome in attempts) or "no providers configured"
        super().__init__(
            f"All providers failed for charge {charge_id}: {summary}",
            {"charge_id": charge_id, "attempts": attempts},
        )


class ProviderNotFoundError(ProviderError):
    """Raised when a refund names a provider that is not configured."""

    def __init__(self, provider_name: str | None) -> None:
        self.provider_name = provider_name
        super().__init__(f"Provider {provider_name} not found")


class RefundFailedError(ProviderError):
    """Raised when a provider refund call errors out (as opposed to declining)."""

    def __init__(self, provider_name: str, provider_id: str) -> None:
        self.provider_name = provider_name
        self.provider_id = provider_id
        super().__init__(
            f"Refund failed with provider {provider_name}",
            {"provider": provider_name, "provider_id": provider_id},
        )
