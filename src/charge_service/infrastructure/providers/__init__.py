"""HTTP clients for external payment providers."""

from charge_service.infrastructure.providers.braintree import BraintreeProvider
from charge_service.infrastructure.providers.factory import available_providers, build_providers
from charge_service.infrastructure.providers.http import HttpPaymentProvider
from charge_service.infrastructure.providers.stripe import StripeProvider


__all__ = [
    "BraintreeProvider",
    "HttpPaymentProvider",
    "StripeProvider",
    "available_providers",
    "build_providers",
]
