"""Builds the ordered provider list used by the fallback orchestrator."""

from collections.abc import Callable

import httpx
import structlog

from charge_service.config import Settings
from charge_service.domain.providers import PaymentProvider
from charge_service.infrastructure.providers.braintree import BraintreeProvider
from charge_service.infrastructure.providers.stripe import StripeProvider


logger = structlog.get_logger(__name__)

ProviderBuilder = Callable[[Settings, httpx.AsyncClient], PaymentProvider]

_PROVIDERS: dict[str, ProviderBuilder] = {
    StripeProvider.name: lambda cfg, client: StripeProvider(cfg.stripe_base_url, client),
    BraintreeProvider.name: lambda cfg, client: BraintreeProvider(cfg.braintree_base_url, client),
}


def available_providers() -> list[str]:
    return sorted(_PROVIDERS)


def build_providers(settings: Settings, http_client: httpx.AsyncClient) -> list[PaymentProvider]:
    """
    Instantiate providers in ``settings.provider_order``.

    Raises:
        ValueError: an unknown or duplicated provider name, or an empty order.
    """
    names = settings.provider_names
    if not names:
        raise ValueError("provider_order must name at least one provider")
    if len(set(names)) != len(names):
        raise ValueError(f"provider_order contains duplicates: {settings.provider_order}")

    providers: list[PaymentProvider] = []
    for name in names:
        builder = _PROVIDERS.get(name)
        if builder is None:
            raise ValueError(f"Unknown provider: {name}. Available providers: {', '.join(available_providers())}")
        providers.append(builder(settings, http_client))

    logger.info("providers_configured", order=names)
    return providers
