import asyncio
import time
from collections.abc import Sequence

import structlog

from charge_service.domain.exceptions import (
    AllProvidersFailedError,
    ProviderNotFoundError,
    RefundFailedError,
)
from charge_service.domain.models import (
    Charge,
    ChargeStatus,
    ProviderResult,
    RefundResult,
    RequestContext,
)
from charge_service.domain.providers import PaymentProvider
from charge_service.infrastructure.metrics import PROVIDER_ATTEMPTS_TOTAL, PROVIDER_CALL_DURATION


logger = structlog.get_logger()


class FallbackPaymentOrchestrator:
    """
    Sends a charge to the configured providers in priority order.

    Providers are tried one at a time: the first non-failed result wins and no
    further providers are contacted. A provider that raises, times out or
    declines is skipped. If none succeeds, ``AllProvidersFailedError`` is raised.
    """

    def __init__(self, providers: Sequence[PaymentProvider], timeout_seconds: float = 5.0) -> None:
        names = [provider.name for provider in providers]
        if len(set(names)) != len(names):
            raise ValueError(f"Provider names must be unique, got {names}")
        self._providers = tuple(providers)
        self._timeout_seconds = timeout_seconds

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self._providers]

    async def process_payment(self, charge: Charge, context: RequestContext) -> ProviderResult:
        log = logger.bind(request_id=context.request_id, charge_id=charge.id)
        log.info("processing_charge", providers=self.provider_names)

        attempts: list[tuple[str, str]] = []
        for position, provider in enumerate(self._providers, start=1):
            attempt_log = log.bind(provider=provider.name, attempt=position)
            start = time.perf_counter()
            try:
                async with asyncio.timeout(self._timeout_seconds):
                    result = await provider.create_charge(charge, context)
            except TimeoutError:
                attempt_log.warning("provider_timeout", timeout_seconds=self._timeout_seconds)
                attempts.append((provider.name, "timeout"))
                PROVIDER_ATTEMPTS_TOTAL.labels(provider=provider.name, outcome="error").inc()
                continue
            except Exception as e:
                attempt_log.error("provider_error", error=str(e), error_type=type(e).__name__)
                attempts.append((provider.name, "error"))
                PROVIDER_ATTEMPTS_TOTAL.labels(provider=provider.name, outcome="error").inc()
                continue
            finally:
                PROVIDER_CALL_DURATION.labels(provider=provider.name, operation="create_charge").observe(
                    time.perf_counter() - start
                )

            if result.status == ChargeStatus.FAILED:
                attempt_log.warning("provider_declined")
                attempts.append((provider.name, "declined"))
                PROVIDER_ATTEMPTS_TOTAL.labels(provider=provider.name, outcome="declined").inc()
                continue

            attempt_log.info(
                "provider_succeeded",
                provider_id=result.provider.id,
                status=result.status.value,
            )
            PROVIDER_ATTEMPTS_TOTAL.labels(provider=provider.name, outcome="succeeded").inc()
            return result

        log.error("all_providers_failed", attempts=attempts)
        raise AllProvidersFailedError(charge.id, attempts)

    async def refund_payment(
        self,
        provider_id: str,
        provider_name: str,
        amount: int,
        context: RequestContext,
    ) -> RefundResult:
        log = logger.bind(
            request_id=context.request_id,
            provider=provider_name,
            provider_id=provider_id,
            amount=amount,
        )

        provider = next((p for p in self._providers if p.name == provider_name), None)
        if provider is None:
            log.error("refund_provider_not_found", configured=self.provider_names)
            raise ProviderNotFoundError(provider_name)

        start = time.perf_counter()
        try:
            async with asyncio.timeout(self._timeout_seconds):
                result = await provider.refund_charge(provider_id, amount, context)
        except Exception as e:
            log.error("refund_provider_error", error=str(e), error_type=type(e).__name__)
            raise RefundFailedError(provider_name, provider_id) from e
        finally:
            PROVIDER_CALL_DURATION.labels(provider=provider_name, operation="refund_charge").observe(
                time.perf_counter() - start
            )

        log.info("refund_provider_responded", success=result.success)
        return result
