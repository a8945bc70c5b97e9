import structlog

from charge_service.application.orchestrator import FallbackPaymentOrchestrator
from charge_service.application.unit_of_work import UnitOfWork
from charge_service.domain.exceptions import (
    ChargeMismatchError,
    DuplicateChargeError,
    InvalidRefundAmountError,
)
from charge_service.domain.models import (
    Charge,
    ChargePage,
    ListChargesQuery,
    RequestContext,
)
from charge_service.infrastructure.metrics import (
    CHARGE_REQUESTS_TOTAL,
    REFUNDS_TOTAL,
    track_charge_duration,
)


logger = structlog.get_logger()


class ChargeService:
    def __init__(self, uow: UnitOfWork, orchestrator: FallbackPaymentOrchestrator) -> None:
        self.uow = uow
        self.orchestrator = orchestrator

    @track_charge_duration
    async def create_charge(self, candidate: Charge, context: RequestContext) -> Charge:
        """Create a charge, or converge onto the one already stored for its order.

        The (merchant_id, order_id) pair is the idempotency key. A stored charge
        that is already bound to a provider, or resolved, is returned as is. A
        retry of an unresolved charge must carry the same terms; it is charged
        with the stored row and the card from the retry.
        """
        log = logger.bind(
            request_id=context.request_id,
            merchant_id=candidate.merchant_id,
            order_id=candidate.order_id,
        )

        async with self.uow:
            existing = await self.uow.charges.find_by_natural_key(candidate.merchant_id, candidate.order_id)

            if existing is None:
                try:
                    await self.uow.charges.save(candidate)
                    await self.uow.commit()
                    log.info("charge_created", step="1/3", charge_id=candidate.id)
                except DuplicateChargeError:
                    await self.uow.rollback()
                    log.info("charge_insert_conflict", charge_id=candidate.id)
                    existing = await self.uow.charges.find_by_natural_key(
                        candidate.merchant_id,
                        candidate.order_id,
                    )
                    if existing is None:
                        raise

            charge = candidate
            if existing is not None:
                log = log.bind(charge_id=existing.id)
                if not existing.is_ready_to_process():
                    log.info(
                        "idempotent_replay",
                        status=existing.status.value,
                        provider=existing.provider_name,
                    )
                    CHARGE_REQUESTS_TOTAL.labels(status="replayed").inc()
                    return existing
                mismatched = existing.mismatched_terms(candidate)
                if mismatched:
                    log.warning("charge_retry_mismatch", fields=mismatched)
                    CHARGE_REQUESTS_TOTAL.labels(status="rejected").inc()
                    raise ChargeMismatchError(existing.id, mismatched)
                # Stored rows carry no card data
                existing.payment_source.card = candidate.payment_source.card
                charge = existing
                log.info("charge_retry", step="1/3", status=existing.status.value)

            try:
                result = await self.orchestrator.process_payment(charge, context)
            except Exception:
                CHARGE_REQUESTS_TOTAL.labels(status="error").inc()
                raise

            charge.apply_provider_result(result)
            log.info(
                "charge_processed",
                step="2/3",
                provider=result.provider.name,
                provider_id=result.provider.id,
                status=charge.status.value,
            )

            await self.uow.charges.update(charge)
            await self.uow.commit()

            log.info("charge_completed", step="3/3", charge_id=charge.id, status=charge.status.value)
            CHARGE_REQUESTS_TOTAL.labels(status=charge.status.value).inc()
            return charge

    async def refund(self, charge_id: str, amount: int, context: RequestContext) -> Charge | None:
        """Refund locally first, then remotely; undo the local refund if the provider refuses.

        Returns None when the charge does not exist. A charge that does not allow
        refunds is returned untouched.
        """
        log = logger.bind(request_id=context.request_id, charge_id=charge_id, amount=amount)

        if amount <= 0:
            raise InvalidRefundAmountError(charge_id, amount, 0)

        async with self.uow:
            charge = await self.uow.charges.find_by_id(charge_id)
            if charge is None:
                log.warning("charge_not_found")
                return None

            if not charge.allow_refund():
                log.warning(
                    "refund_not_allowed",
                    status=charge.status.value,
                    current_amount=charge.current_amount,
                )
                REFUNDS_TOTAL.labels(outcome="skipped").inc()
                return charge

            # allow_refund() guarantees provider attribution is set
            provider_id = charge.provider_id or ""
            provider_name = charge.provider_name or ""

            charge.refund(amount)
            await self.uow.charges.update(charge)
            await self.uow.commit()
            log.info("refund_recorded", step="1/2", current_amount=charge.current_amount)

            try:
                result = await self.orchestrator.refund_payment(provider_id, provider_name, amount, context)
            except Exception:
                # Local ledger says refunded, provider state unknown
                log.error(
                    "refund_diverged",
                    provider=provider_name,
                    provider_id=provider_id,
                    status=charge.status.value,
                )
                REFUNDS_TOTAL.labels(outcome="error").inc()
                raise

            if not result.success:
                charge.cancel_refund(amount)
                await self.uow.charges.update(charge)
                await self.uow.commit()
                log.warning("refund_compensated", step="2/2", current_amount=charge.current_amount)
                REFUNDS_TOTAL.labels(outcome="compensated").inc()
                return charge

            log.info("refund_completed", step="2/2", current_amount=charge.current_amount)
            REFUNDS_TOTAL.labels(outcome="refunded").inc()
            return charge

    async def get_charge(self, charge_id: str) -> Charge | None:
        charge = await self.uow.charges.find_by_id(charge_id)
        if charge:
            logger.info(
                "get_charge",
                charge_id=charge.id,
                status=charge.status.value,
                current_amount=charge.current_amount,
            )
        else:
            logger.warning("charge_not_found", charge_id=charge_id)
        return charge

    async def list_charges(self, query: ListChargesQuery) -> ChargePage:
        page = await self.uow.charges.list(query)
        logger.info(
            "list_charges",
            merchant_id=query.merchant_id,
            order_id=query.order_id,
            page=query.page,
            limit=query.limit,
            total_items=page.meta.total_items,
        )
        return page
