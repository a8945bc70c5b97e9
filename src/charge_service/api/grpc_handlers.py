from typing import Any, NoReturn

import grpc
import pydantic
import structlog

from charge_service.api.codec import encode_message
from charge_service.api.schemas import (
    CreateChargeRequest,
    GetChargeRequest,
    ListChargesRequest,
    RefundChargeRequest,
    charge_to_dict,
    page_to_dict,
)
from charge_service.application.orchestrator import FallbackPaymentOrchestrator
from charge_service.application.services import ChargeService
from charge_service.application.unit_of_work import UnitOfWork
from charge_service.domain.exceptions import (
    AllProvidersFailedError,
    DomainError,
    ProviderNotFoundError,
    RefundFailedError,
    ValidationError,
)
from charge_service.domain.models import RequestContext
from charge_service.infrastructure.database import Database


logger = structlog.get_logger()


SERVICE_NAME = "charges.v1.ChargeService"
REQUEST_ID_HEADER = "x-request-id"

# First match wins, so subclasses go before their bases
ERROR_STATUS_MAP: list[tuple[type[DomainError], grpc.StatusCode]] = [
    (ValidationError, grpc.StatusCode.INVALID_ARGUMENT),
    (AllProvidersFailedError, grpc.StatusCode.UNAVAILABLE),
    (RefundFailedError, grpc.StatusCode.UNAVAILABLE),
    (ProviderNotFoundError, grpc.StatusCode.FAILED_PRECONDITION),
]


def status_for(error: DomainError) -> grpc.StatusCode:
    for error_type, status_code in ERROR_STATUS_MAP:
        if isinstance(error, error_type):
            return status_code
    return grpc.StatusCode.INTERNAL


def request_context_from(context: grpc.aio.ServicerContext) -> RequestContext:
    metadata = dict(context.invocation_metadata() or [])
    request_id = metadata.get(REQUEST_ID_HEADER)
    return RequestContext.new(request_id if isinstance(request_id, str) else None)


def _describe(error: pydantic.ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}" for err in error.errors()
    )


async def _abort(context: grpc.aio.ServicerContext, code: grpc.StatusCode, message: str) -> NoReturn:
    await context.abort(code, message)
    raise AssertionError("unreachable")


class ChargeServiceHandler:
    """Unary handlers of ``charges.v1.ChargeService``.

    Requests arrive as raw JSON bytes and are validated here; responses are
    plain dicts encoded by ``encode_message``.
    """

    def __init__(self, database: Database, orchestrator: FallbackPaymentOrchestrator) -> None:
        self._database = database
        self._orchestrator = orchestrator

    async def CreateCharge(self, request: bytes, context: grpc.aio.ServicerContext) -> dict[str, Any]:
        request_context = request_context_from(context)
        log = logger.bind(method="CreateCharge", request_id=request_context.request_id)
        log.info("request_received")

        try:
            dto = CreateChargeRequest.model_validate_json(request)
            candidate = dto.to_charge()
        except pydantic.ValidationError as e:
            await _abort(context, grpc.StatusCode.INVALID_ARGUMENT, _describe(e))
        except DomainError as e:
            log.info("request_rejected", error=e.message)
            await _abort(context, status_for(e), e.message)

        async with self._database.session() as session:
            service = ChargeService(UnitOfWork(session), self._orchestrator)
            try:
                charge = await service.create_charge(candidate, request_context)
            except DomainError as e:
                log.warning("create_charge_failed", error=e.message, error_type=type(e).__name__)
                await _abort(context, status_for(e), e.message)

        return charge_to_dict(charge)

    async def GetCharge(self, request: bytes, context: grpc.aio.ServicerContext) -> dict[str, Any]:
        request_context = request_context_from(context)
        logger.info("request_received", method="GetCharge", request_id=request_context.request_id)

        try:
            dto = GetChargeRequest.model_validate_json(request)
        except pydantic.ValidationError as e:
            await _abort(context, grpc.StatusCode.INVALID_ARGUMENT, _describe(e))

        async with self._database.session() as session:
            service = ChargeService(UnitOfWork(session), self._orchestrator)
            charge = await service.get_charge(dto.charge_id)

        if charge is None:
            await _abort(context, grpc.StatusCode.NOT_FOUND, f"Charge with id {dto.charge_id} not found")

        return charge_to_dict(charge)

    async def ListCharges(self, request: bytes, context: grpc.aio.ServicerContext) -> dict[str, Any]:
        request_context = request_context_from(context)
        logger.info("request_received", method="ListCharges", request_id=request_context.request_id)

        try:
            query = ListChargesRequest.model_validate_json(request or b"{}").to_query()
        except pydantic.ValidationError as e:
            await _abort(context, grpc.StatusCode.INVALID_ARGUMENT, _describe(e))

        async with self._database.session() as session:
            service = ChargeService(UnitOfWork(session), self._orchestrator)
            page = await service.list_charges(query)

        return page_to_dict(page)

    async def RefundCharge(self, request: bytes, context: grpc.aio.ServicerContext) -> dict[str, Any]:
        request_context = request_context_from(context)
        log = logger.bind(method="RefundCharge", request_id=request_context.request_id)
        log.info("request_received")

        try:
            dto = RefundChargeRequest.model_validate_json(request)
        except pydantic.ValidationError as e:
            await _abort(context, grpc.StatusCode.INVALID_ARGUMENT, _describe(e))

        async with self._database.session() as session:
            service = ChargeService(UnitOfWork(session), self._orchestrator)
            try:
                charge = await service.refund(dto.charge_id, dto.amount, request_context)
            except DomainError as e:
                log.warning("refund_failed", error=e.message, error_type=type(e).__name__)
                await _abort(context, status_for(e), e.message)

        if charge is None:
            await _abort(context, grpc.StatusCode.NOT_FOUND, f"Charge with id {dto.charge_id} not found")

        return charge_to_dict(charge)


def add_ChargeServiceHandler_to_server(handler: ChargeServiceHandler, server: grpc.aio.Server) -> None:
    rpc_method_handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(handler, name),
            request_deserializer=None,
            response_serializer=encode_message,
        )
        for name in ("CreateCharge", "GetCharge", "ListCharges", "RefundCharge")
    }
    generic_handler = grpc.method_handlers_generic_handler(SERVICE_NAME, rpc_method_handlers)
    server.add_generic_rpc_handlers((generic_handler,))
