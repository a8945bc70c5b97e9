from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from charge_service.domain.repositories import ChargeRepository
from charge_service.infrastructure.repositories import ChargeRepository as SqlChargeRepository


class UnitOfWork:
    """Groups repository calls of one request into database transactions.

    ``commit`` may be called several times; each call ends the current
    transaction and the next statement starts a new one.
    """

    charges: ChargeRepository

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.charges = SqlChargeRepository(session)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
