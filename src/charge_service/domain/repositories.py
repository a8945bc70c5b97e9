from typing import Protocol

from charge_service.domain.models import Charge, ChargePage, ListChargesQuery


class ChargeRepository(Protocol):
    """Storage contract the charge workflows depend on."""

    async def find_by_natural_key(self, merchant_id: str, order_id: str) -> Charge | None: ...

    async def find_by_id(self, charge_id: str) -> Charge | None: ...

    async def save(self, charge: Charge) -> None:
        """Insert a new charge.

        Raises:
            DuplicateChargeError: a charge with the same (merchant_id, order_id) exists.
        """
        ...

    async def update(self, charge: Charge) -> None: ...

    async def list(self, query: ListChargesQuery) -> ChargePage: ...
