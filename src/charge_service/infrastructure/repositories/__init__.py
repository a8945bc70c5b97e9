"""Repository implementations."""

from charge_service.infrastructure.repositories.charge import ChargeRepository


__all__ = [
    "ChargeRepository",
]
