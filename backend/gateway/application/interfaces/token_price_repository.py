"""Abstract repository interface for per-model token prices."""

from abc import ABC, abstractmethod

from gateway.domain.entities import TokenPrice


class TokenPriceRepository(ABC):
    """Port — price lookups and idempotent price creation."""

    @abstractmethod
    async def get_by_model(self, model: str) -> TokenPrice | None:
        ...

    @abstractmethod
    async def create_if_not_exists(self, price: TokenPrice) -> bool:
        """Insert ``price`` unless a price for the model already exists.

        Must be a conditional insert, never a check-then-insert: an
        operator-customized price is never overwritten.

        Returns:
            True if a row was inserted.
        """
        ...
