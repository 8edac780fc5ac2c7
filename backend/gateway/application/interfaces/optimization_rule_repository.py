"""Abstract repository interface for cost optimization rules."""

from abc import ABC, abstractmethod

from gateway.domain.entities import OptimizationRule


class OptimizationRuleRepository(ABC):
    """Port — defines persistence operations for optimization rules."""

    @abstractmethod
    async def get_enabled_for_provider(self, provider: str) -> list[OptimizationRule]:
        """All enabled rules for a provider, in any scope."""
        ...

    @abstractmethod
    async def create(self, rule: OptimizationRule) -> OptimizationRule:
        ...
