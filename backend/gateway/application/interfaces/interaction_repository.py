"""Abstract repository interface for interaction records."""

from abc import ABC, abstractmethod

from gateway.domain.entities import InteractionRecord


class InteractionRepository(ABC):
    """Port — defines persistence operations for interaction records."""

    @abstractmethod
    async def create(self, record: InteractionRecord) -> InteractionRecord:
        """Persist a new interaction record.

        Returns:
            The created record with its assigned ID.
        """
        ...

    @abstractmethod
    async def get_by_id(self, record_id: int) -> InteractionRecord | None:
        ...

    @abstractmethod
    async def get_all(
        self, *, agent_id: str | None = None, skip: int = 0, limit: int = 100
    ) -> list[InteractionRecord]:
        """Retrieve interaction records, ordered by most recent first."""
        ...

    @abstractmethod
    async def total_cost_for_agent(self, agent_id: str) -> float:
        """Sum of the recorded (post-optimization) cost for one agent."""
        ...
