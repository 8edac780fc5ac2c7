"""Abstract repository interfaces for agents and their tools."""

from abc import ABC, abstractmethod

from gateway.domain.entities import Agent, ToolDefinition


class AgentRepository(ABC):
    """Port — agent lookup and default-agent creation."""

    @abstractmethod
    async def get_by_id(self, agent_id: str) -> Agent | None:
        ...

    @abstractmethod
    async def get_or_create_default(self, name: str) -> Agent:
        """Return the default agent called ``name``, creating it on first sight."""
        ...


class AgentToolRepository(ABC):
    """Port — records which tools each agent has declared."""

    @abstractmethod
    async def create_many_if_not_exists(
        self, agent_id: str, tools: list[ToolDefinition]
    ) -> int:
        """Record tools for an agent, skipping names already known.

        Returns:
            Number of newly recorded tools.
        """
        ...
