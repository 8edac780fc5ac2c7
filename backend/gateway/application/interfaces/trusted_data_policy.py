"""Abstract trusted-data policy for tool results."""

from abc import ABC, abstractmethod

from gateway.domain.entities import Agent


class TrustedDataPolicy(ABC):
    """Port — classifies individual tool results as trusted or not."""

    @abstractmethod
    async def is_untrusted(self, agent: Agent, tool_name: str | None, output: str) -> bool:
        """True if this tool output must be sanitized before reaching the model."""
        ...
