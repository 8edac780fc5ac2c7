"""Abstract tool invocation rule evaluator."""

from abc import ABC, abstractmethod

from gateway.domain.entities import Agent, NormalizedToolCall, ToolRefusal


class ToolPolicyEvaluator(ABC):
    """Port — decides whether a turn's tool calls may reach the client."""

    @abstractmethod
    async def evaluate(
        self,
        calls: list[NormalizedToolCall],
        *,
        agent: Agent,
        context_is_trusted: bool,
        enabled_tool_names: set[str],
    ) -> ToolRefusal | None:
        """Return a refusal for the first call that violates policy, or None."""
        ...
