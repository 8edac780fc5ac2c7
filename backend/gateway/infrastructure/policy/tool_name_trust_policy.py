"""Default trusted-data policy: classify tool results by tool name and agent flag."""

from gateway.application.interfaces import TrustedDataPolicy
from gateway.domain.entities import Agent


class ToolNameTrustedDataPolicy(TrustedDataPolicy):
    def __init__(self, untrusted_tool_names: list[str] | None = None):
        self._untrusted_tool_names = set(untrusted_tool_names or ())

    async def is_untrusted(self, agent: Agent, tool_name: str | None, output: str) -> bool:
        if agent.consider_context_untrusted:
            return True
        return tool_name is not None and tool_name in self._untrusted_tool_names
