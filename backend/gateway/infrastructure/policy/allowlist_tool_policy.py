"""Default tool invocation rules based on tool-name allowlists."""

from gateway.application.interfaces import ToolPolicyEvaluator
from gateway.domain.entities import Agent, NormalizedToolCall, ToolRefusal


class AllowlistToolPolicyEvaluator(ToolPolicyEvaluator):
    """Blocks tools the request did not enable, and unsafe tools in untrusted context.

    While the context is untrusted only the tools listed in
    ``untrusted_context_allowed_tools`` may still be invoked.
    """

    def __init__(self, untrusted_context_allowed_tools: list[str] | None = None):
        self._untrusted_allowed = set(untrusted_context_allowed_tools or ())

    async def evaluate(
        self,
        calls: list[NormalizedToolCall],
        *,
        agent: Agent,
        context_is_trusted: bool,
        enabled_tool_names: set[str],
    ) -> ToolRefusal | None:
        for call in calls:
            if call.name not in enabled_tool_names:
                return ToolRefusal(
                    tool_name=call.name,
                    reason="tool_not_enabled",
                    content=f"I tried to use the tool '{call.name}', but it is not enabled for this request.",
                )
            if not context_is_trusted and call.name not in self._untrusted_allowed:
                return ToolRefusal(
                    tool_name=call.name,
                    reason="untrusted_context",
                    content=(
                        f"I cannot use the tool '{call.name}' because the conversation contains "
                        "data from an untrusted source."
                    ),
                )
        return None
