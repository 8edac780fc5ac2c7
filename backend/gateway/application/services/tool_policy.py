"""Tool policy engine — applies the tool invocation verdict to one assistant turn."""

import logging
from collections.abc import Sequence

from gateway.application.interfaces import ToolPolicyEvaluator
from gateway.domain.entities import (
    Agent,
    ChatMessage,
    PolicyDecision,
    ToolCall,
    TrustVerdict,
    normalize_tool_call,
)

logger = logging.getLogger(__name__)


class ToolPolicyEngine:
    """Decides whether a turn's tool calls reach the client.

    Rule evaluation itself is delegated to a ``ToolPolicyEvaluator``. The
    engine normalizes both call variants, applies the verdict to the whole
    turn (one denial blocks every call), and builds the refusal substitute.
    """

    def __init__(self, evaluator: ToolPolicyEvaluator):
        self._evaluator = evaluator

    async def evaluate(
        self,
        tool_calls: Sequence[ToolCall],
        *,
        agent: Agent,
        verdict: TrustVerdict,
        enabled_tool_names: set[str],
    ) -> PolicyDecision:
        if not tool_calls:
            return PolicyDecision.allow()

        calls = [normalize_tool_call(call) for call in tool_calls]
        refusal = await self._evaluator.evaluate(
            calls,
            agent=agent,
            context_is_trusted=verdict.context_is_trusted,
            enabled_tool_names=enabled_tool_names,
        )
        if refusal is None:
            return PolicyDecision.allow()

        logger.info(
            "Blocked %d tool call(s) for agent=%s: tool=%s reason=%s",
            len(calls),
            agent.id,
            refusal.tool_name,
            refusal.reason,
        )
        return PolicyDecision.deny(refusal, blocked_count=len(calls))

    @staticmethod
    def apply(message: ChatMessage, decision: PolicyDecision) -> ChatMessage:
        """Return the assistant message the client should see under ``decision``."""
        if decision.allowed or decision.refusal is None:
            return message
        return ChatMessage(
            role="assistant",
            content=decision.refusal.content,
            refusal=decision.refusal.refusal_text,
            tool_calls=(),
        )
