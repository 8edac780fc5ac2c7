"""Unit tests for the ToolPolicyEngine and the allowlist evaluator."""

import pytest

from gateway.application.interfaces import ToolPolicyEvaluator
from gateway.application.services.tool_policy import ToolPolicyEngine
from gateway.domain.entities import (
    Agent,
    ChatMessage,
    CustomToolCall,
    FunctionToolCall,
    NormalizedToolCall,
    PolicyDecision,
    ToolRefusal,
    TrustVerdict,
)
from gateway.infrastructure.policy import AllowlistToolPolicyEvaluator


# ── Fakes ──


class RecordingEvaluator(ToolPolicyEvaluator):
    """Refuses any call named in ``blocked``; records what it was asked."""

    def __init__(self, blocked: set[str] | None = None):
        self.blocked = blocked or set()
        self.seen: list[list[NormalizedToolCall]] = []
        self.trusted_flags: list[bool] = []

    async def evaluate(self, calls, *, agent, context_is_trusted, enabled_tool_names):
        self.seen.append(calls)
        self.trusted_flags.append(context_is_trusted)
        for call in calls:
            if call.name in self.blocked:
                return ToolRefusal(tool_name=call.name, reason="blocked_by_rule", content="Not allowed.")
        return None


def _calls() -> tuple:
    return (
        FunctionToolCall(id="call_1", name="read_file", arguments='{"path": "/tmp/a"}'),
        CustomToolCall(id="call_2", name="shell", input="rm -rf /"),
    )


# ── Engine ──


@pytest.mark.asyncio
async def test_no_tool_calls_is_allowed_without_consulting_the_evaluator():
    evaluator = RecordingEvaluator(blocked={"shell"})
    engine = ToolPolicyEngine(evaluator)

    decision = await engine.evaluate(
        (), agent=Agent(name="a"), verdict=TrustVerdict.trusted(), enabled_tool_names=set()
    )

    assert decision == PolicyDecision.allow()
    assert evaluator.seen == []


@pytest.mark.asyncio
async def test_both_variants_are_normalized_before_evaluation():
    evaluator = RecordingEvaluator()
    engine = ToolPolicyEngine(evaluator)

    await engine.evaluate(
        _calls(),
        agent=Agent(name="a"),
        verdict=TrustVerdict(context_is_trusted=False),
        enabled_tool_names={"read_file", "shell"},
    )

    assert evaluator.seen == [[
        NormalizedToolCall(id="call_1", name="read_file", arguments='{"path": "/tmp/a"}', type="function"),
        NormalizedToolCall(id="call_2", name="shell", arguments="rm -rf /", type="custom"),
    ]]
    assert evaluator.trusted_flags == [False]


@pytest.mark.asyncio
async def test_single_denial_blocks_every_call_in_the_turn():
    engine = ToolPolicyEngine(RecordingEvaluator(blocked={"shell"}))

    decision = await engine.evaluate(
        _calls(),
        agent=Agent(name="a"),
        verdict=TrustVerdict.trusted(),
        enabled_tool_names={"read_file", "shell"},
    )

    assert decision.allowed is False
    assert decision.blocked_count == 2
    assert decision.refusal.tool_name == "shell"


def test_apply_replaces_tool_calls_with_refusal():
    message = ChatMessage(role="assistant", content=None, tool_calls=_calls())
    refusal = ToolRefusal(tool_name="shell", reason="untrusted_context", content="I won't run that.")

    delivered = ToolPolicyEngine.apply(message, PolicyDecision.deny(refusal, blocked_count=2))

    assert delivered.role == "assistant"
    assert delivered.tool_calls == ()
    assert delivered.content == "I won't run that."
    assert delivered.refusal == "Tool invocation 'shell' blocked (untrusted_context)"


def test_apply_passes_message_through_when_allowed():
    message = ChatMessage(role="assistant", content="hi")

    assert ToolPolicyEngine.apply(message, PolicyDecision.allow()) is message


# ── Allowlist evaluator ──


def _normalized(name: str) -> NormalizedToolCall:
    return NormalizedToolCall(id=f"call_{name}", name=name, arguments="{}", type="function")


@pytest.mark.asyncio
async def test_allowlist_refuses_tools_not_enabled_by_the_request():
    evaluator = AllowlistToolPolicyEvaluator()

    refusal = await evaluator.evaluate(
        [_normalized("get_weather"), _normalized("delete_db")],
        agent=Agent(name="a"),
        context_is_trusted=True,
        enabled_tool_names={"get_weather"},
    )

    assert refusal.tool_name == "delete_db"
    assert refusal.reason == "tool_not_enabled"


@pytest.mark.asyncio
async def test_allowlist_only_permits_listed_tools_in_untrusted_context():
    evaluator = AllowlistToolPolicyEvaluator(untrusted_context_allowed_tools=["get_weather"])
    enabled = {"get_weather", "send_email"}

    allowed = await evaluator.evaluate(
        [_normalized("get_weather")], agent=Agent(name="a"), context_is_trusted=False, enabled_tool_names=enabled
    )
    refused = await evaluator.evaluate(
        [_normalized("send_email")], agent=Agent(name="a"), context_is_trusted=False, enabled_tool_names=enabled
    )
    trusted = await evaluator.evaluate(
        [_normalized("send_email")], agent=Agent(name="a"), context_is_trusted=True, enabled_tool_names=enabled
    )

    assert allowed is None
    assert refused.reason == "untrusted_context"
    assert trusted is None
