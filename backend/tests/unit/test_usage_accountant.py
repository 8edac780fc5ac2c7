"""Unit tests for the UsageAccountant."""

from dataclasses import replace

import pytest

from gateway.application.interfaces import (
    InteractionRepository,
    OptimizationRuleRepository,
    TokenPriceRepository,
)
from gateway.application.services.cost_optimizer import CostOptimizer
from gateway.application.services.default_model_prices import DefaultModelPrices
from gateway.application.services.streaming_relay import RelayOutcome
from gateway.application.services.usage_accountant import UsageAccountant
from gateway.domain.entities import (
    Agent,
    ChatCompletionResult,
    ChatMessage,
    CompressionStats,
    FunctionToolCall,
    InteractionRecord,
    PolicyDecision,
    TokenPrice,
    TokenUsage,
)


# ── Fakes ──


class FakeInteractionRepository(InteractionRepository):
    def __init__(self, fail: bool = False):
        self.records: list[InteractionRecord] = []
        self._fail = fail

    async def create(self, record: InteractionRecord) -> InteractionRecord:
        if self._fail:
            raise RuntimeError("database unavailable")
        saved = replace(record, id=len(self.records) + 1)
        self.records.append(saved)
        return saved

    async def get_by_id(self, record_id):
        return next((r for r in self.records if r.id == record_id), None)

    async def get_all(self, *, agent_id=None, skip=0, limit=100):
        return list(reversed(self.records))[skip : skip + limit]

    async def total_cost_for_agent(self, agent_id):
        return sum(r.cost or 0.0 for r in self.records if r.agent_id == agent_id)


class FakePriceRepository(TokenPriceRepository):
    def __init__(self, prices: list[TokenPrice]):
        self.prices = {p.model: p for p in prices}

    async def get_by_model(self, model):
        return self.prices.get(model)

    async def create_if_not_exists(self, price):
        return False


class NoRules(OptimizationRuleRepository):
    async def get_enabled_for_provider(self, provider):
        return []

    async def create(self, rule):
        return rule


def _accountant(repo: FakeInteractionRepository) -> UsageAccountant:
    prices = FakePriceRepository(
        [
            TokenPrice(model="big", provider="openai", price_per_million_input=10.0, price_per_million_output=30.0),
            TokenPrice(model="small", provider="openai", price_per_million_input=1.0, price_per_million_output=2.0),
        ]
    )
    optimizer = CostOptimizer(NoRules(), prices, DefaultModelPrices({}))
    return UsageAccountant(repo, optimizer)


def _outcome(usage: TokenUsage | None = TokenUsage(1000, 100), **kwargs) -> RelayOutcome:
    message = kwargs.pop("message", ChatMessage(role="assistant", content="Hi"))
    return RelayOutcome(
        result=ChatCompletionResult(message=message, finish_reason="stop", usage=usage, response_id="chatcmpl-1"),
        decision=kwargs.pop("decision", PolicyDecision.allow()),
        **kwargs,
    )


async def _record(accountant, outcome, **overrides):
    params = dict(
        agent=Agent(name="a", id="agent-1"),
        provider="openai",
        request={"model": "big", "messages": []},
        processed_request={"model": "small", "messages": []},
        response={"choices": []},
        baseline_model="big",
        model="small",
        outcome=outcome,
    )
    params.update(overrides)
    return await accountant.record(**params)


# ── Tests ──


@pytest.mark.asyncio
async def test_record_prices_baseline_and_actual_model():
    repo = FakeInteractionRepository()

    saved = await _record(
        _accountant(repo),
        _outcome(duration_ms=500, time_to_first_chunk_ms=40),
        compression=CompressionStats(tokens_before=300, tokens_after=120, cost_savings=0.00018),
        external_agent_id="ext-7",
        user_id="user-3",
    )

    assert len(repo.records) == 1
    assert saved.id == 1
    assert saved.baseline_cost == pytest.approx((1000 * 10.0 + 100 * 30.0) / 1_000_000)
    assert saved.cost == pytest.approx((1000 * 1.0 + 100 * 2.0) / 1_000_000)
    assert (saved.input_tokens, saved.output_tokens) == (1000, 100)
    assert (saved.toon_tokens_before, saved.toon_tokens_after) == (300, 120)
    assert saved.toon_cost_savings == pytest.approx(0.00018)
    assert saved.processed_request["model"] == "small"
    assert saved.external_agent_id == "ext-7"
    assert saved.user_id == "user-3"
    assert saved.time_to_first_chunk_ms == 40


@pytest.mark.asyncio
async def test_same_model_gives_equal_costs():
    repo = FakeInteractionRepository()

    saved = await _record(_accountant(repo), _outcome(), model="big")

    assert saved.cost == saved.baseline_cost


@pytest.mark.asyncio
async def test_missing_usage_still_records_with_null_fields():
    repo = FakeInteractionRepository()

    saved = await _record(_accountant(repo), _outcome(usage=None, aborted=True))

    assert saved.input_tokens is None
    assert saved.output_tokens is None
    assert saved.cost is None
    assert saved.baseline_cost is None
    assert saved.aborted is True


@pytest.mark.asyncio
async def test_persistence_failure_is_swallowed_and_logged(caplog):
    saved = await _record(_accountant(FakeInteractionRepository(fail=True)), _outcome())

    assert saved is None
    assert "Failed to persist interaction" in caplog.text


class FailingPriceRepository(FakePriceRepository):
    def __init__(self):
        super().__init__([])

    async def get_by_model(self, model):
        raise RuntimeError("price table unavailable")


@pytest.mark.asyncio
async def test_pricing_failure_still_records_with_null_costs(caplog):
    repo = FakeInteractionRepository()
    optimizer = CostOptimizer(NoRules(), FailingPriceRepository(), DefaultModelPrices({}))

    saved = await _record(UsageAccountant(repo, optimizer), _outcome())

    assert len(repo.records) == 1
    assert (saved.input_tokens, saved.output_tokens) == (1000, 100)
    assert saved.cost is None
    assert saved.baseline_cost is None
    assert "Failed to price interaction for agent=agent-1 model=small phase=accounting" in caplog.text


def test_response_from_stream_rebuilds_completion_body():
    outcome = _outcome(message=ChatMessage(role="assistant", content="Hello"))

    body = UsageAccountant.response_from_stream(outcome, "small")

    assert body["object"] == "chat.completion"
    assert body["id"] == "chatcmpl-1"
    assert body["model"] == "small"
    assert body["choices"][0]["message"]["content"] == "Hello"
    assert body["usage"] == {"prompt_tokens": 1000, "completion_tokens": 100, "total_tokens": 1100}


def test_aborted_stream_keeps_malformed_arguments_raw():
    message = ChatMessage(
        role="assistant",
        content=None,
        tool_calls=(
            FunctionToolCall(id="call_1", name="ok", arguments='{"a": 1}'),
            FunctionToolCall(id="call_2", name="cut", arguments='{"a": '),
        ),
    )

    body = UsageAccountant.response_from_stream(_outcome(usage=None, message=message, aborted=True), "small")

    calls = body["choices"][0]["message"]["tool_calls"]
    assert calls[0]["function"]["arguments"] == {"a": 1}
    assert calls[1]["function"]["arguments"] == '{"a": '
    assert "usage" not in body
