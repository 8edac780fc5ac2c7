"""Unit tests for the CostOptimizer (model routing and pricing)."""

from datetime import datetime, timedelta, timezone

import pytest

from gateway.application.interfaces import OptimizationRuleRepository, TokenPriceRepository
from gateway.application.services.cost_optimizer import CostOptimizer
from gateway.application.services.default_model_prices import DefaultModelPrices
from gateway.domain.entities import (
    Agent,
    ChatMessage,
    OptimizationRule,
    RuleEntityType,
    RuleType,
    TokenPrice,
    TokenUsage,
)


# ── Fakes ──


class FakeRuleRepository(OptimizationRuleRepository):
    def __init__(self, rules: list[OptimizationRule] | None = None):
        self.rules = rules or []

    async def get_enabled_for_provider(self, provider: str) -> list[OptimizationRule]:
        return [r for r in self.rules if r.provider == provider and r.enabled]

    async def create(self, rule: OptimizationRule) -> OptimizationRule:
        self.rules.append(rule)
        return rule


class FakePriceRepository(TokenPriceRepository):
    def __init__(self, prices: list[TokenPrice] | None = None):
        self.prices = {p.model: p for p in prices or []}

    async def get_by_model(self, model: str) -> TokenPrice | None:
        return self.prices.get(model)

    async def create_if_not_exists(self, price: TokenPrice) -> bool:
        if price.model in self.prices:
            return False
        self.prices[price.model] = price
        return True


def _rule(target: str, *, priority: int = 0, entity_type=RuleEntityType.GLOBAL, entity_id=None,
          rule_type=RuleType.TOOL_PRESENCE, conditions=None, created_at=None, enabled=True) -> OptimizationRule:
    return OptimizationRule(
        entity_type=entity_type,
        entity_id=entity_id,
        rule_type=rule_type,
        conditions={"has_tools": False} if conditions is None else conditions,
        provider="openai",
        target_model=target,
        priority=priority,
        enabled=enabled,
        created_at=created_at or datetime.now(timezone.utc),
    )


def _optimizer(rules=None, prices=None) -> CostOptimizer:
    return CostOptimizer(
        rule_repository=FakeRuleRepository(rules),
        price_repository=FakePriceRepository(prices),
        default_prices=DefaultModelPrices({"gpt-4o": (2.5, 10.0), "gpt-4o-mini": (0.15, 0.6)}),
    )


_MESSAGES = [ChatMessage(role="user", content="Hello there")]


# ── Routing ──


@pytest.mark.asyncio
async def test_higher_priority_agent_rule_beats_catch_all():
    agent = Agent(name="a")
    optimizer = _optimizer(
        rules=[
            _rule("catch-all-model", priority=0, conditions={}),
            _rule("agent-model", priority=10, entity_type=RuleEntityType.AGENT, entity_id=agent.id),
        ]
    )

    model = await optimizer.select_model(agent=agent, messages=_MESSAGES, provider="openai", has_tools=False)

    assert model == "agent-model"


@pytest.mark.asyncio
async def test_equal_priority_goes_to_most_recent_rule():
    now = datetime.now(timezone.utc)
    optimizer = _optimizer(
        rules=[
            _rule("older", priority=5, created_at=now - timedelta(days=1)),
            _rule("newer", priority=5, created_at=now),
        ]
    )

    model = await optimizer.select_model(agent=Agent(name="a"), messages=_MESSAGES, provider="openai", has_tools=False)

    assert model == "newer"


@pytest.mark.asyncio
async def test_rules_out_of_scope_or_condition_do_not_match():
    agent = Agent(name="a", team_ids=["team-1"])
    optimizer = _optimizer(
        rules=[
            _rule("other-agent", priority=9, entity_type=RuleEntityType.AGENT, entity_id="someone-else"),
            _rule("other-team", priority=8, entity_type=RuleEntityType.TEAM, entity_id="team-2"),
            _rule("needs-no-tools", priority=7),
            _rule("disabled", priority=6, conditions={}, enabled=False),
            _rule("team-model", priority=1, entity_type=RuleEntityType.TEAM, entity_id="team-1",
                  conditions={"has_tools": True}),
        ]
    )

    model = await optimizer.select_model(agent=agent, messages=_MESSAGES, provider="openai", has_tools=True)

    assert model == "team-model"


@pytest.mark.asyncio
async def test_content_length_rule_uses_estimated_tokens():
    optimizer = _optimizer(
        rules=[_rule("short-model", rule_type=RuleType.CONTENT_LENGTH, conditions={"max_length": 5})]
    )
    long_messages = [ChatMessage(role="user", content="x" * 100)]

    short = await optimizer.select_model(agent=Agent(name="a"), messages=_MESSAGES, provider="openai", has_tools=False)
    long = await optimizer.select_model(agent=Agent(name="a"), messages=long_messages, provider="openai", has_tools=False)

    assert short == "short-model"
    assert long is None


@pytest.mark.asyncio
async def test_no_rules_selects_nothing():
    model = await _optimizer().select_model(
        agent=Agent(name="a"), messages=_MESSAGES, provider="openai", has_tools=False
    )

    assert model is None


# ── Pricing ──


@pytest.mark.asyncio
async def test_ensure_price_never_overwrites_a_custom_price():
    custom = TokenPrice(model="gpt-4o", provider="openai", price_per_million_input=1.0, price_per_million_output=1.0)
    optimizer = _optimizer(prices=[custom])

    await optimizer.ensure_price("gpt-4o", "openai")
    await optimizer.ensure_price("gpt-4o-mini-2024-07-18", "openai")

    assert (await optimizer.quote("gpt-4o", TokenUsage(1_000_000, 0))).cost == 1.0
    created = optimizer._prices.prices["gpt-4o-mini-2024-07-18"]
    assert (created.price_per_million_input, created.price_per_million_output) == (0.15, 0.6)


@pytest.mark.asyncio
async def test_quote_computes_cost_per_million_tokens():
    optimizer = _optimizer()
    await optimizer.ensure_price("gpt-4o", "openai")

    quote = await optimizer.quote("gpt-4o", TokenUsage(input_tokens=1000, output_tokens=500))

    assert quote.input_tokens == 1000
    assert quote.output_tokens == 500
    assert quote.cost == pytest.approx((1000 * 2.5 + 500 * 10.0) / 1_000_000)


@pytest.mark.asyncio
async def test_quote_without_usage_or_price_has_no_cost():
    optimizer = _optimizer()

    assert (await optimizer.quote("gpt-4o", None)).cost is None
    assert (await optimizer.quote("never-priced", TokenUsage(10, 10))).cost is None


def test_default_prices_prefix_lookup_and_fallback():
    prices = DefaultModelPrices({"gpt-4o": (2.5, 10.0), "gpt-4o-mini": (0.15, 0.6)}, fallback=(50.0, 50.0))

    assert prices.lookup("gpt-4o-mini-2024-07-18") == (0.15, 0.6)
    assert prices.lookup("gpt-4o-2024-08-06") == (2.5, 10.0)
    assert prices.lookup("unknown-model") == (50.0, 50.0)


def test_default_prices_load_from_packaged_yaml():
    from gateway.config import get_settings

    prices = DefaultModelPrices.from_yaml(get_settings().default_prices_file)

    assert prices.lookup("gpt-4o-mini") != prices.lookup("does-not-exist")


def test_default_prices_missing_file_uses_fallback(tmp_path):
    prices = DefaultModelPrices.from_yaml(tmp_path / "missing.yaml")

    assert prices.lookup("gpt-4o") == (50.0, 50.0)
