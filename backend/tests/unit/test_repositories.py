"""Repository tests against a throwaway SQLite database (aiosqlite)."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gateway.domain.entities import (
    InteractionRecord,
    OptimizationRule,
    RuleEntityType,
    RuleType,
    TokenPrice,
    ToolDefinition,
)
from gateway.infrastructure.database.base import Base
from gateway.infrastructure.database.repositories import (
    SQLAlchemyAgentRepository,
    SQLAlchemyAgentToolRepository,
    SQLAlchemyInteractionRepository,
    SQLAlchemyOptimizationRuleRepository,
    SQLAlchemyTokenPriceRepository,
)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


def _record(agent_id: str, cost: float | None, created_at: datetime) -> InteractionRecord:
    return InteractionRecord(
        agent_id=agent_id,
        provider="openai",
        request={"model": "gpt-4o", "messages": [{"role": "user", "content": "Hi"}]},
        processed_request={"model": "gpt-4o-mini", "messages": [{"role": "user", "content": "Hi"}]},
        response={"choices": [{"message": {"role": "assistant", "content": "Hello"}}]},
        model="gpt-4o-mini",
        baseline_model="gpt-4o",
        input_tokens=10,
        output_tokens=2,
        baseline_cost=cost,
        cost=cost,
        created_at=created_at,
    )


# ── Token prices ──


@pytest.mark.asyncio
async def test_create_price_if_not_exists_never_overwrites(session_factory):
    repo = SQLAlchemyTokenPriceRepository(session_factory)

    first = await repo.create_if_not_exists(
        TokenPrice(model="gpt-4o", provider="openai", price_per_million_input=1.0, price_per_million_output=2.0)
    )
    second = await repo.create_if_not_exists(
        TokenPrice(model="gpt-4o", provider="openai", price_per_million_input=50.0, price_per_million_output=50.0)
    )

    assert (first, second) == (True, False)
    price = await repo.get_by_model("gpt-4o")
    assert (price.price_per_million_input, price.price_per_million_output) == (1.0, 2.0)
    assert await repo.get_by_model("unknown") is None


# ── Agents and tools ──


@pytest.mark.asyncio
async def test_default_agent_is_created_once_per_name(session_factory):
    repo = SQLAlchemyAgentRepository(session_factory)

    first = await repo.get_or_create_default("curl/8.4")
    second = await repo.get_or_create_default("curl/8.4")
    other = await repo.get_or_create_default("python-httpx/0.27")

    assert first.id == second.id
    assert first.is_default is True
    assert other.id != first.id
    assert (await repo.get_by_id(first.id)).name == "curl/8.4"
    assert await repo.get_by_id("missing") is None


@pytest.mark.asyncio
async def test_agent_tools_are_inserted_idempotently(session_factory):
    agent = await SQLAlchemyAgentRepository(session_factory).get_or_create_default("client")
    repo = SQLAlchemyAgentToolRepository(session_factory)
    tools = [
        ToolDefinition(name="get_weather", parameters={"type": "object"}),
        ToolDefinition(name="run_sql", type="custom", format={"type": "text"}),
    ]

    assert await repo.create_many_if_not_exists(agent.id, tools) == 2
    assert await repo.create_many_if_not_exists(agent.id, tools + [ToolDefinition(name="search")]) == 1
    assert await repo.create_many_if_not_exists(agent.id, []) == 0


# ── Optimization rules ──


@pytest.mark.asyncio
async def test_enabled_rules_are_filtered_by_provider(session_factory):
    repo = SQLAlchemyOptimizationRuleRepository(session_factory)
    await repo.create(
        OptimizationRule(
            entity_type=RuleEntityType.GLOBAL,
            rule_type=RuleType.TOOL_PRESENCE,
            conditions={"has_tools": False},
            provider="openai",
            target_model="gpt-4o-mini",
            priority=10,
        )
    )
    await repo.create(
        OptimizationRule(
            entity_type=RuleEntityType.GLOBAL,
            rule_type=RuleType.CONTENT_LENGTH,
            conditions={"max_length": 100},
            provider="openai",
            target_model="gpt-4.1-nano",
            enabled=False,
        )
    )
    await repo.create(
        OptimizationRule(
            entity_type=RuleEntityType.TEAM,
            entity_id="team-1",
            rule_type=RuleType.TOOL_PRESENCE,
            provider="deepseek",
            target_model="deepseek-chat",
        )
    )

    rules = await repo.get_enabled_for_provider("openai")

    assert [r.target_model for r in rules] == ["gpt-4o-mini"]
    assert rules[0].rule_type is RuleType.TOOL_PRESENCE
    assert rules[0].conditions == {"has_tools": False}
    assert rules[0].id is not None


# ── Interactions ──


@pytest.mark.asyncio
async def test_interactions_listing_and_cost_total(session_factory):
    repo = SQLAlchemyInteractionRepository(session_factory)
    now = datetime.now(timezone.utc)
    older = await repo.create(_record("agent-1", 0.5, now - timedelta(minutes=5)))
    newer = await repo.create(_record("agent-1", 0.25, now))
    await repo.create(_record("agent-2", None, now))

    assert older.id is not None
    listed = await repo.get_all(agent_id="agent-1")
    assert [r.id for r in listed] == [newer.id, older.id]
    assert len(await repo.get_all()) == 3
    assert await repo.total_cost_for_agent("agent-1") == pytest.approx(0.75)
    assert await repo.total_cost_for_agent("agent-2") == 0.0
    assert await repo.total_cost_for_agent("nobody") == 0.0

    fetched = await repo.get_by_id(older.id)
    assert fetched.processed_request["model"] == "gpt-4o-mini"
    assert fetched.response["choices"][0]["message"]["content"] == "Hello"
    assert await repo.get_by_id(9999) is None
