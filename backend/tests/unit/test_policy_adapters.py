"""Unit tests for the default limit checker and trusted-data policy."""

import pytest

from gateway.application.interfaces import InteractionRepository
from gateway.domain.entities import Agent
from gateway.infrastructure.policy import CostLimitChecker, ToolNameTrustedDataPolicy


class FakeInteractionRepository(InteractionRepository):
    def __init__(self, spent: float):
        self.spent = spent
        self.queried: list[str] = []

    async def create(self, record):
        raise NotImplementedError

    async def get_by_id(self, record_id):
        return None

    async def get_all(self, *, agent_id=None, skip=0, limit=100):
        return []

    async def total_cost_for_agent(self, agent_id: str) -> float:
        self.queried.append(agent_id)
        return self.spent


@pytest.mark.asyncio
async def test_no_limit_means_no_lookup():
    repo = FakeInteractionRepository(spent=1000.0)

    assert await CostLimitChecker(repo).check(Agent(name="a")) is None
    assert repo.queried == []


@pytest.mark.asyncio
async def test_limit_reached_blocks():
    agent = Agent(name="a", token_cost_limit=5.0)

    violation = await CostLimitChecker(FakeInteractionRepository(spent=5.0)).check(agent)

    assert violation.reason == "token_cost_limit_exceeded"
    assert "5.00" in violation.message


@pytest.mark.asyncio
async def test_under_limit_proceeds():
    agent = Agent(name="a", token_cost_limit=5.0)

    assert await CostLimitChecker(FakeInteractionRepository(spent=4.99)).check(agent) is None


@pytest.mark.asyncio
async def test_trust_policy_by_tool_name():
    policy = ToolNameTrustedDataPolicy(untrusted_tool_names=["fetch_url"])
    agent = Agent(name="a")

    assert await policy.is_untrusted(agent, "fetch_url", "<html>") is True
    assert await policy.is_untrusted(agent, "get_weather", "{}") is False
    assert await policy.is_untrusted(agent, None, "{}") is False


@pytest.mark.asyncio
async def test_agent_flag_makes_every_tool_result_untrusted():
    policy = ToolNameTrustedDataPolicy()

    assert await policy.is_untrusted(Agent(name="a", consider_context_untrusted=True), "get_weather", "{}") is True
