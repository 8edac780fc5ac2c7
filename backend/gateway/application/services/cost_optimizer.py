"""Cost optimizer — rule-based model routing and token pricing."""

import logging

from gateway.application.interfaces import OptimizationRuleRepository, TokenPriceRepository
from gateway.application.services.default_model_prices import DefaultModelPrices
from gateway.application.services.message_adapter import estimate_tokens
from gateway.domain.entities import (
    Agent,
    ChatMessage,
    ModelQuote,
    OptimizationRule,
    RuleEntityType,
    RuleType,
    TokenPrice,
    TokenUsage,
)

logger = logging.getLogger(__name__)


class CostOptimizer:
    """Selects a cheaper target model and prices baseline vs. actual usage.

    Rules are matched by scope (global, the agent itself, or one of the
    agent's teams), then by condition. The highest priority match wins;
    ties go to the most recently created rule.
    """

    def __init__(
        self,
        rule_repository: OptimizationRuleRepository,
        price_repository: TokenPriceRepository,
        default_prices: DefaultModelPrices,
    ):
        self._rules = rule_repository
        self._prices = price_repository
        self._defaults = default_prices

    async def select_model(
        self,
        *,
        agent: Agent,
        messages: list[ChatMessage],
        provider: str,
        has_tools: bool,
    ) -> str | None:
        """Return the target model of the best matching rule, or None."""
        rules = [
            rule
            for rule in await self._rules.get_enabled_for_provider(provider)
            if rule.enabled and self._in_scope(rule, agent)
        ]
        if not rules:
            return None

        rules.sort(key=lambda r: (r.priority, r.created_at), reverse=True)
        content_tokens = sum(estimate_tokens(m.text) for m in messages)
        for rule in rules:
            if self._matches(rule, has_tools=has_tools, content_tokens=content_tokens):
                logger.debug(
                    "Rule %s (%s, priority=%d) matched for agent=%s",
                    rule.id,
                    rule.rule_type.value,
                    rule.priority,
                    agent.id,
                )
                return rule.target_model
        return None

    async def ensure_price(self, model: str, provider: str) -> None:
        """Create a default price for ``model`` unless one already exists."""
        price_in, price_out = self._defaults.lookup(model)
        created = await self._prices.create_if_not_exists(
            TokenPrice(
                model=model,
                provider=provider,
                price_per_million_input=price_in,
                price_per_million_output=price_out,
            )
        )
        if created:
            logger.info("Created default price for model=%s (%s in / %s out per M)", model, price_in, price_out)

    async def quote(self, model: str, usage: TokenUsage | None) -> ModelQuote:
        """Price ``usage`` at ``model``'s rates; cost stays None without usage or price."""
        if usage is None:
            return ModelQuote(model=model)
        price = await self._prices.get_by_model(model)
        cost = price.cost(usage.input_tokens, usage.output_tokens) if price else None
        return ModelQuote(
            model=model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cost=cost,
        )

    async def input_cost(self, model: str, tokens: int) -> float | None:
        """Cost of ``tokens`` input tokens at ``model``'s input rate."""
        price = await self._prices.get_by_model(model)
        if price is None:
            return None
        return tokens * price.price_per_million_input / 1_000_000

    @staticmethod
    def _in_scope(rule: OptimizationRule, agent: Agent) -> bool:
        if rule.entity_type == RuleEntityType.GLOBAL:
            return True
        if rule.entity_type == RuleEntityType.AGENT:
            return rule.entity_id == agent.id
        return rule.entity_id in agent.team_ids

    @staticmethod
    def _matches(rule: OptimizationRule, *, has_tools: bool, content_tokens: int) -> bool:
        conditions = rule.conditions or {}
        if rule.rule_type == RuleType.TOOL_PRESENCE:
            expected = conditions.get("has_tools")
            return expected is None or bool(expected) == has_tools
        if rule.rule_type == RuleType.CONTENT_LENGTH:
            max_length = conditions.get("max_length")
            return max_length is None or content_tokens <= int(max_length)
        return False
