"""Default pre-flight limit: accumulated interaction cost per agent."""

import logging

from gateway.application.interfaces import InteractionRepository, LimitChecker
from gateway.domain.entities import Agent, LimitViolation

logger = logging.getLogger(__name__)

TOKEN_COST_LIMIT_EXCEEDED = "token_cost_limit_exceeded"


class CostLimitChecker(LimitChecker):
    """Blocks an agent once its recorded spend reaches ``token_cost_limit``."""

    def __init__(self, interaction_repository: InteractionRepository):
        self._interactions = interaction_repository

    async def check(self, agent: Agent) -> LimitViolation | None:
        if agent.token_cost_limit is None:
            return None
        spent = await self._interactions.total_cost_for_agent(agent.id)
        if spent < agent.token_cost_limit:
            return None
        logger.info(
            "Cost limit reached for agent=%s: spent=%.6f limit=%.6f",
            agent.id,
            spent,
            agent.token_cost_limit,
        )
        return LimitViolation(
            reason=TOKEN_COST_LIMIT_EXCEEDED,
            message=(
                f"Token cost limit of ${agent.token_cost_limit:.2f} reached for this agent. "
                "Raise the limit or wait for it to be reset."
            ),
        )
