from .agent_repository import SQLAlchemyAgentRepository, SQLAlchemyAgentToolRepository
from .interaction_repository import SQLAlchemyInteractionRepository
from .optimization_rule_repository import SQLAlchemyOptimizationRuleRepository
from .token_price_repository import SQLAlchemyTokenPriceRepository

__all__ = [
    "SQLAlchemyAgentRepository",
    "SQLAlchemyAgentToolRepository",
    "SQLAlchemyInteractionRepository",
    "SQLAlchemyOptimizationRuleRepository",
    "SQLAlchemyTokenPriceRepository",
]
