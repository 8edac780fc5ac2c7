from .agent import AgentModel, AgentToolModel
from .interaction import InteractionModel
from .optimization_rule import OptimizationRuleModel
from .token_price import TokenPriceModel

__all__ = [
    "AgentModel",
    "AgentToolModel",
    "InteractionModel",
    "OptimizationRuleModel",
    "TokenPriceModel",
]
