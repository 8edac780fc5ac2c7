from .base import Base
from .session import engine, async_session_factory, get_session_factory
from .models import (
    AgentModel,
    AgentToolModel,
    InteractionModel,
    OptimizationRuleModel,
    TokenPriceModel,
)

__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "get_session_factory",
    "AgentModel",
    "AgentToolModel",
    "InteractionModel",
    "OptimizationRuleModel",
    "TokenPriceModel",
]
