from .agent_repository import AgentRepository, AgentToolRepository
from .chat_provider import ChatProvider
from .interaction_repository import InteractionRepository
from .limit_checker import LimitChecker
from .optimization_rule_repository import OptimizationRuleRepository
from .progress_sink import ProgressSink
from .token_price_repository import TokenPriceRepository
from .tool_policy_evaluator import ToolPolicyEvaluator
from .trusted_data_policy import TrustedDataPolicy

__all__ = [
    "AgentRepository",
    "AgentToolRepository",
    "ChatProvider",
    "InteractionRepository",
    "LimitChecker",
    "OptimizationRuleRepository",
    "ProgressSink",
    "TokenPriceRepository",
    "ToolPolicyEvaluator",
    "TrustedDataPolicy",
]
