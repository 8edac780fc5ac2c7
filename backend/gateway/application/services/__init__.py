from .chat_completion_service import ChatCompletionService
from .cost_optimizer import CostOptimizer
from .default_model_prices import DefaultModelPrices
from .streaming_relay import StreamingRelay
from .tool_policy import ToolPolicyEngine
from .trust_evaluator import TrustEvaluator
from .usage_accountant import UsageAccountant

__all__ = [
    "ChatCompletionService",
    "CostOptimizer",
    "DefaultModelPrices",
    "StreamingRelay",
    "ToolPolicyEngine",
    "TrustEvaluator",
    "UsageAccountant",
]
