from .agent import Agent
from .chat_message import (
    ChatCompletionResult,
    ChatMessage,
    ContentPart,
    CustomToolCall,
    FunctionToolCall,
    TokenUsage,
    ToolCall,
)
from .interaction import CompressionStats, InteractionRecord
from .optimization_rule import OptimizationRule, RuleEntityType, RuleType
from .policy import LimitViolation, PolicyDecision, ToolRefusal
from .pricing import ModelQuote, TokenPrice
from .tool import NormalizedToolCall, ToolDefinition, normalize_tool_call, parse_tool_arguments
from .trust import TrustProgress, TrustVerdict

__all__ = [
    "Agent",
    "ChatCompletionResult",
    "ChatMessage",
    "ContentPart",
    "CustomToolCall",
    "FunctionToolCall",
    "TokenUsage",
    "ToolCall",
    "CompressionStats",
    "InteractionRecord",
    "OptimizationRule",
    "RuleEntityType",
    "RuleType",
    "LimitViolation",
    "PolicyDecision",
    "ToolRefusal",
    "ModelQuote",
    "TokenPrice",
    "NormalizedToolCall",
    "ToolDefinition",
    "normalize_tool_call",
    "parse_tool_arguments",
    "TrustProgress",
    "TrustVerdict",
]
