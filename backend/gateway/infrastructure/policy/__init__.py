from .allowlist_tool_policy import AllowlistToolPolicyEvaluator
from .cost_limit_checker import CostLimitChecker
from .tool_name_trust_policy import ToolNameTrustedDataPolicy

__all__ = [
    "AllowlistToolPolicyEvaluator",
    "CostLimitChecker",
    "ToolNameTrustedDataPolicy",
]
