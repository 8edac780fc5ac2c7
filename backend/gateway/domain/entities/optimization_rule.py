"""Cost optimization rules (condition → cheaper target model)."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class RuleEntityType(str, Enum):
    GLOBAL = "global"
    AGENT = "agent"
    TEAM = "team"


class RuleType(str, Enum):
    TOOL_PRESENCE = "tool_presence"  # {"has_tools": bool}
    CONTENT_LENGTH = "content_length"  # {"max_length": int}, estimated tokens


@dataclass
class OptimizationRule:
    """Routes matching requests for ``provider`` to ``target_model``.

    Higher ``priority`` wins; ties go to the most recently created rule.
    """

    entity_type: RuleEntityType
    rule_type: RuleType
    provider: str
    target_model: str
    conditions: dict[str, Any] = field(default_factory=dict)
    entity_id: str | None = None  # None for global rules
    priority: int = 0
    enabled: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
