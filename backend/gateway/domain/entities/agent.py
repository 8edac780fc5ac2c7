"""Domain entity for gateway agents (the profile a request is attributed to)."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class Agent:
    """An agent groups requests for policy, trust, and cost limits.

    Agents are either addressed explicitly by id or resolved from the
    client's user-agent string, in which case a default agent is created
    on first sight.
    """

    name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    is_default: bool = False
    consider_context_untrusted: bool = False
    compress_tool_results: bool | None = None  # None → use the gateway default
    token_cost_limit: float | None = None  # USD; None means unlimited
    team_ids: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
