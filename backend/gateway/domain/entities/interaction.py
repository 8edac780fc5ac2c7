"""Domain entity for interaction records — the audit unit of one request."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class CompressionStats:
    """Estimated tokens before/after TOON compression and the cost it saved."""

    tokens_before: int
    tokens_after: int
    cost_savings: float | None = None


@dataclass(frozen=True)
class InteractionRecord:
    """One client-visible request/response cycle.

    Holds the original request, the request actually transmitted upstream
    (after sanitization and compression), and the response delivered to
    the client (after tool policy). Written once, never updated.
    """

    agent_id: str
    provider: str
    request: dict[str, Any]
    processed_request: dict[str, Any]
    response: dict[str, Any]
    model: str
    baseline_model: str
    input_tokens: int | None = None
    output_tokens: int | None = None
    baseline_cost: float | None = None
    cost: float | None = None
    toon_tokens_before: int | None = None
    toon_tokens_after: int | None = None
    toon_cost_savings: float | None = None
    blocked_tool_calls: int = 0
    aborted: bool = False
    time_to_first_chunk_ms: int | None = None
    duration_ms: int | None = None
    external_agent_id: str | None = None
    user_id: str | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
