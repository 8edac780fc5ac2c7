"""Pydantic v2 schemas for interaction (audit record) listings."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class InteractionSummaryResponse(BaseModel):
    """One row of the interaction listing."""

    id: int
    agent_id: str
    provider: str
    model: str
    baseline_model: str
    input_tokens: int | None
    output_tokens: int | None
    cost: float | None
    baseline_cost: float | None
    toon_tokens_before: int | None
    toon_tokens_after: int | None
    toon_cost_savings: float | None
    blocked_tool_calls: int
    aborted: bool
    time_to_first_chunk_ms: int | None
    duration_ms: int | None
    external_agent_id: str | None
    user_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class InteractionResponse(InteractionSummaryResponse):
    """Full interaction including the stored request/response bodies."""

    request: dict[str, Any]
    processed_request: dict[str, Any]
    response: dict[str, Any]
