"""Usage accountant — sole writer of interaction records.

Prices the turn twice (requested model = baseline, invoked model =
actual), builds the ``InteractionRecord`` and persists it. Missing usage
never blocks accounting: the record is written with null token and cost
fields instead.
"""

import logging
import time
from typing import Any

from gateway.application.interfaces import InteractionRepository
from gateway.application.services.cost_optimizer import CostOptimizer
from gateway.application.services.message_adapter import message_to_wire
from gateway.application.services.streaming_relay import UNKNOWN_CHUNK_ID, RelayOutcome
from gateway.domain.entities import (
    Agent,
    CompressionStats,
    InteractionRecord,
    ModelQuote,
    TokenUsage,
    ToolCall,
    parse_tool_arguments,
)

logger = logging.getLogger(__name__)


class UsageAccountant:
    """Builds and persists one interaction record per client-visible request.

    Usage:
        accountant = UsageAccountant(interaction_repository, optimizer)
        await accountant.record(
            agent=agent,
            provider="openai",
            request=original_body,
            processed_request=transmitted_body,
            response=client_body,
            baseline_model="gpt-4o",
            model="gpt-4o-mini",
            outcome=outcome,
        )
    """

    def __init__(self, repository: InteractionRepository, optimizer: CostOptimizer):
        self._repo = repository
        self._optimizer = optimizer

    async def record(
        self,
        *,
        agent: Agent,
        provider: str,
        request: dict[str, Any],
        processed_request: dict[str, Any],
        response: dict[str, Any],
        baseline_model: str,
        model: str,
        outcome: RelayOutcome,
        compression: CompressionStats | None = None,
        external_agent_id: str | None = None,
        user_id: str | None = None,
    ) -> InteractionRecord | None:
        """Persist the interaction and log a console summary.

        Returns:
            The persisted record, or None if persistence failed. Failures
            are logged and never propagate: by the time accounting runs the
            response has already been delivered.
        """
        usage = outcome.result.usage
        baseline = await self._quote(baseline_model, usage, agent)
        actual = await self._quote(model, usage, agent)
        if usage is None:
            logger.warning(
                "No token usage for agent=%s model=%s, recording interaction without usage data",
                agent.id,
                model,
            )

        entry = InteractionRecord(
            agent_id=agent.id,
            provider=provider,
            request=request,
            processed_request=processed_request,
            response=response,
            model=model,
            baseline_model=baseline_model,
            input_tokens=usage.input_tokens if usage else None,
            output_tokens=usage.output_tokens if usage else None,
            baseline_cost=baseline.cost,
            cost=actual.cost,
            toon_tokens_before=compression.tokens_before if compression else None,
            toon_tokens_after=compression.tokens_after if compression else None,
            toon_cost_savings=compression.cost_savings if compression else None,
            blocked_tool_calls=outcome.decision.blocked_count,
            aborted=outcome.aborted,
            time_to_first_chunk_ms=outcome.time_to_first_chunk_ms,
            duration_ms=outcome.duration_ms,
            external_agent_id=external_agent_id,
            user_id=user_id,
        )

        try:
            saved = await self._repo.create(entry)
        except Exception:
            logger.exception(
                "Failed to persist interaction for agent=%s model=%s phase=accounting",
                agent.id,
                model,
            )
            return None

        # Console summary
        cost_str = f"${actual.cost:.6f}" if actual.cost is not None else "n/a"
        baseline_str = f"${baseline.cost:.6f}" if baseline.cost is not None else "n/a"
        tokens_str = f"{usage.input_tokens}/{usage.output_tokens}" if usage else "n/a"
        tps_str = ""
        if usage and usage.output_tokens and outcome.duration_ms:
            tps_str = f" {usage.output_tokens / (outcome.duration_ms / 1000):.1f}tok/s"
        blocked_str = f" blocked={outcome.decision.blocked_count}" if outcome.decision.blocked_count else ""
        aborted_str = " aborted" if outcome.aborted else ""

        logger.info(
            "LLM [%s] agent=%s model=%s tokens=%s cost=%s baseline=%s %sms%s%s%s",
            provider,
            agent.id,
            model,
            tokens_str,
            cost_str,
            baseline_str,
            outcome.duration_ms if outcome.duration_ms is not None else "?",
            tps_str,
            blocked_str,
            aborted_str,
        )

        return saved

    async def _quote(self, model: str, usage: TokenUsage | None, agent: Agent) -> ModelQuote:
        """Price the turn; the record is still written with a null cost if pricing fails."""
        try:
            return await self._optimizer.quote(model, usage)
        except Exception:
            logger.exception(
                "Failed to price interaction for agent=%s model=%s phase=accounting",
                agent.id,
                model,
            )
            return ModelQuote(
                model=model,
                input_tokens=usage.input_tokens if usage else None,
                output_tokens=usage.output_tokens if usage else None,
            )

    @staticmethod
    def response_from_stream(outcome: RelayOutcome, model: str) -> dict[str, Any]:
        """Reassemble a chat.completion body from a streamed turn.

        For aborted streams, function-call arguments are stored parsed when
        they are valid JSON and as the raw fragment string otherwise.
        """
        result = outcome.result
        message = message_to_wire(result.message)
        if outcome.aborted and result.message.tool_calls:
            message["tool_calls"] = [
                _with_parsed_arguments(call_wire, call)
                for call_wire, call in zip(message["tool_calls"], result.message.tool_calls)
            ]

        body: dict[str, Any] = {
            "id": result.response_id or UNKNOWN_CHUNK_ID,
            "object": "chat.completion",
            "created": result.created or int(time.time()),
            "model": model,
            "choices": [
                {
                    "index": 0,
                    "message": message,
                    "finish_reason": result.finish_reason,
                    "logprobs": None,
                }
            ],
        }
        if result.usage is not None:
            body["usage"] = {
                "prompt_tokens": result.usage.input_tokens,
                "completion_tokens": result.usage.output_tokens,
                "total_tokens": result.usage.total_tokens,
            }
        return body


def _with_parsed_arguments(call_wire: dict[str, Any], call: ToolCall) -> dict[str, Any]:
    if call.type != "function":
        return call_wire
    return {**call_wire, "function": {**call_wire["function"], "arguments": parse_tool_arguments(call.arguments)}}
