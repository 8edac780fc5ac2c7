"""Chat completion use case — orchestrates one proxied chat completion.

Pipeline per request:

    trust evaluation → model optimization → tool result compression →
    upstream call → relay → tool policy → accounting

Agent resolution and the pre-flight limit check are separate steps so
that callers can turn their failures into plain HTTP errors before any
response (streamed or not) has started.
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

from gateway.application.interfaces import (
    AgentRepository,
    AgentToolRepository,
    ChatProvider,
    LimitChecker,
    ProgressSink,
)
from gateway.application.schemas.chat import ChatCompletionRequest
from gateway.application.services.cost_optimizer import CostOptimizer
from gateway.application.services.message_adapter import (
    apply_updates,
    convert_tool_results_to_toon,
    to_common_format,
    tool_definitions,
)
from gateway.application.services.progress_stream import QueueProgressSink
from gateway.application.services.streaming_relay import RelayOutcome, StreamingRelay
from gateway.application.services.tool_policy import ToolPolicyEngine
from gateway.application.services.trust_evaluator import TrustEvaluator
from gateway.application.services.usage_accountant import UsageAccountant
from gateway.domain.entities import (
    Agent,
    ChatMessage,
    CompressionStats,
    PolicyDecision,
    TrustVerdict,
)
from gateway.domain.exceptions import AgentNotFoundError, LimitExceededError, UpstreamError
from gateway.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("ChatCompletionService")

SSE_DONE = "data: [DONE]\n\n"
DEFAULT_AGENT_NAME = "Default Agent"


def format_sse(data: dict[str, Any]) -> str:
    """Encode one event-stream frame."""
    return f"data: {json.dumps(data)}\n\n"


def error_body(message: str, error_type: str, code: str | int | None = None) -> dict[str, Any]:
    """OpenAI-style error envelope."""
    error: dict[str, Any] = {"message": message, "type": error_type}
    if code is not None:
        error["code"] = code
    return {"error": error}


@dataclass
class _ProxyContext:
    """Per-request state shared by the pipeline stages."""

    provider: ChatProvider
    agent: Agent
    api_key: str
    request: dict[str, Any]
    baseline_model: str
    enabled_tool_names: set[str]
    stream: bool = False
    external_agent_id: str | None = None
    user_id: str | None = None
    model: str = ""
    verdict: TrustVerdict = field(default_factory=TrustVerdict.trusted)
    processed_request: dict[str, Any] = field(default_factory=dict)
    compression: CompressionStats | None = None


class ChatCompletionService:
    """Application service — runs the gateway pipeline around one upstream call.

    This service is provider-agnostic: the upstream ChatProvider is
    passed per request, and every collaborator is injected.
    """

    def __init__(
        self,
        *,
        agent_repository: AgentRepository,
        agent_tool_repository: AgentToolRepository,
        limit_checker: LimitChecker,
        trust_evaluator: TrustEvaluator,
        optimizer: CostOptimizer,
        policy_engine: ToolPolicyEngine,
        accountant: UsageAccountant,
        relay: StreamingRelay | None = None,
        checker_models: dict[str, str] | None = None,
        compress_tool_results_default: bool = False,
    ):
        self._agents = agent_repository
        self._agent_tools = agent_tool_repository
        self._limit_checker = limit_checker
        self._trust = trust_evaluator
        self._optimizer = optimizer
        self._policy = policy_engine
        self._accountant = accountant
        self._relay = relay or StreamingRelay()
        self._checker_models = checker_models or {}
        self._compress_default = compress_tool_results_default

    # ── Pre-flight ──

    async def resolve_agent(self, agent_id: str | None, user_agent: str | None) -> Agent:
        """Resolve an explicit agent, or the default agent for this client.

        Raises:
            AgentNotFoundError: If ``agent_id`` is given but unknown.
        """
        if agent_id:
            agent = await self._agents.get_by_id(agent_id)
            if agent is None:
                raise AgentNotFoundError(agent_id)
        else:
            agent = await self._agents.get_or_create_default(user_agent or DEFAULT_AGENT_NAME)
        logger.info("Agent resolved: id=%s name=%s explicit=%s", agent.id, agent.name, bool(agent_id))
        return agent

    async def check_limits(self, agent: Agent) -> None:
        """Raise ``LimitExceededError`` if the agent may not issue upstream calls."""
        violation = await self._limit_checker.check(agent)
        if violation is not None:
            logger.info("Request blocked for agent=%s: %s", agent.id, violation.reason)
            raise LimitExceededError(violation.reason, violation.message)

    # ── Non-streaming ──

    async def complete(
        self,
        request: ChatCompletionRequest,
        *,
        provider: ChatProvider,
        agent: Agent,
        api_key: str,
        external_agent_id: str | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Execute a non-streaming chat completion and return the client body."""
        ctx = self._new_context(request, provider, agent, api_key, external_agent_id, user_id)
        ctx.stream = False
        await self._prepare_upstream(ctx, sink=None)

        start = time.monotonic()
        try:
            with plog.timed_step(PipelineStage.UPSTREAM, "Upstream completion", model=ctx.model):
                response = await provider.complete(ctx.processed_request, api_key=api_key)
        except UpstreamError as e:
            self._log_upstream_error(ctx, e, phase="complete")
            raise
        duration_ms = int((time.monotonic() - start) * 1000)

        body, outcome = await self._relay.relay_response(
            response,
            evaluate_policy=lambda message: self._evaluate_policy(ctx, message),
            duration_ms=duration_ms,
        )
        await self._finalize(ctx, outcome, response=body)
        return body

    # ── Streaming ──

    async def stream(
        self,
        request: ChatCompletionRequest,
        *,
        provider: ChatProvider,
        agent: Agent,
        api_key: str,
        external_agent_id: str | None = None,
        user_id: str | None = None,
    ) -> AsyncIterator[str]:
        """Execute a streaming chat completion, yielding SSE frames.

        Trust progress frames (if any) come first, then the relayed
        upstream chunks, then ``[DONE]``. An ``UpstreamError`` raised
        before the first frame propagates to the caller; after that it is
        reported as an SSE error frame.
        """
        ctx = self._new_context(request, provider, agent, api_key, external_agent_id, user_id)
        ctx.stream = True
        sink = QueueProgressSink(model=ctx.baseline_model)
        preparation = asyncio.create_task(self._prepare_upstream(ctx, sink))
        preparation.add_done_callback(lambda _: sink.close())
        sent_any = False

        try:
            async for chunk in sink.events():
                sent_any = True
                yield format_sse(chunk)
            await preparation

            plog.step_start(PipelineStage.UPSTREAM, "Upstream stream", model=ctx.model)
            relay = self._relay.relay(
                provider.stream(ctx.processed_request, api_key=api_key),
                model=ctx.model,
                evaluate_policy=lambda message: self._evaluate_policy(ctx, message),
                finalize=lambda outcome: self._finalize(ctx, outcome),
            )
            async with aclosing(relay):
                async for chunk in relay:
                    sent_any = True
                    yield format_sse(chunk)
        except UpstreamError as e:
            self._log_upstream_error(ctx, e, phase="stream")
            if not sent_any:
                raise
            yield format_sse(error_body(e.public_message, "upstream_error", e.http_status))
        finally:
            if not preparation.done():
                preparation.cancel()

        yield SSE_DONE

    # ── Pipeline stages ──

    def _new_context(
        self,
        request: ChatCompletionRequest,
        provider: ChatProvider,
        agent: Agent,
        api_key: str,
        external_agent_id: str | None,
        user_id: str | None,
    ) -> _ProxyContext:
        body = request.to_wire()
        return _ProxyContext(
            provider=provider,
            agent=agent,
            api_key=api_key,
            request=body,
            baseline_model=request.model,
            model=request.model,
            enabled_tool_names={t.name for t in tool_definitions(body.get("tools"))},
            external_agent_id=external_agent_id,
            user_id=user_id,
        )

    async def _prepare_upstream(self, ctx: _ProxyContext, sink: ProgressSink | None) -> None:
        """Trust → optimize → compress; leaves the payload to transmit on ``ctx``."""
        body = ctx.request
        provider_name = ctx.provider.provider_name
        tools = body.get("tools") or []

        definitions = tool_definitions(tools)
        if definitions:
            await self._agent_tools.create_many_if_not_exists(ctx.agent.id, definitions)

        with plog.timed_step(PipelineStage.TRUST, "Evaluating context", agent=ctx.agent.id):
            ctx.verdict = await self._trust.evaluate(
                to_common_format(body["messages"]),
                agent=ctx.agent,
                checker=ctx.provider,
                checker_model=self._checker_models.get(provider_name),
                api_key=ctx.api_key,
                sink=sink,
            )
        messages = apply_updates(body["messages"], ctx.verdict.tool_result_updates)
        plog.detail(
            "Trust verdict",
            trusted=ctx.verdict.context_is_trusted,
            rewritten=len(ctx.verdict.tool_result_updates),
        )

        with plog.timed_step(PipelineStage.OPTIMIZE, "Selecting model", baseline=ctx.baseline_model):
            optimized = await self._optimizer.select_model(
                agent=ctx.agent,
                messages=to_common_format(messages),
                provider=provider_name,
                has_tools=bool(tools),
            )
            ctx.model = optimized or ctx.baseline_model
            await self._optimizer.ensure_price(ctx.baseline_model, provider_name)
            if ctx.model != ctx.baseline_model:
                await self._optimizer.ensure_price(ctx.model, provider_name)
        if optimized:
            logger.info("Optimized model selected for agent=%s: %s → %s", ctx.agent.id, ctx.baseline_model, ctx.model)

        compress = ctx.agent.compress_tool_results
        if compress is None:
            compress = self._compress_default
        if compress:
            messages, before, after = convert_tool_results_to_toon(messages)
            savings = await self._optimizer.input_cost(ctx.model, before - after)
            ctx.compression = CompressionStats(tokens_before=before, tokens_after=after, cost_savings=savings)
            plog.step_complete(PipelineStage.COMPRESS, "Tool results compressed", before=before, after=after)

        processed = {**body, "model": ctx.model, "messages": messages}
        if not tools:
            processed.pop("tools", None)
            processed.pop("tool_choice", None)
        if ctx.stream:
            processed["stream"] = True
            processed["stream_options"] = {**(body.get("stream_options") or {}), "include_usage": True}
        ctx.processed_request = processed

    async def _evaluate_policy(self, ctx: _ProxyContext, message: ChatMessage) -> PolicyDecision:
        decision = await self._policy.evaluate(
            message.tool_calls,
            agent=ctx.agent,
            verdict=ctx.verdict,
            enabled_tool_names=ctx.enabled_tool_names,
        )
        if not decision.allowed:
            plog.step_complete(PipelineStage.POLICY, "Tool calls blocked", count=decision.blocked_count)
        return decision

    async def _finalize(
        self,
        ctx: _ProxyContext,
        outcome: RelayOutcome,
        *,
        response: dict[str, Any] | None = None,
    ) -> None:
        plog.step_complete(
            PipelineStage.RELAY,
            "Turn relayed",
            stream=ctx.stream,
            aborted=outcome.aborted,
            ttfc_ms=outcome.time_to_first_chunk_ms,
            duration_ms=outcome.duration_ms,
        )
        if response is None:
            response = UsageAccountant.response_from_stream(outcome, ctx.model)
        plog.step_start(PipelineStage.ACCOUNTING, "Recording interaction", model=ctx.model)
        record = await self._accountant.record(
            agent=ctx.agent,
            provider=ctx.provider.provider_name,
            request=ctx.request,
            processed_request=ctx.processed_request,
            response=response,
            baseline_model=ctx.baseline_model,
            model=ctx.model,
            outcome=outcome,
            compression=ctx.compression,
            external_agent_id=ctx.external_agent_id,
            user_id=ctx.user_id,
        )
        if record is not None:
            plog.step_complete(PipelineStage.ACCOUNTING, "Interaction recorded", id=record.id, cost=record.cost)

    @staticmethod
    def _log_upstream_error(ctx: _ProxyContext, error: UpstreamError, *, phase: str) -> None:
        plog.step_error(PipelineStage.UPSTREAM, f"Upstream {phase} failed", error=error)
        logger.error(
            "Upstream error: provider=%s agent=%s model=%s phase=%s status=%s message=%s",
            error.provider,
            ctx.agent.id,
            ctx.model,
            phase,
            error.status_code,
            error.message,
        )
