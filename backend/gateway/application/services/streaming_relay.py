"""Streaming relay — forwards upstream chunks and assembles the full turn.

Text, refusal, role and finish-reason chunks are forwarded to the client
as they arrive. Tool-call deltas are withheld: their argument fragments
are concatenated per index and, once the tool policy has ruled on the
complete calls, replayed to the client as whole calls or replaced by a
single refusal chunk.

Finalization (policy + accounting) runs exactly once on every exit path
that got past the first upstream event: normal end, upstream failure
mid-stream, and client disconnect.
"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gateway.application.services.message_adapter import (
    get_usage_tokens,
    message_from_wire,
    message_to_wire,
)
from gateway.application.services.tool_policy import ToolPolicyEngine
from gateway.domain.entities import (
    ChatCompletionResult,
    ChatMessage,
    CustomToolCall,
    FunctionToolCall,
    PolicyDecision,
    TokenUsage,
    ToolCall,
    ToolRefusal,
)

logger = logging.getLogger(__name__)

BLOCKED_CHUNK_ID = "chatcmpl-blocked"
UNKNOWN_CHUNK_ID = "chatcmpl-unknown"
POLICY_UNAVAILABLE = "policy_unavailable"


class RelayState(str, Enum):
    INIT = "init"
    STREAMING = "streaming"
    NORMAL_FINISH = "normal_finish"
    ABORTED = "aborted"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class RelayOutcome:
    """Everything the accountant needs once a turn is over."""

    result: ChatCompletionResult  # message as delivered to the client (post-policy)
    decision: PolicyDecision
    aborted: bool = False
    time_to_first_chunk_ms: int | None = None
    duration_ms: int | None = None


PolicyCallback = Callable[[ChatMessage], Awaitable[PolicyDecision]]
FinalizeCallback = Callable[[RelayOutcome], Awaitable[None]]


class StreamAccumulator:
    """Accumulation buffer for one streamed assistant turn."""

    def __init__(self) -> None:
        self.state = RelayState.INIT
        self.response_id: str | None = None
        self.created: int | None = None
        self.finish_reason: str | None = None
        self.usage: TokenUsage | None = None
        self.first_chunk_at: float | None = None
        self._started_at = time.monotonic()
        self._content: list[str] = []
        self._refusal: list[str] = []
        self._tool_calls: dict[int, dict[str, str]] = {}

    def add(self, chunk: dict[str, Any]) -> bool:
        """Apply one chunk; return True if it should be forwarded verbatim."""
        if self.state == RelayState.INIT:
            self.state = RelayState.STREAMING
            self.first_chunk_at = time.monotonic()
            self.response_id = chunk.get("id")
            self.created = chunk.get("created")

        if chunk.get("usage"):
            self.usage = get_usage_tokens(chunk["usage"])

        choices = chunk.get("choices") or []
        if not choices:
            return False
        choice = choices[0]
        delta = choice.get("delta") or {}
        finish_reason = choice.get("finish_reason")
        if finish_reason:
            self.finish_reason = finish_reason
            self.state = RelayState.NORMAL_FINISH

        if delta.get("tool_calls"):
            for tool_delta in delta["tool_calls"]:
                self._merge_tool_delta(tool_delta)
            return False

        if delta.get("content"):
            self._content.append(delta["content"])
        if delta.get("refusal"):
            self._refusal.append(delta["refusal"])
        return bool("content" in delta or "refusal" in delta or delta.get("role") or finish_reason)

    def _merge_tool_delta(self, tool_delta: dict[str, Any]) -> None:
        index = tool_delta.get("index", 0)
        record = self._tool_calls.get(index)
        if record is None:
            record = {"id": tool_delta.get("id") or "", "type": "function", "name": "", "payload": ""}
            self._tool_calls[index] = record

        if tool_delta.get("id"):
            record["id"] = tool_delta["id"]
        if tool_delta.get("type"):
            record["type"] = tool_delta["type"]
        body = tool_delta.get("custom") if record["type"] == "custom" else tool_delta.get("function")
        body = body or {}
        if body.get("name"):
            record["name"] = body["name"]
        fragment = body.get("input") if record["type"] == "custom" else body.get("arguments")
        if fragment:
            record["payload"] += fragment

    @property
    def tool_calls(self) -> list[tuple[int, ToolCall]]:
        calls: list[tuple[int, ToolCall]] = []
        for index in sorted(self._tool_calls):
            record = self._tool_calls[index]
            if record["type"] == "custom":
                call: ToolCall = CustomToolCall(id=record["id"], name=record["name"], input=record["payload"])
            else:
                call = FunctionToolCall(id=record["id"], name=record["name"], arguments=record["payload"])
            calls.append((index, call))
        return calls

    @property
    def time_to_first_chunk_ms(self) -> int | None:
        if self.first_chunk_at is None:
            return None
        return int((self.first_chunk_at - self._started_at) * 1000)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started_at) * 1000)

    def build_message(self) -> ChatMessage:
        return ChatMessage(
            role="assistant",
            content="".join(self._content) or None,
            refusal="".join(self._refusal) or None,
            tool_calls=tuple(call for _, call in self.tool_calls),
        )


class StreamingRelay:
    """Relays one upstream call to the client (streamed or not)."""

    @staticmethod
    async def _decide(message: ChatMessage, evaluate_policy: PolicyCallback) -> PolicyDecision:
        """Run the policy callback; tool calls are blocked if it fails."""
        try:
            return await evaluate_policy(message)
        except Exception:
            logger.exception("Tool policy evaluation failed, blocking %d tool call(s)", len(message.tool_calls))
            if not message.tool_calls:
                return PolicyDecision.allow()
            refusal = ToolRefusal(
                tool_name=message.tool_calls[0].name,
                reason=POLICY_UNAVAILABLE,
                content="I could not verify that my tool calls are allowed, so I did not make them.",
            )
            return PolicyDecision.deny(refusal, blocked_count=len(message.tool_calls))

    async def relay(
        self,
        chunks: AsyncGenerator[dict[str, Any], None],
        *,
        model: str,
        evaluate_policy: PolicyCallback,
        finalize: FinalizeCallback,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield client-visible chunk dicts in upstream arrival order.

        If ``chunks`` raises before producing anything, the error propagates
        and ``finalize`` is never called. Otherwise ``finalize`` runs exactly
        once, shielded from cancellation.
        """
        acc = StreamAccumulator()
        decision: PolicyDecision | None = None
        failed_before_first_event = False
        try:
            async with aclosing(chunks):
                async for chunk in chunks:
                    if acc.add(chunk):
                        yield chunk

            decision = await self._decide(acc.build_message(), evaluate_policy)
            for frame in self._tail_frames(acc, decision, model):
                yield frame
        except Exception:
            if acc.state == RelayState.INIT:
                failed_before_first_event = True
            raise
        finally:
            if not failed_before_first_event:
                if acc.state != RelayState.NORMAL_FINISH:
                    acc.state = RelayState.ABORTED
                    logger.info("Stream for model=%s ended before a terminal chunk", model)
                await asyncio.shield(self._finish(acc, decision, evaluate_policy, finalize))

    async def _finish(
        self,
        acc: StreamAccumulator,
        decision: PolicyDecision | None,
        evaluate_policy: PolicyCallback,
        finalize: FinalizeCallback,
    ) -> None:
        aborted = acc.state == RelayState.ABORTED
        acc.state = RelayState.FINALIZING
        try:
            message = acc.build_message()
            if decision is None:
                decision = await self._decide(message, evaluate_policy)
            outcome = RelayOutcome(
                result=ChatCompletionResult(
                    message=ToolPolicyEngine.apply(message, decision),
                    finish_reason="stop" if not decision.allowed else acc.finish_reason,
                    usage=acc.usage,
                    response_id=acc.response_id,
                    created=acc.created,
                ),
                decision=decision,
                aborted=aborted,
                time_to_first_chunk_ms=acc.time_to_first_chunk_ms,
                duration_ms=acc.elapsed_ms,
            )
            await finalize(outcome)
        except Exception:
            logger.exception("Failed to finalize streamed interaction")
        finally:
            acc.state = RelayState.DONE

    @staticmethod
    def _tail_frames(
        acc: StreamAccumulator, decision: PolicyDecision, model: str
    ) -> list[dict[str, Any]]:
        """Chunks emitted after the upstream stream ended: replayed or refused tool calls."""
        tool_calls = acc.tool_calls
        if not tool_calls:
            return []

        if not decision.allowed and decision.refusal is not None:
            return [
                {
                    "id": BLOCKED_CHUNK_ID,
                    "object": "chat.completion.chunk",
                    "created": int(time.time()),
                    "model": model,
                    "choices": [
                        {
                            "index": 0,
                            "delta": {
                                "role": "assistant",
                                "refusal": decision.refusal.refusal_text,
                                "content": decision.refusal.content,
                            },
                            "finish_reason": "stop",
                            "logprobs": None,
                        }
                    ],
                }
            ]

        base = {
            "id": acc.response_id or UNKNOWN_CHUNK_ID,
            "object": "chat.completion.chunk",
            "created": acc.created or int(time.time()),
            "model": model,
        }
        frames: list[dict[str, Any]] = []
        for index, call in tool_calls:
            payload_key = "input" if call.type == "custom" else "arguments"
            id_delta = {
                "index": index,
                "id": call.id,
                "type": call.type,
                call.type: {"name": call.name, payload_key: ""},
            }
            args_delta = {"index": index, "id": call.id, call.type: {payload_key: call.payload}}
            for tool_delta in (id_delta, args_delta):
                frames.append(
                    {
                        **base,
                        "choices": [
                            {
                                "index": 0,
                                "delta": {"tool_calls": [tool_delta]},
                                "finish_reason": None,
                                "logprobs": None,
                            }
                        ],
                    }
                )
        return frames

    async def relay_response(
        self,
        response: dict[str, Any],
        *,
        evaluate_policy: PolicyCallback,
        duration_ms: int | None = None,
    ) -> tuple[dict[str, Any], RelayOutcome]:
        """Apply tool policy to a complete (non-streaming) response.

        Returns the body to send to the client (unchanged unless denied)
        and the outcome to account.
        """
        choices = response.get("choices") or []
        first = choices[0] if choices else {}
        message = message_from_wire(first.get("message") or {"role": "assistant"})
        decision = await self._decide(message, evaluate_policy)

        delivered = ToolPolicyEngine.apply(message, decision)
        finish_reason = first.get("finish_reason")
        if not decision.allowed:
            finish_reason = "stop"
            response = {
                **response,
                "choices": [
                    {
                        "index": 0,
                        "message": message_to_wire(delivered),
                        "finish_reason": finish_reason,
                        "logprobs": None,
                    }
                ],
            }

        outcome = RelayOutcome(
            result=ChatCompletionResult(
                message=delivered,
                finish_reason=finish_reason,
                usage=get_usage_tokens(response.get("usage")),
                response_id=response.get("id"),
                created=response.get("created"),
            ),
            decision=decision,
            duration_ms=duration_ms,
        )
        return response, outcome
