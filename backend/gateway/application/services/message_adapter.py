"""Message adapter — converts between wire payloads and domain messages.

The wire shape is the OpenAI-compatible chat-completion format shared by
every supported provider. All functions are pure: wire payloads passed in
are never mutated, rewritten messages are fresh dicts.
"""

import json
import math
from typing import Any

from gateway.application.services.toon_encoder import encode_toon
from gateway.domain.entities import (
    ChatMessage,
    ContentPart,
    CustomToolCall,
    FunctionToolCall,
    TokenUsage,
    ToolCall,
    ToolDefinition,
)


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 characters per token)."""
    return math.ceil(len(text) / 4)


# ── Wire → domain ──


def to_common_format(messages: list[dict[str, Any]]) -> list[ChatMessage]:
    """Convert wire messages into domain ``ChatMessage`` entities."""
    return [message_from_wire(message) for message in messages]


def message_from_wire(message: dict[str, Any]) -> ChatMessage:
    content = message.get("content")
    if isinstance(content, list):
        content = tuple(
            ContentPart(
                type=part.get("type", "text"),
                text=part.get("text"),
                image_url=part.get("image_url"),
                file_data=part.get("file"),
            )
            for part in content
        )
    return ChatMessage(
        role=message["role"],
        content=content,
        tool_call_id=message.get("tool_call_id"),
        name=message.get("name"),
        tool_calls=tuple(tool_call_from_wire(tc) for tc in message.get("tool_calls") or ()),
        refusal=message.get("refusal"),
    )


def tool_call_from_wire(tool_call: dict[str, Any]) -> ToolCall:
    if tool_call.get("type") == "custom":
        custom = tool_call.get("custom") or {}
        return CustomToolCall(
            id=tool_call.get("id") or "",
            name=custom.get("name") or "",
            input=custom.get("input") or "",
        )
    function = tool_call.get("function") or {}
    return FunctionToolCall(
        id=tool_call.get("id") or "",
        name=function.get("name") or "",
        arguments=function.get("arguments") or "",
    )


def tool_definitions(tools: list[dict[str, Any]] | None) -> list[ToolDefinition]:
    """Extract name/description/schema from the request's tool definitions."""
    definitions: list[ToolDefinition] = []
    for tool in tools or ():
        if tool.get("type") == "custom":
            custom = tool.get("custom") or {}
            definitions.append(
                ToolDefinition(
                    name=custom["name"],
                    type="custom",
                    description=custom.get("description") or "",
                    format=custom.get("format"),
                )
            )
        else:
            function = tool.get("function") or {}
            definitions.append(
                ToolDefinition(
                    name=function["name"],
                    type="function",
                    description=function.get("description") or "",
                    parameters=function.get("parameters"),
                )
            )
    return definitions


def get_usage_tokens(usage: dict[str, Any] | None) -> TokenUsage | None:
    """Map provider usage (``prompt_tokens``/``completion_tokens``) to ``TokenUsage``."""
    if not usage:
        return None
    return TokenUsage(
        input_tokens=usage.get("prompt_tokens") or 0,
        output_tokens=usage.get("completion_tokens") or 0,
    )


# ── Domain → wire ──


_PAYLOAD_KEY = {"function": "arguments", "custom": "input"}


def tool_call_to_wire(call: ToolCall) -> dict[str, Any]:
    return {
        "id": call.id,
        "type": call.type,
        call.type: {"name": call.name, _PAYLOAD_KEY[call.type]: call.payload},
    }


def _content_to_wire(content: str | tuple[ContentPart, ...] | None) -> Any:
    if content is None or isinstance(content, str):
        return content
    parts: list[dict[str, Any]] = []
    for part in content:
        wire: dict[str, Any] = {"type": part.type}
        if part.text is not None:
            wire["text"] = part.text
        if part.image_url is not None:
            wire["image_url"] = part.image_url
        if part.file_data is not None:
            wire["file"] = part.file_data
        parts.append(wire)
    return parts


def message_to_wire(message: ChatMessage) -> dict[str, Any]:
    """Convert a domain message back into its wire dict."""
    wire: dict[str, Any] = {"role": message.role, "content": _content_to_wire(message.content)}
    if message.role == "assistant":
        wire["refusal"] = message.refusal
        if message.tool_calls:
            wire["tool_calls"] = [tool_call_to_wire(tc) for tc in message.tool_calls]
    if message.name is not None:
        wire["name"] = message.name
    if message.tool_call_id is not None:
        wire["tool_call_id"] = message.tool_call_id
    return wire


# ── Rewrites ──


def apply_updates(
    messages: list[dict[str, Any]], updates: dict[str, str]
) -> list[dict[str, Any]]:
    """Replace the content of tool results named in ``updates`` (keyed by tool_call_id).

    Returns a new list; untouched messages are passed through as-is.
    """
    if not updates:
        return list(messages)
    result: list[dict[str, Any]] = []
    for message in messages:
        call_id = message.get("tool_call_id")
        if message.get("role") == "tool" and call_id in updates:
            result.append({**message, "content": updates[call_id]})
        else:
            result.append(message)
    return result


def convert_tool_results_to_toon(
    messages: list[dict[str, Any]],
) -> tuple[list[dict[str, Any]], int, int]:
    """Re-encode JSON tool results as TOON where that is shorter.

    Returns:
        (messages, tokens_before, tokens_after) where the token counts are
        estimates over the tool results that were considered.
    """
    result: list[dict[str, Any]] = []
    tokens_before = 0
    tokens_after = 0
    for message in messages:
        content = message.get("content")
        if message.get("role") != "tool" or not isinstance(content, str):
            result.append(message)
            continue

        before = estimate_tokens(content)
        tokens_before += before
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, (dict, list)):
            encoded = encode_toon(parsed)
            after = estimate_tokens(encoded)
            if after < before:
                tokens_after += after
                result.append({**message, "content": encoded})
                continue

        tokens_after += before
        result.append(message)
    return result, tokens_before, tokens_after
