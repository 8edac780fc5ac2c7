"""Tool definitions and the normalized view of a tool call."""

import json
from dataclasses import dataclass
from typing import Any

from .chat_message import ToolCall


@dataclass(frozen=True)
class ToolDefinition:
    """A tool the client declared on a request.

    Only the name matters for allowlisting; ``parameters`` (function tools)
    or ``format`` (custom tools) are persisted as-is and never validated.
    """

    name: str
    type: str = "function"  # "function" | "custom"
    description: str = ""
    parameters: dict[str, Any] | None = None
    format: dict[str, Any] | None = None

    @property
    def schema(self) -> dict[str, Any]:
        return (self.parameters if self.type == "function" else self.format) or {}


@dataclass(frozen=True)
class NormalizedToolCall:
    """Function and custom tool calls reduced to a single shape."""

    id: str
    name: str
    arguments: str
    type: str


def normalize_tool_call(call: ToolCall) -> NormalizedToolCall:
    """Collapse either tool-call variant into a ``NormalizedToolCall``."""
    return NormalizedToolCall(
        id=call.id,
        name=call.name,
        arguments=call.payload,
        type=call.type,
    )


def parse_tool_arguments(arguments: str) -> Any:
    """Decode a JSON argument payload, keeping the raw string if it is not valid JSON."""
    try:
        return json.loads(arguments)
    except (json.JSONDecodeError, TypeError):
        return arguments
