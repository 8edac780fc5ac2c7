"""Domain entities for chat messages — framework-independent, multimodal.

Messages are immutable once they are part of a conversation history.
Rewriting a message (e.g. sanitizing a tool result) produces a new
instance via ``dataclasses.replace``.
"""

from dataclasses import dataclass
from typing import Literal, Union


@dataclass(frozen=True)
class ContentPart:
    """A single content part within a multimodal message.

    Supports text, image_url, and file types, following the OpenAI-compatible
    multimodal format.
    """

    type: str  # "text" | "image_url" | "file"
    text: str | None = None
    image_url: dict[str, str] | None = None  # {"url": "...", "detail": "..."}
    file_data: dict[str, str] | None = None  # {"file_data": "data:...;base64,...", "filename": "..."}


@dataclass(frozen=True)
class FunctionToolCall:
    """A function tool call; ``arguments`` is a JSON-encoded string."""

    id: str
    name: str
    arguments: str = ""
    type: Literal["function"] = "function"

    @property
    def payload(self) -> str:
        return self.arguments


@dataclass(frozen=True)
class CustomToolCall:
    """A custom (free-form input) tool call."""

    id: str
    name: str
    input: str = ""
    type: Literal["custom"] = "custom"

    @property
    def payload(self) -> str:
        return self.input


ToolCall = Union[FunctionToolCall, CustomToolCall]


@dataclass(frozen=True)
class ChatMessage:
    """A single message in a chat conversation.

    Content can be a plain string (text-only) or a tuple of ContentPart
    objects for multimodal input. Assistant messages may carry tool calls
    and/or a refusal. Tool messages carry the ``tool_call_id`` of the call
    that produced them.
    """

    role: str  # "system" | "user" | "assistant" | "tool"
    content: str | tuple[ContentPart, ...] | None = ""
    tool_call_id: str | None = None  # Required when role == "tool"
    name: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    refusal: str | None = None

    @property
    def text(self) -> str:
        """Concatenated text of the message, ignoring non-text parts."""
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "".join(part.text or "" for part in self.content if part.type == "text")


@dataclass(frozen=True)
class TokenUsage:
    """Token usage reported by a provider, in the uniform ``{input, output}`` shape."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class ChatCompletionResult:
    """Assembled result of one upstream call (streamed or not)."""

    message: ChatMessage
    finish_reason: str | None = None
    usage: TokenUsage | None = None
    response_id: str | None = None
    created: int | None = None
