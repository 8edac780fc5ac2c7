"""Pydantic v2 schemas (DTOs) for OpenAI-compatible chat completion requests.

Every model allows extra fields: the gateway relays whatever the client
sends (``response_format``, ``seed``, vendor extensions, ...) and only
validates the parts it reads.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="allow")


# ── Multimodal content parts ──


class ImageUrlDetail(_WireModel):
    """Image URL with optional detail level."""

    url: str
    detail: str | None = None  # "auto" | "low" | "high"


class FileDetail(_WireModel):
    file_data: str | None = None  # data URL
    file_id: str | None = None
    filename: str | None = None


class ContentPartSchema(_WireModel):
    """A single part of a multimodal message content.

    - type="text": contains a text field
    - type="image_url": contains an image_url field with a URL
    - type="file": contains a file reference
    """

    type: str  # "text" | "image_url" | "file"
    text: str | None = None
    image_url: ImageUrlDetail | None = None
    file: FileDetail | None = None


# ── Tool calls ──


class FunctionCallSchema(_WireModel):
    name: str
    arguments: str = ""


class CustomCallSchema(_WireModel):
    name: str
    input: str = ""


class ToolCallSchema(_WireModel):
    """An assistant tool call; exactly one of ``function``/``custom`` is set."""

    id: str
    type: str = Field(default="function", pattern=r"^(function|custom)$")
    function: FunctionCallSchema | None = None
    custom: CustomCallSchema | None = None


# ── Message schema ──


class ChatMessageSchema(_WireModel):
    """A chat message with multimodal and tool support.

    Content can be either:
    - A plain string for text-only messages
    - A list of ContentPartSchema for multimodal messages
    - None for assistant turns that only carry tool calls
    """

    role: str = Field(..., pattern=r"^(system|user|assistant|tool)$")
    content: str | list[ContentPartSchema] | None = None
    name: str | None = None
    tool_calls: list[ToolCallSchema] | None = None
    tool_call_id: str | None = None  # Required when role == "tool"
    refusal: str | None = None


# ── Tool definitions ──


class FunctionDefinitionSchema(_WireModel):
    name: str
    description: str | None = None
    parameters: dict[str, Any] | None = None


class CustomDefinitionSchema(_WireModel):
    name: str
    description: str | None = None
    format: dict[str, Any] | None = None


class ToolSchema(_WireModel):
    type: str = Field(default="function", pattern=r"^(function|custom)$")
    function: FunctionDefinitionSchema | None = None
    custom: CustomDefinitionSchema | None = None

    @model_validator(mode="after")
    def _require_definition(self) -> "ToolSchema":
        if getattr(self, self.type) is None:
            raise ValueError(f"tool of type '{self.type}' requires a '{self.type}' definition")
        return self


# ── Request ──


class ChatCompletionRequest(_WireModel):
    """Request schema for the proxied chat completion endpoints."""

    model: str = Field(..., description="Model identifier, e.g. 'gpt-4o-mini'")
    messages: list[ChatMessageSchema] = Field(
        ..., min_length=1, description="Conversation messages"
    )
    tools: list[ToolSchema] | None = None
    tool_choice: Any = None
    temperature: float | None = Field(
        default=None, ge=0.0, le=2.0, description="Sampling temperature"
    )
    max_tokens: int | None = Field(
        default=None, gt=0, description="Maximum tokens in the response"
    )
    stream: bool = Field(default=False, description="Enable SSE streaming")

    def to_wire(self) -> dict[str, Any]:
        """The body exactly as the client sent it (unset defaults omitted)."""
        return self.model_dump(exclude_unset=True)
