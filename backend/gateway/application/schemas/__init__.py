from .chat import (
    ChatCompletionRequest,
    ChatMessageSchema,
    ContentPartSchema,
    ToolCallSchema,
    ToolSchema,
)
from .interaction import InteractionResponse, InteractionSummaryResponse

__all__ = [
    "ChatCompletionRequest",
    "ChatMessageSchema",
    "ContentPartSchema",
    "ToolCallSchema",
    "ToolSchema",
    "InteractionResponse",
    "InteractionSummaryResponse",
]
