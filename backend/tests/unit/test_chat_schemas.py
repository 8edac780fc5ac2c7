"""Unit tests for the chat completion request schemas."""

import pytest
from pydantic import ValidationError

from gateway.application.schemas import ChatCompletionRequest

_MESSAGES = [{"role": "user", "content": "Hello"}]


def test_tool_without_matching_definition_is_rejected():
    with pytest.raises(ValidationError, match="requires a 'function' definition"):
        ChatCompletionRequest.model_validate(
            {"model": "gpt-4o", "messages": _MESSAGES, "tools": [{"type": "function"}]}
        )

    with pytest.raises(ValidationError, match="requires a 'custom' definition"):
        ChatCompletionRequest.model_validate(
            {"model": "gpt-4o", "messages": _MESSAGES, "tools": [{"type": "custom", "function": {"name": "x"}}]}
        )


def test_function_and_custom_tools_are_accepted():
    request = ChatCompletionRequest.model_validate(
        {
            "model": "gpt-4o",
            "messages": _MESSAGES,
            "tools": [
                {"type": "function", "function": {"name": "get_weather"}},
                {"type": "custom", "custom": {"name": "run_sql"}},
            ],
        }
    )

    assert [t.type for t in request.tools] == ["function", "custom"]


def test_extra_request_fields_are_kept_on_the_wire():
    request = ChatCompletionRequest.model_validate({"model": "gpt-4o", "messages": _MESSAGES, "seed": 7})

    assert request.to_wire()["seed"] == 7
