"""Abstract chat provider interface — port for upstream provider adapters.

Every upstream speaks the OpenAI-compatible chat-completion wire format,
so the port deals in wire payloads (plain dicts) rather than domain
entities: the gateway must reproduce the provider's request, response
and chunk shapes exactly.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any


class ChatProvider(ABC):
    """Port — defines what the application layer needs from any chat provider."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider (e.g. 'openai', 'deepseek')."""
        ...

    @abstractmethod
    async def complete(self, payload: dict[str, Any], *, api_key: str) -> dict[str, Any]:
        """Send a non-streaming chat completion request.

        Args:
            payload: The request body to transmit (``stream`` is forced off).
            api_key: The client's credential, passed through unchanged.

        Returns:
            The provider's chat.completion response body.

        Raises:
            UpstreamError: If the provider returns an error or is unreachable.
        """
        ...

    @abstractmethod
    def stream(self, payload: dict[str, Any], *, api_key: str) -> AsyncIterator[dict[str, Any]]:
        """Send a streaming chat completion request.

        Yields each decoded chat.completion.chunk in arrival order and
        stops at the provider's ``[DONE]`` sentinel. Callers ask for usage
        on the final chunk through ``stream_options``.

        Raises:
            UpstreamError: If the provider returns an error or is unreachable.
        """
        ...
