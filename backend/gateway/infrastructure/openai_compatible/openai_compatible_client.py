"""OpenAI-compatible API client — implements the ChatProvider interface.

Talks to any provider exposing ``POST {base_url}/chat/completions`` in
the OpenAI wire format (OpenAI, DeepSeek, ...) using httpx for both
non-streaming and SSE streaming completions. Request bodies are sent as
given; the client's own credential is passed through per call.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from gateway.application.interfaces.chat_provider import ChatProvider
from gateway.domain.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class OpenAICompatibleClient(ChatProvider):
    """Infrastructure adapter — connects to one OpenAI-compatible upstream.

    Uses httpx for async requests. An injected ``http_client`` is reused
    and never closed here; otherwise a client is created per call.
    """

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        *,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._provider_name = provider_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return self._provider_name

    @staticmethod
    def _get_headers(api_key: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout)

    async def complete(self, payload: dict[str, Any], *, api_key: str) -> dict[str, Any]:
        """Send a non-streaming chat completion."""
        body = {**payload, "stream": False}
        body.pop("stream_options", None)
        url = f"{self._base_url}/chat/completions"

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            response = await client.post(url, headers=self._get_headers(api_key), json=body)
            if response.status_code != 200:
                self._raise_provider_error(response.status_code, response.content)

            data = response.json()
            if "error" in data:
                self._raise_body_error(data["error"])
            return data

        except httpx.HTTPError as e:
            raise UpstreamError(self.provider_name, None, f"{type(e).__name__}: {e}") from e
        except json.JSONDecodeError as e:
            raise UpstreamError(self.provider_name, None, "Malformed JSON response") from e
        finally:
            if should_close:
                await client.aclose()

    async def stream(self, payload: dict[str, Any], *, api_key: str) -> AsyncIterator[dict[str, Any]]:
        """Send a streaming chat completion.

        Yields decoded chunks; skips blank lines and ``:`` keepalive
        comments; stops at ``data: [DONE]``.
        """
        body = {**payload, "stream": True}
        url = f"{self._base_url}/chat/completions"

        client = await self._get_client()
        should_close = self._http_client is None

        try:
            async with client.stream(
                "POST", url, headers=self._get_headers(api_key), json=body
            ) as response:
                if response.status_code != 200:
                    content = await response.aread()
                    self._raise_provider_error(response.status_code, content)

                async for line in response.aiter_lines():
                    if not line or line.startswith(":"):
                        continue
                    if not line.startswith("data:"):
                        continue

                    data = line[5:].strip()
                    if data == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError:
                        logger.warning("[%s] Skipping malformed stream line: %s", self.provider_name, data[:200])
                        continue
                    if "error" in chunk:
                        self._raise_body_error(chunk["error"])
                    yield chunk

        except httpx.HTTPError as e:
            raise UpstreamError(self.provider_name, None, f"{type(e).__name__}: {e}") from e
        finally:
            if should_close:
                await client.aclose()

    def _raise_body_error(self, error: Any) -> None:
        """Raise UpstreamError from an ``{"error": ...}`` body returned with HTTP 200."""
        if isinstance(error, dict):
            code = error.get("code")
            message = error.get("message", "Unknown error")
        else:
            code, message = None, str(error)
        raise UpstreamError(
            provider=self.provider_name,
            status_code=code if isinstance(code, int) else None,
            message=message,
        )

    def _raise_provider_error(self, status_code: int, body: bytes) -> None:
        """Raise UpstreamError from a non-200 response body."""
        try:
            data = json.loads(body)
            error = data.get("error", {})
            message = error.get("message", body.decode()) if isinstance(error, dict) else str(error)
        except (json.JSONDecodeError, UnicodeDecodeError, AttributeError):
            message = body.decode(errors="replace")

        raise UpstreamError(
            provider=self.provider_name,
            status_code=status_code,
            message=message,
        )
