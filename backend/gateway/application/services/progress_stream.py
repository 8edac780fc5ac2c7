"""Queue-backed progress sink that turns trust progress into stream chunks."""

import asyncio
import time
from collections.abc import AsyncGenerator
from typing import Any

from gateway.application.interfaces import ProgressSink
from gateway.domain.entities import TrustProgress

SANITIZING_CHUNK_ID = "chatcmpl-sanitizing"
TRUST_BANNER = "Analyzing with Dual LLM:\n\n"


class QueueProgressSink(ProgressSink):
    """Buffers progress chunks until the streaming response drains them.

    Chunks use the regular chat.completion.chunk envelope with a
    placeholder id, so clients render them as assistant text ahead of
    the primary response.
    """

    def __init__(self, model: str) -> None:
        self._model = model
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()

    async def on_start(self) -> None:
        await self._queue.put(self._chunk({"role": "assistant", "content": TRUST_BANNER}))

    async def on_progress(self, progress: TrustProgress) -> None:
        await self._queue.put(self._chunk({"content": progress.render()}))

    def close(self) -> None:
        """Signal that no further progress will be reported."""
        self._queue.put_nowait(None)

    async def events(self) -> AsyncGenerator[dict[str, Any], None]:
        """Yield queued chunks until ``close()`` is called."""
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                break
            yield chunk

    def _chunk(self, delta: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": SANITIZING_CHUNK_ID,
            "object": "chat.completion.chunk",
            "created": int(time.time()),
            "model": self._model,
            "choices": [{"index": 0, "delta": delta, "finish_reason": None, "logprobs": None}],
        }
