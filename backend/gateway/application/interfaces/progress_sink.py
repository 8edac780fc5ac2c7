"""Optional receiver for trust evaluation progress."""

from abc import ABC, abstractmethod

from gateway.domain.entities import TrustProgress


class ProgressSink(ABC):
    """Port — notified while the checker model sanitizes tool results.

    Streaming requests pass a sink that turns these into client-visible
    chunks; non-streaming requests pass none.
    """

    @abstractmethod
    async def on_start(self) -> None:
        """Sanitization is about to begin."""
        ...

    @abstractmethod
    async def on_progress(self, progress: TrustProgress) -> None:
        ...
