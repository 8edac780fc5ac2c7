"""Abstract pre-flight limit check."""

from abc import ABC, abstractmethod

from gateway.domain.entities import Agent, LimitViolation


class LimitChecker(ABC):
    """Port — consulted before any upstream call is issued."""

    @abstractmethod
    async def check(self, agent: Agent) -> LimitViolation | None:
        """Return a violation to block the request, or None to proceed."""
        ...
