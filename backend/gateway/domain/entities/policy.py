"""Tool invocation policy decisions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToolRefusal:
    """Why a set of tool calls was blocked.

    ``reason`` is a short machine-assigned code; ``content`` is the
    free-text assistant reply shown to the end user instead of the calls.
    """

    tool_name: str
    reason: str
    content: str

    @property
    def refusal_text(self) -> str:
        return f"Tool invocation '{self.tool_name}' blocked ({self.reason})"


@dataclass(frozen=True)
class PolicyDecision:
    """Either allow (calls pass through) or deny with a refusal substitute.

    A denial is a controlled substitution, never an error.
    """

    allowed: bool
    refusal: ToolRefusal | None = None
    blocked_count: int = 0

    @classmethod
    def allow(cls) -> "PolicyDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, refusal: ToolRefusal, blocked_count: int) -> "PolicyDecision":
        return cls(allowed=False, refusal=refusal, blocked_count=blocked_count)


@dataclass(frozen=True)
class LimitViolation:
    """Pre-flight block: machine reason plus the message shown to the user."""

    reason: str
    message: str
