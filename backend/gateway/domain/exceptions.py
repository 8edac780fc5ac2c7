"""Domain-specific exceptions — framework-independent."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class AgentNotFoundError(EntityNotFoundError):
    """Raised when an explicitly addressed agent does not exist."""

    def __init__(self, agent_id: str):
        super().__init__("Agent", agent_id)


class LimitExceededError(Exception):
    """Raised by the pre-flight limit check; no upstream call is made.

    ``reason`` is the machine code reported to the client,
    ``message`` the user-facing explanation.
    """

    def __init__(self, reason: str, message: str):
        self.reason = reason
        self.message = message
        super().__init__(f"{reason}: {message}")


class UpstreamError(Exception):
    """Raised when an upstream chat provider call fails.

    Provider-agnostic — works for OpenAI, DeepSeek and any other
    OpenAI-compatible endpoint. ``status_code`` is None when the failure
    happened below HTTP (connect error, timeout, malformed stream).
    """

    public_message = "Upstream provider request failed"

    def __init__(self, provider: str, status_code: int | None, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")

    @property
    def http_status(self) -> int:
        """Status to return to the client: passed through when it is a 4xx/5xx."""
        if self.status_code is not None and 400 <= self.status_code <= 599:
            return self.status_code
        return 502
