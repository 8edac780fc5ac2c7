"""Token pricing and cost quotes."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class TokenPrice:
    """Per-million-token price for one model (USD)."""

    model: str
    provider: str
    price_per_million_input: float
    price_per_million_output: float
    id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (
            input_tokens * self.price_per_million_input
            + output_tokens * self.price_per_million_output
        ) / 1_000_000


@dataclass(frozen=True)
class ModelQuote:
    """Token counts and resulting cost for one model; cost is None until usage is known."""

    model: str
    input_tokens: int | None = None
    output_tokens: int | None = None
    cost: float | None = None
