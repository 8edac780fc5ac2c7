"""Default token prices for models that have no price record yet."""

import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

FALLBACK_PRICE = (50.0, 50.0)
"""Per-million (input, output) price used when neither the file nor a prefix matches."""


class DefaultModelPrices:
    """Per-million-token defaults loaded from a YAML table.

    Exact model names win; otherwise the longest table key that prefixes
    the model (``gpt-4o-mini-2024-07-18`` → ``gpt-4o-mini``) is used.
    """

    def __init__(self, prices: dict[str, tuple[float, float]], fallback: tuple[float, float] = FALLBACK_PRICE):
        self._prices = prices
        self._fallback = fallback

    @classmethod
    def from_yaml(cls, path: str | Path) -> "DefaultModelPrices":
        try:
            with open(path, encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except FileNotFoundError:
            logger.warning("Default model prices not found at %s, using fallback only", path)
            return cls({})

        prices = {
            str(model): (float(entry.get("input", 0.0)), float(entry.get("output", 0.0)))
            for model, entry in (data.get("models") or {}).items()
        }
        fallback_entry = data.get("fallback") or {}
        fallback = (
            float(fallback_entry.get("input", FALLBACK_PRICE[0])),
            float(fallback_entry.get("output", FALLBACK_PRICE[1])),
        )
        return cls(prices, fallback)

    def lookup(self, model: str) -> tuple[float, float]:
        if model in self._prices:
            return self._prices[model]
        matches = [key for key in self._prices if model.startswith(key)]
        if matches:
            return self._prices[max(matches, key=len)]
        return self._fallback
