"""
Static model pricing and cost calculation.

Prices are USD per one million tokens. Unknown model identifiers resolve
to the default entry so cost accounting never fails on a new model name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "deepseek-chat"


@dataclass(frozen=True)
class ModelPricing:
    """Per-model price entry.

    Attributes:
        input_per_million: USD per 1M prompt tokens
        output_per_million: USD per 1M completion tokens
    """

    input_per_million: float
    output_per_million: float


MODEL_PRICING: Dict[str, ModelPricing] = {
    "deepseek-chat": ModelPricing(input_per_million=0.27, output_per_million=1.10),
    "deepseek-reasoner": ModelPricing(input_per_million=0.55, output_per_million=2.19),
    "gpt-4o": ModelPricing(input_per_million=2.50, output_per_million=10.00),
    "gpt-4o-mini": ModelPricing(input_per_million=0.15, output_per_million=0.60),
}


def get_pricing(model: str) -> ModelPricing:
    """Return the price entry for ``model``, falling back to the default."""
    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        logger.debug("No pricing for model %r, using %s", model, DEFAULT_MODEL)
        pricing = MODEL_PRICING[DEFAULT_MODEL]
    return pricing


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """
    Calculate the USD cost of one completion.

    Args:
        model: Model identifier used for the call
        input_tokens: Prompt tokens reported by the upstream service
        output_tokens: Completion tokens reported by the upstream service

    Returns:
        Cost in USD. Negative token counts count as zero.
    """
    pricing = get_pricing(model)
    input_tokens = max(0, input_tokens or 0)
    output_tokens = max(0, output_tokens or 0)
    input_cost = input_tokens / 1_000_000 * pricing.input_per_million
    output_cost = output_tokens / 1_000_000 * pricing.output_per_million
    return input_cost + output_cost
