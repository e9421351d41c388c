"""
Cost estimation for provider calls.

Prices come from the ProviderConfig (USD per 1M tokens). Configurations
without prices are treated as free and logged once per model.
"""

from __future__ import annotations

import logging
from typing import Set

from .models import ProviderConfig
from .usage import UsageStats

logger = logging.getLogger(__name__)

_warned_models: Set[str] = set()


def calculate_cost(config: ProviderConfig, prompt_tokens: int, completion_tokens: int) -> float:
    """
    Calculate cost in USD for given token usage.

    Returns:
        Estimated cost in USD. Returns 0.0 when the configuration carries no
        pricing information.
    """
    if config.price_input is None or config.price_output is None:
        if config.model not in _warned_models:
            _warned_models.add(config.model)
            logger.warning(
                "No pricing for model '%s' (provider %s); reporting $0.00",
                config.model,
                config.provider,
            )
        return 0.0

    prompt_cost = (prompt_tokens / 1_000_000) * config.price_input
    completion_cost = (completion_tokens / 1_000_000) * config.price_output
    return prompt_cost + completion_cost


def usage_for(config: ProviderConfig, prompt_tokens: int, completion_tokens: int) -> UsageStats:
    """Build a priced UsageStats record for a single call."""
    return UsageStats(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        cost_usd=calculate_cost(config, prompt_tokens, completion_tokens),
        model=config.model,
        provider=config.provider,
        calls=1,
    )


__all__ = ["calculate_cost", "usage_for"]
