"""
Token usage and cost tracking for provider calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class UsageStats:
    """
    Tracks token usage and costs for one or more provider calls.

    Attributes:
        prompt_tokens: Number of tokens in the prompt/input.
        completion_tokens: Number of tokens in the completion/output.
        total_tokens: Total tokens used (prompt + completion).
        cost_usd: Estimated cost in USD.
        model: Model name used.
        provider: Provider name (openai, anthropic, google, etc.).
        calls: Number of provider calls aggregated into this record.
    """

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0
    model: str = ""
    provider: str = ""
    calls: int = 0

    def __post_init__(self) -> None:
        """Ensure total_tokens is consistent."""
        if self.total_tokens == 0 and (self.prompt_tokens or self.completion_tokens):
            self.total_tokens = self.prompt_tokens + self.completion_tokens

    def add(self, other: "UsageStats") -> None:
        """Accumulate another record into this one in place."""
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens
        self.total_tokens += other.total_tokens
        self.cost_usd += other.cost_usd
        self.calls += other.calls
        self.model = self.model or other.model
        self.provider = self.provider or other.provider

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for logging/display."""
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "cost_usd": round(self.cost_usd, 6),
            "model": self.model,
            "provider": self.provider,
            "calls": self.calls,
        }


__all__ = ["UsageStats"]
