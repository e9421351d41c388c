"""
Transport abstraction for provider-agnostic structured generation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..models import ProviderConfig
from ..parser import extract_structured
from ..types import Message
from ..usage import UsageStats

JsonSchema = Dict[str, Any]

# Name of the function/tool offered to providers that support forced tool calls.
EXTRACT_TOOL_NAME = "extract"
EXTRACT_TOOL_DESCRIPTION = "Return the requested data as a JSON object."


class ProviderError(RuntimeError):
    """Raised when a transport cannot complete a request (recoverable)."""


@dataclass
class TransportReply:
    """
    What a transport hands back to the generation core.

    ``data`` is the best-effort structured payload (None when nothing could be
    extracted), ``raw`` the provider's raw text or tool arguments for
    diagnostics, and ``error`` a short description when the call itself failed.
    """

    data: Optional[Dict[str, Any]] = None
    raw: str = ""
    usage: UsageStats = field(default_factory=UsageStats)
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.data

    @classmethod
    def failed(cls, error: str) -> "TransportReply":
        return cls(data=None, raw="", error=error)

    @classmethod
    def from_text(cls, text: Optional[str], usage: Optional[UsageStats] = None) -> "TransportReply":
        """Build a reply by scraping a JSON object out of free text."""
        return cls(data=extract_structured(text), raw=text or "", usage=usage or UsageStats())


@runtime_checkable
class Transport(Protocol):
    """
    Interface every provider transport must satisfy.

    Transports shape the provider-specific request, issue it, and extract a
    structured payload. Recoverable failures (network, provider errors,
    unparseable output) come back as an empty reply; only non-recoverable
    problems (missing SDK, missing credential) are raised.
    """

    name: str
    requires_credential: bool

    async def send(
        self,
        messages: List[Message],
        config: ProviderConfig,
        *,
        api_key: str,
        json_schema: JsonSchema,
    ) -> TransportReply:
        ...


__all__ = [
    "Transport",
    "TransportReply",
    "ProviderError",
    "JsonSchema",
    "EXTRACT_TOOL_NAME",
    "EXTRACT_TOOL_DESCRIPTION",
]
