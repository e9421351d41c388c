"""Transport implementations for the supported generative-text providers."""

from typing import Dict

from .anthropic_provider import AnthropicTransport
from .base import ProviderError, Transport, TransportReply
from .gemini_provider import GeminiTransport
from .openai_provider import COMPATIBLE_BASE_URLS, OpenAITransport
from .stubs import LocalTransport


def default_transports() -> Dict[str, Transport]:
    """Map every supported provider name to a transport instance."""
    openai_transport = OpenAITransport()
    transports: Dict[str, Transport] = {name: openai_transport for name in COMPATIBLE_BASE_URLS}
    transports["anthropic"] = AnthropicTransport()
    transports["google"] = GeminiTransport()
    transports["local"] = LocalTransport()
    return transports


__all__ = [
    "Transport",
    "TransportReply",
    "ProviderError",
    "OpenAITransport",
    "AnthropicTransport",
    "GeminiTransport",
    "LocalTransport",
    "default_transports",
]
