"""
Pytest configuration for bw-writer tests.

Registers the e2e marker and command-line switch, and provides a scripted
transport so the generation core can be exercised without any network.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Union

import pytest

from bwwriter.models import ProviderConfig
from bwwriter.providers.base import TransportReply
from bwwriter.types import Message
from bwwriter.usage import UsageStats


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run end-to-end tests with real API calls",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real API keys, use --run-e2e to run)"
    )
    config.addinivalue_line("markers", "openai: mark test as requiring OpenAI API key")
    config.addinivalue_line("markers", "anthropic: mark test as requiring Anthropic API key")
    config.addinivalue_line("markers", "gemini: mark test as requiring Gemini API key")


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --run-e2e is passed."""
    if config.getoption("--run-e2e"):
        return

    skip_e2e = pytest.mark.skip(reason="Need --run-e2e option to run end-to-end tests")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


Script = Union[str, Dict[str, Any], None, Exception]


class ScriptedTransport:
    """
    Transport that plays back one scripted reply per call.

    Each entry is raw text (scraped like a real provider's free text), a
    dict (a native structured payload), None (empty reply) or an exception
    (raised from ``send``). The last entry repeats once the script runs out.
    """

    name = "scripted"
    requires_credential = True

    def __init__(self, script: List[Script]):
        self.script = list(script)
        self.calls: List[List[Message]] = []

    async def send(
        self,
        messages: List[Message],
        config: ProviderConfig,
        *,
        api_key: str,
        json_schema: Dict[str, Any],
    ) -> TransportReply:
        self.calls.append(list(messages))
        entry = self.script[min(len(self.calls), len(self.script)) - 1]
        usage = UsageStats(prompt_tokens=10, completion_tokens=5, calls=1)
        if isinstance(entry, Exception):
            raise entry
        if entry is None:
            return TransportReply(data=None, raw="", usage=usage)
        if isinstance(entry, dict):
            return TransportReply(data=entry, raw=str(entry), usage=usage)
        return TransportReply.from_text(entry, usage=usage)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def scripted() -> Callable[..., ScriptedTransport]:
    """Factory: ``scripted(reply1, reply2, ...)``."""

    def factory(*entries: Script) -> ScriptedTransport:
        return ScriptedTransport(list(entries))

    return factory


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def scripted_config() -> ProviderConfig:
    return ProviderConfig(provider="scripted", model="scripted-1", key="SCRIPTED_API_KEY")


@pytest.fixture
def credentials() -> Dict[str, str]:
    return {"SCRIPTED_API_KEY": "sk-test"}

