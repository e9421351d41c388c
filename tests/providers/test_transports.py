"""
Tests for provider transports with fake SDK clients.

No network: each transport's ``_client`` (or the SDK entry point) is replaced
by a SimpleNamespace fake that records the request and returns a canned
response. SDK client classes are swapped for recorders to check that
clients are cached per transport and closed on shutdown.
"""

from __future__ import annotations

import json
import types

import pytest

from bwwriter.models import ProviderConfig
from bwwriter.providers import (
    AnthropicTransport,
    GeminiTransport,
    LocalTransport,
    OpenAITransport,
    default_transports,
)
from bwwriter.providers.base import EXTRACT_TOOL_NAME, TransportReply
from bwwriter.types import Message, Role

SCHEMA = {
    "type": "object",
    "properties": {"title": {"type": "string"}},
    "required": ["title"],
}

MESSAGES = [
    Message(role=Role.SYSTEM, content="You are an editor."),
    Message(role=Role.USER, content="Write a title."),
    Message(role=Role.SYSTEM, content="Your previous reply could not be used."),
]

OPENAI_TOOLS = ProviderConfig(
    provider="openai", model="gpt-4o", key="OPENAI_API_KEY", tool_calls_supported=True, price_input=5.0, price_output=15.0
)
OPENAI_JSON = ProviderConfig(provider="mistral", model="mistral-small-latest", json_output_supported=True)
PLAIN = ProviderConfig(provider="perplexity", model="sonar")


class FakeOpenAIClient:
    def __init__(self, response=None, error=None):
        self.requests = []
        self._response = response
        self._error = error
        self.chat = types.SimpleNamespace(completions=types.SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self._error:
            raise self._error
        return self._response


def openai_response(content=None, arguments=None, prompt_tokens=100, completion_tokens=20):
    tool_calls = None
    if arguments is not None:
        tool_calls = [types.SimpleNamespace(function=types.SimpleNamespace(name=EXTRACT_TOOL_NAME, arguments=arguments))]
    message = types.SimpleNamespace(content=content, tool_calls=tool_calls)
    return types.SimpleNamespace(
        choices=[types.SimpleNamespace(message=message)],
        usage=types.SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


def patch_client(monkeypatch, transport, fake):
    monkeypatch.setattr(transport, "_client", lambda config, api_key: fake)


# =============================================================================
# OpenAI
# =============================================================================


class TestOpenAIBuildRequest:
    def test_forced_tool_call(self):
        request = OpenAITransport().build_request(MESSAGES, OPENAI_TOOLS, SCHEMA)

        assert request["model"] == "gpt-4o"
        assert request["messages"][0] == {"role": "system", "content": "You are an editor."}
        assert len(request["messages"]) == 3
        assert request["tools"][0]["function"]["name"] == EXTRACT_TOOL_NAME
        assert request["tools"][0]["function"]["parameters"] == SCHEMA
        assert request["tool_choice"] == {"type": "function", "function": {"name": EXTRACT_TOOL_NAME}}
        assert "response_format" not in request

    def test_json_mode(self):
        request = OpenAITransport().build_request(MESSAGES, OPENAI_JSON, SCHEMA)
        assert request["response_format"] == {"type": "json_object"}
        assert "tools" not in request

    def test_plain_text(self):
        request = OpenAITransport().build_request(MESSAGES, PLAIN, SCHEMA)
        assert "tools" not in request
        assert "response_format" not in request
        assert request["temperature"] == PLAIN.temperature
        assert request["max_tokens"] == PLAIN.max_tokens


class TestOpenAISend:
    @pytest.mark.asyncio
    async def test_tool_call_arguments(self, monkeypatch):
        transport = OpenAITransport()
        fake = FakeOpenAIClient(openai_response(arguments='{"title": "Tides"}'))
        patch_client(monkeypatch, transport, fake)

        reply = await transport.send(MESSAGES, OPENAI_TOOLS, api_key="sk", json_schema=SCHEMA)

        assert reply.data == {"title": "Tides"}
        assert reply.usage.prompt_tokens == 100
        assert reply.usage.completion_tokens == 20
        assert reply.usage.cost_usd == pytest.approx(100 / 1e6 * 5.0 + 20 / 1e6 * 15.0)
        assert len(fake.requests) == 1

    @pytest.mark.asyncio
    async def test_text_content_scraped(self, monkeypatch):
        transport = OpenAITransport()
        patch_client(
            monkeypatch, transport, FakeOpenAIClient(openai_response(content='Sure: ```json\n{"title": "Tides"}\n```'))
        )

        reply = await transport.send(MESSAGES, PLAIN, api_key="sk", json_schema=SCHEMA)

        assert reply.data == {"title": "Tides"}

    @pytest.mark.asyncio
    async def test_bad_arguments_fall_back_to_content(self, monkeypatch):
        transport = OpenAITransport()
        response = openai_response(content='{"title": "From content"}', arguments="not json at all")
        patch_client(monkeypatch, transport, FakeOpenAIClient(response))

        reply = await transport.send(MESSAGES, OPENAI_TOOLS, api_key="sk", json_schema=SCHEMA)

        assert reply.data == {"title": "From content"}

    @pytest.mark.asyncio
    async def test_api_error_is_an_empty_reply(self, monkeypatch):
        transport = OpenAITransport()
        patch_client(monkeypatch, transport, FakeOpenAIClient(error=RuntimeError("503 upstream")))

        reply = await transport.send(MESSAGES, OPENAI_TOOLS, api_key="sk", json_schema=SCHEMA)

        assert reply.is_empty
        assert "503 upstream" in reply.error

    @pytest.mark.asyncio
    async def test_no_choices(self, monkeypatch):
        transport = OpenAITransport()
        response = types.SimpleNamespace(choices=[], usage=None)
        patch_client(monkeypatch, transport, FakeOpenAIClient(response))

        reply = await transport.send(MESSAGES, OPENAI_TOOLS, api_key="sk", json_schema=SCHEMA)

        assert reply.is_empty
        assert reply.error == "no choices returned"


class RecordingSDKClient:
    """Stands in for an SDK client class; remembers construction and closing."""

    created = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.closed = False
        RecordingSDKClient.created.append(self)

    async def close(self):
        self.closed = True


@pytest.fixture
def recording_sdk_client():
    RecordingSDKClient.created = []
    return RecordingSDKClient


class TestOpenAIClientCache:
    def test_client_reused_per_provider_key_and_endpoint(self, monkeypatch, recording_sdk_client):
        openai = pytest.importorskip("openai")
        monkeypatch.setattr(openai, "AsyncOpenAI", recording_sdk_client)
        transport = OpenAITransport()
        groq = ProviderConfig(provider="groq", model="llama3-8b-8192")

        first = transport._client(OPENAI_TOOLS, "sk-1")

        assert transport._client(OPENAI_TOOLS, "sk-1") is first
        assert transport._client(OPENAI_TOOLS, "sk-2") is not first
        assert transport._client(groq, "sk-1").kwargs["base_url"] == "https://api.groq.com/openai/v1"
        assert len(recording_sdk_client.created) == 3

    @pytest.mark.asyncio
    async def test_aclose_closes_cached_clients(self, monkeypatch, recording_sdk_client):
        openai = pytest.importorskip("openai")
        monkeypatch.setattr(openai, "AsyncOpenAI", recording_sdk_client)
        transport = OpenAITransport()
        transport._client(OPENAI_TOOLS, "sk-1")
        transport._client(OPENAI_JSON, "sk-1")

        await transport.aclose()

        assert all(client.closed for client in recording_sdk_client.created)
        assert transport._client(OPENAI_TOOLS, "sk-1") is recording_sdk_client.created[-1]
        assert len(recording_sdk_client.created) == 3


# =============================================================================
# Anthropic
# =============================================================================


ANTHROPIC_TOOLS = ProviderConfig(provider="anthropic", model="claude-3-haiku-20240307", tool_calls_supported=True)


class FakeAnthropicClient:
    def __init__(self, response):
        self.requests = []
        self._response = response
        self.messages = types.SimpleNamespace(create=self._create)

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        return self._response


def anthropic_response(*blocks):
    return types.SimpleNamespace(
        content=list(blocks), usage=types.SimpleNamespace(input_tokens=30, output_tokens=7)
    )


class TestAnthropicTransport:
    def test_system_messages_folded(self):
        request = AnthropicTransport().build_request(MESSAGES, ANTHROPIC_TOOLS, SCHEMA)

        assert request["system"] == "You are an editor.\n\nYour previous reply could not be used."
        assert request["messages"] == [{"role": "user", "content": "Write a title."}]
        assert request["tools"][0]["input_schema"] == SCHEMA
        assert request["tool_choice"] == {"type": "tool", "name": EXTRACT_TOOL_NAME}

    def test_no_tools_without_support(self):
        config = ProviderConfig(provider="anthropic", model="claude-2.1")
        request = AnthropicTransport().build_request(MESSAGES[1:2], config, SCHEMA)
        assert "tools" not in request
        assert "system" not in request

    @pytest.mark.asyncio
    async def test_tool_use_block(self, monkeypatch):
        transport = AnthropicTransport()
        fake = FakeAnthropicClient(
            anthropic_response(
                types.SimpleNamespace(type="text", text="Here you go"),
                types.SimpleNamespace(type="tool_use", input={"title": "Tides"}),
            )
        )
        patch_client(monkeypatch, transport, fake)

        reply = await transport.send(MESSAGES, ANTHROPIC_TOOLS, api_key="sk", json_schema=SCHEMA)

        assert reply.data == {"title": "Tides"}
        assert json.loads(reply.raw) == {"title": "Tides"}
        assert reply.usage.prompt_tokens == 30

    @pytest.mark.asyncio
    async def test_text_blocks_joined_and_scraped(self, monkeypatch):
        transport = AnthropicTransport()
        fake = FakeAnthropicClient(
            anthropic_response(
                types.SimpleNamespace(type="text", text='{"title": '),
                types.SimpleNamespace(type="text", text='"Tides"}'),
            )
        )
        patch_client(monkeypatch, transport, fake)

        reply = await transport.send(MESSAGES, ANTHROPIC_TOOLS, api_key="sk", json_schema=SCHEMA)

        assert reply.data == {"title": "Tides"}

    @pytest.mark.asyncio
    async def test_client_reused_and_closed(self, monkeypatch, recording_sdk_client):
        anthropic = pytest.importorskip("anthropic")
        monkeypatch.setattr(anthropic, "AsyncAnthropic", recording_sdk_client)
        transport = AnthropicTransport()

        client = transport._client(ANTHROPIC_TOOLS, "sk-ant")
        assert transport._client(ANTHROPIC_TOOLS, "sk-ant") is client
        await transport.aclose()

        assert client.closed
        assert len(recording_sdk_client.created) == 1


# =============================================================================
# Gemini
# =============================================================================


class TestGeminiTransport:
    @pytest.mark.asyncio
    async def test_send_with_fake_client(self, monkeypatch):
        genai = pytest.importorskip("google.genai")
        captured = {}

        class FakeModels:
            async def generate_content(self, *, model, contents, config):
                captured.update(model=model, contents=contents, config=config)
                return types.SimpleNamespace(
                    text='{"title": "Tides"}',
                    usage_metadata=types.SimpleNamespace(prompt_token_count=12, candidates_token_count=4),
                )

        class FakeClient:
            def __init__(self, api_key):
                captured["api_key"] = api_key
                self.aio = types.SimpleNamespace(models=FakeModels())

        monkeypatch.setattr(genai, "Client", FakeClient)
        config = ProviderConfig(provider="google", model="gemini-1.5-flash-latest", json_output_supported=True)

        reply = await GeminiTransport().send(MESSAGES, config, api_key="g-key", json_schema=SCHEMA)

        assert reply.data == {"title": "Tides"}
        assert reply.usage.total_tokens == 16
        assert captured["api_key"] == "g-key"
        assert len(captured["contents"]) == 1
        assert "You are an editor." in str(captured["config"].system_instruction)
        assert captured["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_client_reused_across_sends(self, monkeypatch):
        genai = pytest.importorskip("google.genai")
        created = []

        class FakeModels:
            async def generate_content(self, *, model, contents, config):
                return types.SimpleNamespace(text='{"title": "Tides"}', usage_metadata=None)

        class FakeClient:
            def __init__(self, api_key):
                created.append(api_key)
                self.aio = types.SimpleNamespace(models=FakeModels())

        monkeypatch.setattr(genai, "Client", FakeClient)
        config = ProviderConfig(provider="google", model="gemini-1.5-flash-latest")
        transport = GeminiTransport()

        for _ in range(3):
            await transport.send(MESSAGES, config, api_key="g-key", json_schema=SCHEMA)
        await transport.send(MESSAGES, config, api_key="other-key", json_schema=SCHEMA)
        await transport.aclose()

        assert created == ["g-key", "other-key"]


# =============================================================================
# Local and registry
# =============================================================================


class TestLocalTransport:
    @pytest.mark.asyncio
    async def test_schema_sample(self):
        config = ProviderConfig(provider="local", model="local")
        reply = await LocalTransport().send(MESSAGES, config, api_key="", json_schema=SCHEMA)
        assert reply.data == {"title": "mock title"}
        assert reply.usage.calls == 1

    def test_no_credential_needed(self):
        assert LocalTransport.requires_credential is False


def test_default_transports_cover_presets():
    from bwwriter.models import PRESETS

    transports = default_transports()
    for name, config in PRESETS.items():
        assert config.provider in transports, name
    assert transports["groq"] is transports["openai"]
    assert isinstance(transports["local"], LocalTransport)


def test_transport_reply_helpers():
    assert TransportReply().is_empty
    failed = TransportReply.failed("boom")
    assert failed.is_empty and failed.error == "boom"
    assert TransportReply.from_text(None).is_empty


@pytest.mark.asyncio
async def test_generation_client_closes_each_transport_once():
    from bwwriter.generation import GenerationClient

    closed = []

    class ClosingTransport(LocalTransport):
        async def aclose(self):
            closed.append(self)

    shared = ClosingTransport()
    client = GenerationClient(
        transports={"openai": shared, "groq": shared, "local": LocalTransport()}, environ={}
    )

    await client.aclose()

    assert closed == [shared]
