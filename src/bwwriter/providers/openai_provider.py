"""
OpenAI transport, also used for OpenAI-compatible hosted providers.

Perplexity, Groq, Mistral, OpenRouter and Cohere all expose the Chat
Completions wire contract, so they share this transport with a different
``base_url``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import ProviderConfigurationError
from ..models import ProviderConfig
from ..pricing import usage_for
from ..types import Message
from .base import (
    EXTRACT_TOOL_DESCRIPTION,
    EXTRACT_TOOL_NAME,
    JsonSchema,
    TransportReply,
)

logger = logging.getLogger(__name__)

COMPATIBLE_BASE_URLS: Dict[str, Optional[str]] = {
    "openai": None,
    "perplexity": "https://api.perplexity.ai",
    "groq": "https://api.groq.com/openai/v1",
    "mistral": "https://api.mistral.ai/v1",
    "openrouter": "https://openrouter.ai/api/v1",
    "cohere": "https://api.cohere.ai/compatibility/v1",
}


class OpenAITransport:
    """Adapter that speaks the OpenAI Chat Completions API."""

    name = "openai"
    requires_credential = True

    def __init__(self, timeout: float = 60.0, sdk_max_retries: int = 1):
        self.timeout = timeout
        self.sdk_max_retries = sdk_max_retries
        self._clients: Dict[Tuple[str, str, Optional[str]], Any] = {}

    def _client(self, config: ProviderConfig, api_key: str):
        """One SDK client per provider, key and endpoint, reused across calls."""
        base_url = config.base_url or COMPATIBLE_BASE_URLS.get(config.provider)
        cache_key = (config.provider, api_key, base_url)
        client = self._clients.get(cache_key)
        if client is not None:
            return client

        try:
            from openai import AsyncOpenAI
        except ImportError as exc:
            raise ProviderConfigurationError(
                provider_name=config.provider,
                missing_config="openai package not installed. Install with `pip install openai`",
            ) from exc

        client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=self.timeout,
            max_retries=self.sdk_max_retries,
        )
        self._clients[cache_key] = client
        return client

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.close()

    def build_request(
        self, messages: List[Message], config: ProviderConfig, json_schema: JsonSchema
    ) -> Dict[str, Any]:
        """Shape the request body, including any forced structured-output mode."""
        request_args: Dict[str, Any] = {
            "model": config.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }
        if config.tool_calls_supported:
            request_args["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": EXTRACT_TOOL_NAME,
                        "description": EXTRACT_TOOL_DESCRIPTION,
                        "parameters": json_schema,
                    },
                }
            ]
            request_args["tool_choice"] = {
                "type": "function",
                "function": {"name": EXTRACT_TOOL_NAME},
            }
        elif config.json_output_supported:
            request_args["response_format"] = {"type": "json_object"}
        return request_args

    async def send(
        self,
        messages: List[Message],
        config: ProviderConfig,
        *,
        api_key: str,
        json_schema: JsonSchema,
    ) -> TransportReply:
        client = self._client(config, api_key)
        request_args = self.build_request(messages, config, json_schema)

        try:
            response = await client.chat.completions.create(**request_args)
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s completion failed: %s", config.provider, exc)
            return TransportReply.failed(f"{config.provider} completion failed: {exc}")

        usage = response.usage
        stats = usage_for(
            config,
            usage.prompt_tokens if usage else 0,
            usage.completion_tokens if usage else 0,
        )

        if not response.choices:
            return TransportReply(data=None, raw="", usage=stats, error="no choices returned")
        message = response.choices[0].message

        tool_calls = getattr(message, "tool_calls", None) or []
        for call in tool_calls:
            function = getattr(call, "function", None)
            arguments = getattr(function, "arguments", None) if function else None
            if not arguments:
                continue
            try:
                parsed = json.loads(arguments)
            except json.JSONDecodeError:
                logger.debug("Tool call arguments were not valid JSON: %.200s", arguments)
                reply = TransportReply.from_text(arguments, usage=stats)
                if not reply.is_empty:
                    return reply
                continue
            if isinstance(parsed, dict):
                return TransportReply(data=parsed, raw=arguments, usage=stats)

        return TransportReply.from_text(message.content, usage=stats)


__all__ = ["OpenAITransport", "COMPATIBLE_BASE_URLS"]
