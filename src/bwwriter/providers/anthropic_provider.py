"""
Anthropic Messages API transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import ProviderConfigurationError
from ..models import ProviderConfig
from ..pricing import usage_for
from ..types import Message, split_system
from .base import (
    EXTRACT_TOOL_DESCRIPTION,
    EXTRACT_TOOL_NAME,
    JsonSchema,
    TransportReply,
)

logger = logging.getLogger(__name__)


class AnthropicTransport:
    """Anthropic Messages API adapter."""

    name = "anthropic"
    requires_credential = True

    def __init__(self, timeout: float = 60.0, sdk_max_retries: int = 1):
        self.timeout = timeout
        self.sdk_max_retries = sdk_max_retries
        self._clients: Dict[Tuple[str, Optional[str]], Any] = {}

    def _client(self, config: ProviderConfig, api_key: str):
        cache_key = (api_key, config.base_url)
        client = self._clients.get(cache_key)
        if client is not None:
            return client

        try:
            from anthropic import AsyncAnthropic
        except ImportError as exc:
            raise ProviderConfigurationError(
                provider_name=config.provider,
                missing_config="anthropic package not installed. Install with `pip install anthropic`",
            ) from exc

        client = AsyncAnthropic(
            api_key=api_key,
            base_url=config.base_url,
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
        """
        Shape the request for Anthropic.

        Anthropic takes system instructions as a dedicated parameter and only
        accepts user/assistant turns in ``messages``, so system notes
        (including corrective ones added by the retry loop) are folded into
        ``system``.
        """
        system, rest = split_system(messages)
        request_args: Dict[str, Any] = {
            "model": config.model,
            "messages": [{"role": m.role.value, "content": m.content} for m in rest],
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }
        if system:
            request_args["system"] = system
        if config.tool_calls_supported:
            request_args["tools"] = [
                {
                    "name": EXTRACT_TOOL_NAME,
                    "description": EXTRACT_TOOL_DESCRIPTION,
                    "input_schema": json_schema,
                }
            ]
            request_args["tool_choice"] = {"type": "tool", "name": EXTRACT_TOOL_NAME}
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
            response = await client.messages.create(**request_args)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Anthropic completion failed: %s", exc)
            return TransportReply.failed(f"Anthropic completion failed: {exc}")

        usage = getattr(response, "usage", None)
        stats = usage_for(
            config,
            getattr(usage, "input_tokens", 0) or 0,
            getattr(usage, "output_tokens", 0) or 0,
        )

        text_chunks = []
        for block in response.content or []:
            if getattr(block, "type", None) == "tool_use":
                payload = getattr(block, "input", None)
                if isinstance(payload, dict) and payload:
                    return TransportReply(data=payload, raw=json.dumps(payload), usage=stats)
            text = getattr(block, "text", None)
            if text:
                text_chunks.append(text)

        return TransportReply.from_text("".join(text_chunks), usage=stats)


__all__ = ["AnthropicTransport"]
