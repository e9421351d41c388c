"""
Google Gemini transport using the google-genai SDK.

Uses the centralized Client API: ``client.aio.models.generate_content()``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..exceptions import ProviderConfigurationError
from ..models import ProviderConfig
from ..pricing import usage_for
from ..types import Message, Role, split_system
from .base import JsonSchema, TransportReply

logger = logging.getLogger(__name__)


class GeminiTransport:
    """Google Gemini adapter."""

    name = "google"
    requires_credential = True

    def __init__(self):
        self._clients: Dict[str, Any] = {}

    def _client(self, config: ProviderConfig, api_key: str):
        client = self._clients.get(api_key)
        if client is None:
            from google import genai

            client = self._clients[api_key] = genai.Client(api_key=api_key)
        return client

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            # aio.aclose only exists on newer google-genai releases
            close = getattr(client.aio, "aclose", None)
            if close is not None:
                await close()

    def _format_contents(self, messages: List[Message]) -> List:
        """
        Convert our messages to Gemini content objects.

        System instructions are handled separately via the request config.
        """
        from google.genai import types

        contents = []
        for message in messages:
            role = "model" if message.role == Role.ASSISTANT else "user"
            contents.append(types.Content(role=role, parts=[types.Part(text=message.content)]))
        return contents

    async def send(
        self,
        messages: List[Message],
        config: ProviderConfig,
        *,
        api_key: str,
        json_schema: JsonSchema,
    ) -> TransportReply:
        try:
            from google.genai import types
        except ImportError as exc:
            raise ProviderConfigurationError(
                provider_name=config.provider,
                missing_config="google-genai package not installed. Install with `pip install google-genai`",
            ) from exc

        system, rest = split_system(messages)
        generation_config = types.GenerateContentConfig(
            temperature=config.temperature,
            max_output_tokens=config.max_tokens,
            system_instruction=system or None,
            response_mime_type="application/json" if config.json_output_supported else None,
        )

        client = self._client(config, api_key)
        try:
            response = await client.aio.models.generate_content(
                model=config.model,
                contents=self._format_contents(rest),
                config=generation_config,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Gemini completion failed: %s", exc)
            return TransportReply.failed(f"Gemini completion failed: {exc}")

        usage = getattr(response, "usage_metadata", None)
        stats = usage_for(
            config,
            getattr(usage, "prompt_token_count", 0) or 0,
            getattr(usage, "candidates_token_count", 0) or 0,
        )
        return TransportReply.from_text(response.text, usage=stats)


__all__ = ["GeminiTransport"]
