"""
Local transport for offline testing and development.

This transport doesn't call any external API. It answers every request with
a deterministic object built from the requested schema.
"""

from __future__ import annotations

import json
from typing import List

from ..mock import sample_from_schema
from ..models import ProviderConfig
from ..types import Message
from ..usage import UsageStats
from .base import JsonSchema, TransportReply


class LocalTransport:
    """
    Local fallback transport.

    Needs no credential and never fails; useful for offline/manual testing
    or as a safe default for the ``local`` provider.
    """

    name = "local"
    requires_credential = False

    async def send(
        self,
        messages: List[Message],
        config: ProviderConfig,
        *,
        api_key: str,
        json_schema: JsonSchema,
    ) -> TransportReply:
        data = sample_from_schema(json_schema)
        if not isinstance(data, dict):
            data = {"result": data}
        return TransportReply(
            data=data,
            raw=json.dumps(data),
            usage=UsageStats(model=config.model, provider=self.name, calls=1),
        )


__all__ = ["LocalTransport"]
