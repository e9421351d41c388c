"""
Server configuration resolved from the environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .env import env_flag, read_key
from .models import DEFAULT_PRESET
from .protocol import SIMPLE_VERSION

PACKAGE_VERSION = "0.4.0"

DEFAULT_SERVER_NAME = "bw-writer"
DEFAULT_VENDOR = "bw-writer"


@dataclass
class ServerConfig:
    """
    Runtime options for the dispatcher and the stdio server.

    Attributes:
        server_name: Reported by ``initialize`` and the ``server-info`` resource.
        version: Server version string.
        vendor: Vendor string.
        protocol_version: Version tag of the simple envelope.
        mock_mode: Substitute mock output for handlers and skip credential checks.
        debug: Verbose logging.
        log_level: Logging level name used when ``debug`` is off.
        required_credentials: Environment variables that must be set outside mock mode,
            in addition to those declared by registered tools.
        rate_limit_in_mock_mode: Keep enforcing rate windows while mock mode is on.
        default_llm: Preset used by the built-in text tools.
    """

    server_name: str = DEFAULT_SERVER_NAME
    version: str = PACKAGE_VERSION
    vendor: str = DEFAULT_VENDOR
    protocol_version: str = SIMPLE_VERSION
    mock_mode: bool = False
    debug: bool = False
    log_level: str = "INFO"
    required_credentials: List[str] = field(default_factory=list)
    rate_limit_in_mock_mode: bool = False
    default_llm: str = DEFAULT_PRESET

    @property
    def effective_log_level(self) -> int:
        if self.debug:
            return logging.DEBUG
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    @property
    def enforce_rate_limits(self) -> bool:
        return not self.mock_mode or self.rate_limit_in_mock_mode

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Build a config from environment variables.

        ``MOCK_MODE``, ``DEBUG``, ``BW_WRITER_LOG_LEVEL``,
        ``BW_WRITER_REQUIRED_KEYS`` (comma separated),
        ``BW_WRITER_RATE_LIMIT_IN_MOCK`` and ``BW_WRITER_DEFAULT_LLM``.
        """
        environ = os.environ if environ is None else environ
        required = [
            name.strip()
            for name in read_key("BW_WRITER_REQUIRED_KEYS", environ).split(",")
            if name.strip()
        ]
        return cls(
            mock_mode=env_flag("MOCK_MODE", environ=environ),
            debug=env_flag("DEBUG", environ=environ),
            log_level=read_key("BW_WRITER_LOG_LEVEL", environ) or "INFO",
            required_credentials=required,
            rate_limit_in_mock_mode=env_flag("BW_WRITER_RATE_LIMIT_IN_MOCK", environ=environ),
            default_llm=read_key("BW_WRITER_DEFAULT_LLM", environ) or DEFAULT_PRESET,
        )


__all__ = ["ServerConfig", "PACKAGE_VERSION"]
