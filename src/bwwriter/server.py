"""
Line-delimited stdio server.

Reads one request per stdin line and writes one response per stdout line,
flushing after each. Diagnostics go to stderr only.

Examples:
    bw-writer-server
    MOCK_MODE=1 python -m bwwriter
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional, TextIO

from .config import ServerConfig
from .dispatcher import Dispatcher
from .env import load_default_env
from .exceptions import ErrorKind
from .generation import GenerationClient
from .mock import FixtureMockProvider
from .protocol import failure
from .toolbox import get_all_tools
from .tools import ToolRegistry

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(config: ServerConfig, stream: Optional[TextIO] = None) -> None:
    """Send all package logging to stderr at the configured level."""
    logging.basicConfig(
        level=config.effective_log_level,
        format=LOG_FORMAT,
        stream=stream or sys.stderr,
        force=True,
    )


def build_dispatcher(
    config: ServerConfig,
    client: Optional[GenerationClient] = None,
) -> Dispatcher:
    """Register the built-in toolbox and wire mock mode."""
    registry = ToolRegistry(get_all_tools(client, config.default_llm))
    mock_provider = FixtureMockProvider() if config.mock_mode else None
    return Dispatcher(registry=registry, config=config, mock_provider=mock_provider)


async def serve(
    dispatcher: Dispatcher,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    """
    Answer requests until end of input.

    Requests are processed one at a time, so responses come out in request
    order. A line whose handling fails unexpectedly is answered with an
    InternalError envelope and the loop carries on. Returns the number of
    responses written.
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    answered = 0

    while True:
        line = await asyncio.to_thread(stdin.readline)
        if not line:
            break
        try:
            response = await dispatcher.handle_line(line)
        except Exception:
            logger.exception("Unhandled error while answering a request line")
            response = failure(None, ErrorKind.INTERNAL_ERROR, "Internal server error").serialize()
        if response is None:
            continue
        stdout.write(response + "\n")
        stdout.flush()
        answered += 1

    logger.debug("Input closed after %d responses", answered)
    return answered


async def _serve_and_close(dispatcher: Dispatcher, client: GenerationClient) -> int:
    try:
        return await serve(dispatcher)
    finally:
        await client.aclose()


def main() -> None:
    load_default_env()
    config = ServerConfig.from_env()
    configure_logging(config)
    logger.info(
        "Starting %s %s (mock mode: %s)",
        config.server_name,
        config.version,
        "on" if config.mock_mode else "off",
    )
    client = GenerationClient()
    dispatcher = build_dispatcher(config, client)
    try:
        asyncio.run(_serve_and_close(dispatcher, client))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
