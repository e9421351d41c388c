"""
Protocol dispatch engine.

Each request line goes through

    Received -> Parsed -> Routed -> {Executing | ShortCircuited(Mock) | Rejected} -> Responded

and is answered by exactly one response line in the request's own envelope
shape. Nothing raised by a handler crosses this boundary: every exception is
mapped onto an error kind and serialized.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel

from .config import ServerConfig
from .env import read_key
from .exceptions import BwWriterError, ErrorKind, ProtocolError
from .mock import MockDataProvider
from .protocol import (
    MalformedEnvelope,
    RequestEnvelope,
    ResponseEnvelope,
    VersionedRequest,
    failure,
    malformed_response,
    parse_request,
    success,
)
from .ratelimit import DEFAULT_MAX_CALLS, DEFAULT_WINDOW_SECONDS, RateWindow
from .tools import Tool, ToolRegistry

logger = logging.getLogger(__name__)

LIST_RESOURCES = "list_resources"
READ_RESOURCE = "read_resource"

SERVER_INFO_URI = "server-info"
TOOL_LIST_URI = "tool-list"

RESOURCE_CATALOG = [
    {
        "uri": SERVER_INFO_URI,
        "name": "Server Information",
        "description": "Basic information about the server",
        "parameters": {},
    },
    {
        "uri": TOOL_LIST_URI,
        "name": "Available Tools",
        "description": "List of available tools on this server",
        "parameters": {},
    },
]

LIST_METHODS = {"tools/list", "list"}
EXECUTE_METHODS = {"tools/execute", "execute", "tools/call"}


@dataclass
class DispatchState:
    """Mutable per-dispatcher state: the rate windows keyed by tool name."""

    rate_windows: Dict[str, RateWindow] = field(default_factory=dict)


class Dispatcher:
    """
    Routes parsed envelopes to tools and built-in operations.

    Attributes:
        registry: Registered tools.
        config: Server options (mock mode, credentials, identity).
        mock_provider: When set, its output replaces real handler calls.
        state: Rate windows owned by this dispatcher.
    """

    def __init__(
        self,
        registry: Optional[ToolRegistry] = None,
        config: Optional[ServerConfig] = None,
        mock_provider: Optional[MockDataProvider] = None,
        state: Optional[DispatchState] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.registry = registry if registry is not None else ToolRegistry()
        self.config = config or ServerConfig()
        self.mock_provider = mock_provider
        self.state = state or DispatchState()
        self._environ = environ

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def add_rate_limit(
        self,
        tool_name: str,
        max_calls: int = DEFAULT_MAX_CALLS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ) -> "Dispatcher":
        window = RateWindow(max_calls=max_calls, window_seconds=window_seconds)
        if clock is not None:
            window.clock = clock
        self.state.rate_windows[tool_name] = window
        return self

    def required_credentials(self) -> List[str]:
        """Configured variables followed by every tool's variables, deduplicated."""
        names = list(self.config.required_credentials) + self.registry.required_credentials()
        return list(dict.fromkeys(names))

    def missing_credential(self) -> Optional[str]:
        for name in self.required_credentials():
            if not read_key(name, self.environ):
                return name
        return None

    # Line level

    async def handle_line(self, line: str) -> Optional[str]:
        """
        Answer one raw input line.

        Returns the serialized response, or None for a blank line.
        """
        if not line or not line.strip():
            return None

        try:
            request = parse_request(line)
        except MalformedEnvelope as exc:
            logger.debug("Rejected malformed line: %s", exc)
            return self._serialize(malformed_response(exc), None)

        response = await self.dispatch(request)
        return self._serialize(response, request)

    def _serialize(self, response: ResponseEnvelope, request: Optional[RequestEnvelope]) -> str:
        try:
            return response.serialize()
        except (TypeError, ValueError, RecursionError) as exc:
            logger.error("Result could not be serialized: %s", exc)
            return failure(
                request, ErrorKind.INTERNAL_ERROR, f"Result is not JSON-serializable: {exc}"
            ).serialize()

    # Envelope level

    async def dispatch(self, request: RequestEnvelope) -> ResponseEnvelope:
        try:
            if isinstance(request, VersionedRequest):
                result = await self._dispatch_method(request)
            else:
                result = await self.call(request.name, request.parameters)
        except Exception as exc:  # noqa: BLE001
            kind, message = self._classify(exc)
            return failure(request, kind, message)
        return success(request, result)

    async def _dispatch_method(self, request: VersionedRequest) -> Dict[str, Any]:
        method = request.method
        params = request.params
        logger.debug("Handling method %s (id=%r)", method, request.id)

        if method == "initialize":
            return self.server_info(include_capabilities=True)
        if method in LIST_METHODS:
            return {"tools": self.registry.definitions()}
        if method == "resources/list":
            return self.list_resources(params)
        if method == "resources/read":
            return self.read_resource(params)
        if method in EXECUTE_METHODS:
            name = params.get("name")
            if not isinstance(name, str) or not name.strip():
                raise ProtocolError(
                    ErrorKind.INVALID_PARAMETERS, "Invalid params: missing tool name", request.id
                )
            parameters = params.get("parameters")
            if parameters is None:
                parameters = params.get("arguments")
            if parameters is None:
                parameters = {}
            if not isinstance(parameters, dict):
                raise ProtocolError(
                    ErrorKind.INVALID_PARAMETERS, "Invalid params: parameters must be an object", request.id
                )
            return await self.call(name, parameters)

        raise ProtocolError(ErrorKind.UNKNOWN_OPERATION, f"Method not found: {method}", request.id)

    # Tool level

    async def call(self, name: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        """
        Route one tool call and return its normalized result.

        Raises:
            ProtocolError / BwWriterError: Mapped onto an error envelope by ``dispatch``.
        """
        if name == LIST_RESOURCES:
            return self.list_resources(parameters)
        if name == READ_RESOURCE:
            return self.read_resource(parameters)

        tool = self.registry.get(name)
        if tool is None:
            raise ProtocolError(ErrorKind.UNKNOWN_OPERATION, f"Tool not found: {name}")

        self._check_rate_limit(tool)
        self._check_credentials()

        if self.mock_provider is not None:
            logger.debug("Using mock data for %s", name)
            result = self.mock_provider.get(tool, parameters)
        else:
            logger.debug("Executing tool %s", name)
            result = await tool.aexecute(parameters)

        return self._normalize(tool, result)

    def _check_rate_limit(self, tool: Tool) -> None:
        window = self.state.rate_windows.get(tool.name)
        if window is None or not self.config.enforce_rate_limits:
            return
        if not window.try_acquire():
            raise ProtocolError(
                ErrorKind.RATE_LIMIT_EXCEEDED,
                f"Rate limit exceeded. Try again in {window.retry_after()} seconds.",
            )

    def _check_credentials(self) -> None:
        if self.config.mock_mode:
            return
        missing = self.missing_credential()
        if missing:
            raise ProtocolError(
                ErrorKind.MISSING_CREDENTIAL,
                f"Missing required credential: {missing} is not set",
            )

    def _normalize(self, tool: Tool, result: Any) -> Dict[str, Any]:
        if result is None:
            raise ProtocolError(ErrorKind.INTERNAL_ERROR, f"No response from handler '{tool.name}'")
        if isinstance(result, BaseModel):
            return result.model_dump(mode="json")
        if isinstance(result, dict):
            if set(result) == {"type", "message"}:
                # Handler reported an error object instead of raising.
                try:
                    kind = ErrorKind(result["type"])
                except ValueError:
                    kind = ErrorKind.INTERNAL_ERROR
                raise ProtocolError(kind, str(result["message"]))
            return result
        if isinstance(result, str):
            try:
                decoded = json.loads(result)
            except ValueError:
                decoded = None
            if isinstance(decoded, dict):
                return decoded
        return {"result": result}

    @staticmethod
    def _classify(exc: Exception) -> Tuple[ErrorKind, str]:
        if isinstance(exc, BwWriterError):
            if exc.kind is ErrorKind.INTERNAL_ERROR:
                logger.error("Tool call failed: %s", exc)
            else:
                logger.info("Request rejected (%s): %s", exc.kind.value, exc)
            return exc.kind, str(exc)
        logger.exception("Unexpected error while dispatching")
        return ErrorKind.INTERNAL_ERROR, f"{type(exc).__name__}: {exc}"

    # Built-ins

    def server_info(self, include_capabilities: bool = False) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "name": self.config.server_name,
            "serverName": self.config.server_name,
            "version": self.config.version,
            "vendor": self.config.vendor,
            "protocolVersion": self.config.protocol_version,
        }
        if include_capabilities:
            info["capabilities"] = {
                "tools": {"count": len(self.registry)},
                "resources": {"uris": [entry["uri"] for entry in RESOURCE_CATALOG]},
                "mockMode": self.config.mock_mode,
            }
        return info

    def list_resources(self, parameters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {"resources": [dict(entry) for entry in RESOURCE_CATALOG], "cursor": None}

    def read_resource(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        uri = parameters.get("uri")
        if not isinstance(uri, str) or not uri:
            raise ProtocolError(ErrorKind.INVALID_PARAMETERS, "Missing required parameter: uri")
        if uri == SERVER_INFO_URI:
            info = self.server_info()
            info.pop("name")
            return info
        if uri == TOOL_LIST_URI:
            return {"tools": self.registry.definitions()}
        raise ProtocolError(ErrorKind.RESOURCE_NOT_FOUND, f"Resource not found: {uri}")


__all__ = [
    "Dispatcher",
    "DispatchState",
    "RESOURCE_CATALOG",
    "LIST_RESOURCES",
    "READ_RESOURCE",
]
