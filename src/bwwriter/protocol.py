"""
Wire envelopes for the line-delimited protocol.

Two request shapes share one channel:

* simple:    ``{"name": str, "parameters": {...}}``
* versioned: ``{"protocolVersion": "2.0" | "jsonrpc": "2.0", "id": ..., "method": str, "params": {...}}``

``parse_request`` decides the shape structurally (a ``method`` field or a
``"2.0"`` tag means versioned, otherwise a ``name`` field means simple) and
never guesses by re-parsing. Responses mirror the request shape.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .exceptions import ErrorKind, ProtocolError, RequestId

SIMPLE_VERSION = "1.0"
VERSIONED_VERSION = "2.0"
TAG_FIELDS = ("protocolVersion", "jsonrpc")
DEFAULT_TAG_FIELD = "protocolVersion"


@dataclass(frozen=True)
class SimpleRequest:
    name: str
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VersionedRequest:
    """A versioned request; ``tag_field`` records which version key the client used."""

    id: RequestId
    method: str
    params: Dict[str, Any] = field(default_factory=dict)
    tag_field: str = DEFAULT_TAG_FIELD


RequestEnvelope = Union[SimpleRequest, VersionedRequest]


class MalformedEnvelope(ProtocolError):
    """
    A line that is not a valid envelope.

    Remembers whether the line was recognisably versioned (and its id, when
    one was read) so the error can be answered in the matching shape.
    """

    def __init__(
        self,
        message: str,
        *,
        versioned: bool = False,
        request_id: RequestId = None,
        tag_field: str = DEFAULT_TAG_FIELD,
    ):
        super().__init__(ErrorKind.PARSE_ERROR, message, request_id)
        self.versioned = versioned
        self.tag_field = tag_field


@dataclass(frozen=True)
class ErrorBody:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class ResponseEnvelope:
    """
    One response line.

    Exactly one of ``result`` / ``error`` is set. ``versioned`` selects the
    wire shape; ``id`` and ``tag_field`` only matter for the versioned shape.
    """

    result: Optional[Dict[str, Any]] = None
    error: Optional[ErrorBody] = None
    versioned: bool = False
    id: RequestId = None
    tag_field: str = DEFAULT_TAG_FIELD

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("a response carries either a result or an error")

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.versioned:
            payload: Dict[str, Any] = {self.tag_field: VERSIONED_VERSION, "id": self.id}
            if self.error is not None:
                payload["error"] = {
                    "code": self.error.kind.code,
                    "message": self.error.message,
                    "data": {"type": self.error.kind.value},
                }
            else:
                payload["result"] = self.result
            return payload

        payload = {"protocolVersion": SIMPLE_VERSION}
        if self.error is not None:
            payload["error"] = {"type": self.error.kind.value, "message": self.error.message}
        else:
            payload["result"] = self.result
        return payload

    def serialize(self) -> str:
        """
        Render as a single JSON line.

        Raises:
            TypeError / ValueError: When the result holds non-JSON values.
        """
        return json.dumps(self.to_dict(), ensure_ascii=False, allow_nan=False)


def _is_valid_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return value is None or isinstance(value, (str, int, float))


def _parse_versioned(data: Dict[str, Any]) -> VersionedRequest:
    tag_field = "jsonrpc" if "jsonrpc" in data else DEFAULT_TAG_FIELD

    request_id = data.get("id")
    if not _is_valid_id(request_id):
        raise MalformedEnvelope(
            "Request id must be a string or a number", versioned=True, tag_field=tag_field
        )

    def reject(message: str) -> MalformedEnvelope:
        return MalformedEnvelope(
            message, versioned=True, request_id=request_id, tag_field=tag_field
        )

    if data.get(tag_field) != VERSIONED_VERSION:
        raise reject(f"Unsupported protocol version: {data.get(tag_field)!r}")

    method = data.get("method")
    if not isinstance(method, str) or not method.strip():
        raise reject("Field 'method' must be a non-empty string")

    params = data.get("params")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise reject("Field 'params' must be an object")

    return VersionedRequest(id=request_id, method=method, params=params, tag_field=tag_field)


def _parse_simple(data: Dict[str, Any]) -> SimpleRequest:
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise MalformedEnvelope("Field 'name' must be a non-empty string")

    parameters = data.get("parameters")
    if parameters is None:
        parameters = {}
    if not isinstance(parameters, dict):
        raise MalformedEnvelope("Field 'parameters' must be an object")

    return SimpleRequest(name=name, parameters=parameters)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON number")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} is out of range for a JSON number")
    return value


def is_versioned(data: Dict[str, Any]) -> bool:
    return "method" in data or any(data.get(tag) == VERSIONED_VERSION for tag in TAG_FIELDS)


def parse_request(line: str) -> RequestEnvelope:
    """
    Decode one request line.

    Raises:
        MalformedEnvelope: Invalid JSON, a non-object, wrong field types, or
            neither envelope shape.
    """
    try:
        data = json.loads(line, parse_constant=_reject_constant, parse_float=_finite_float)
    except RecursionError as exc:
        raise MalformedEnvelope("Invalid JSON: nesting too deep") from exc
    except (ValueError, TypeError) as exc:
        raise MalformedEnvelope(f"Invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedEnvelope(f"Request must be a JSON object, got {type(data).__name__}")

    if is_versioned(data):
        return _parse_versioned(data)
    if "name" in data:
        return _parse_simple(data)
    raise MalformedEnvelope("Request matches neither the simple nor the versioned envelope")


def success(request: RequestEnvelope, result: Dict[str, Any]) -> ResponseEnvelope:
    if isinstance(request, VersionedRequest):
        return ResponseEnvelope(
            result=result, versioned=True, id=request.id, tag_field=request.tag_field
        )
    return ResponseEnvelope(result=result)


def failure(request: Optional[RequestEnvelope], kind: ErrorKind, message: str) -> ResponseEnvelope:
    """Error response shaped like ``request`` (simple shape when there is none)."""
    body = ErrorBody(kind=kind, message=message)
    if isinstance(request, VersionedRequest):
        return ResponseEnvelope(
            error=body, versioned=True, id=request.id, tag_field=request.tag_field
        )
    return ResponseEnvelope(error=body)


def malformed_response(exc: MalformedEnvelope) -> ResponseEnvelope:
    return ResponseEnvelope(
        error=ErrorBody(kind=exc.kind, message=str(exc)),
        versioned=exc.versioned,
        id=exc.request_id,
        tag_field=exc.tag_field,
    )


def parse_response(line: str) -> ResponseEnvelope:
    """
    Decode a response line (client side and tests).

    Raises:
        ValueError: When the line is not a response envelope.
    """
    data = json.loads(line)
    if not isinstance(data, dict):
        raise ValueError("Response must be a JSON object")

    versioned = "id" in data or any(data.get(tag) == VERSIONED_VERSION for tag in TAG_FIELDS)
    tag_field = "jsonrpc" if "jsonrpc" in data else DEFAULT_TAG_FIELD

    error = data.get("error")
    body: Optional[ErrorBody] = None
    if error is not None:
        if versioned:
            kind_name = (error.get("data") or {}).get("type", ErrorKind.INTERNAL_ERROR.value)
        else:
            kind_name = error.get("type", ErrorKind.INTERNAL_ERROR.value)
        try:
            kind = ErrorKind(kind_name)
        except ValueError:
            kind = ErrorKind.INTERNAL_ERROR
        body = ErrorBody(kind=kind, message=str(error.get("message", "")))

    return ResponseEnvelope(
        result=data.get("result") if body is None else None,
        error=body,
        versioned=versioned,
        id=data.get("id"),
        tag_field=tag_field,
    )


__all__ = [
    "SIMPLE_VERSION",
    "VERSIONED_VERSION",
    "SimpleRequest",
    "VersionedRequest",
    "RequestId",
    "RequestEnvelope",
    "ResponseEnvelope",
    "ErrorBody",
    "MalformedEnvelope",
    "parse_request",
    "parse_response",
    "success",
    "failure",
    "malformed_response",
    "is_versioned",
]
