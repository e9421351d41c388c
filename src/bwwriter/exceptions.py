"""
Custom exceptions with helpful error messages and suggestions.

These exceptions carry:
- Clear explanations of what went wrong
- Concrete suggestions for fixes
- Relevant context (tool names, env vars, attempt counts, etc.)

Every exception that can reach the protocol boundary maps onto a stable
error kind string (see ``ErrorKind``) so the dispatcher can serialize it
without guessing.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Union

RequestId = Union[str, int, float, None]


class ErrorKind(str, Enum):
    """Stable error kinds reported in response envelopes."""

    PARSE_ERROR = "ParseError"
    UNKNOWN_OPERATION = "UnknownOperation"
    MISSING_CREDENTIAL = "MissingCredential"
    RATE_LIMIT_EXCEEDED = "RateLimitExceeded"
    INVALID_PARAMETERS = "InvalidParameters"
    INTERNAL_ERROR = "InternalError"
    GENERATION_FAILURE = "GenerationFailure"
    RESOURCE_NOT_FOUND = "ResourceNotFound"

    @property
    def code(self) -> int:
        """Numeric code used by the versioned envelope."""
        return _ERROR_CODES[self]


_ERROR_CODES: Dict[ErrorKind, int] = {
    ErrorKind.PARSE_ERROR: -32700,
    ErrorKind.UNKNOWN_OPERATION: -32601,
    ErrorKind.INVALID_PARAMETERS: -32602,
    ErrorKind.INTERNAL_ERROR: -32603,
    ErrorKind.RATE_LIMIT_EXCEEDED: -32000,
    ErrorKind.MISSING_CREDENTIAL: -32001,
    ErrorKind.GENERATION_FAILURE: -32002,
    ErrorKind.RESOURCE_NOT_FOUND: -32004,
}


class BwWriterError(Exception):
    """Base exception for all bw-writer errors."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR


class ToolValidationError(BwWriterError):
    """Raised when a tool definition or its call parameters are invalid."""

    kind = ErrorKind.INVALID_PARAMETERS

    def __init__(self, tool_name: str, param_name: str, issue: str, suggestion: str = ""):
        self.tool_name = tool_name
        self.param_name = param_name
        self.issue = issue
        self.suggestion = suggestion

        message = f"Tool '{tool_name}': {issue} (parameter: {param_name})"
        if suggestion:
            message += f". Suggestion: {suggestion}"

        super().__init__(message)


class ToolExecutionError(BwWriterError):
    """Raised when a tool handler fails."""

    kind = ErrorKind.INTERNAL_ERROR

    def __init__(self, tool_name: str, error: Exception, params: Dict[str, Any]):
        self.tool_name = tool_name
        self.error = error
        self.params = params

        message = f"Tool '{tool_name}' failed: {type(error).__name__}: {error}"

        super().__init__(message)


class ProviderConfigurationError(BwWriterError):
    """Raised when provider configuration is incorrect or a credential is missing."""

    def __init__(self, provider_name: str, missing_config: str, env_var: str = ""):
        self.provider_name = provider_name
        self.missing_config = missing_config
        self.env_var = env_var

        message = f"Provider '{provider_name}' is misconfigured: {missing_config}"
        if env_var:
            message += f". Set the environment variable {env_var}"

        super().__init__(message)

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        # Only a missing credential is a client-visible configuration problem.
        return ErrorKind.MISSING_CREDENTIAL if self.env_var else ErrorKind.INTERNAL_ERROR


class GenerationError(BwWriterError):
    """
    Raised when the generation core exhausts its attempts without a
    schema-valid result.

    Tools are expected to catch this and fall back to a deterministic
    default wherever one makes sense.
    """

    kind = ErrorKind.GENERATION_FAILURE

    def __init__(self, attempts: int, last_error: Optional[str], last_raw: Optional[str] = None):
        self.attempts = attempts
        self.last_error = last_error
        self.last_raw = last_raw

        message = f"Failed after {attempts} attempts. Last error: {last_error or 'none'}"
        if last_raw:
            preview = last_raw if len(last_raw) <= 200 else last_raw[:200] + "..."
            message += f". Last response: {preview}"

        super().__init__(message)


class ProtocolError(BwWriterError):
    """Raised by the envelope codec and the dispatcher for protocol-level failures."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        request_id: RequestId = None,
    ):
        self.kind = kind
        self.request_id = request_id
        super().__init__(message)


__all__ = [
    "RequestId",
    "ErrorKind",
    "BwWriterError",
    "ToolValidationError",
    "ToolExecutionError",
    "ProviderConfigurationError",
    "GenerationError",
    "ProtocolError",
]
