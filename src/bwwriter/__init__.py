"""Public exports for the bwwriter package."""

from .config import PACKAGE_VERSION, ServerConfig
from .dispatcher import Dispatcher, DispatchState
from .exceptions import (
    BwWriterError,
    ErrorKind,
    GenerationError,
    ProtocolError,
    ProviderConfigurationError,
    ToolExecutionError,
    ToolValidationError,
)
from .generation import (
    GenerationClient,
    InvocationRequest,
    InvocationResult,
    RetryPolicy,
    TextResult,
    invoke,
)
from .mock import FixtureMockProvider, sample_from_schema
from .models import PRESETS, ProviderConfig, resolve_config
from .parser import StructuredOutputParser, extract_structured
from .pricing import calculate_cost
from .prompt import PromptBuilder
from .protocol import ResponseEnvelope, SimpleRequest, VersionedRequest, parse_request, parse_response
from .ratelimit import RateWindow
from .tools import Tool, ToolParameter, ToolRegistry, tool
from .types import Message, Role
from .usage import UsageStats

__version__ = PACKAGE_VERSION

__all__ = [
    "Dispatcher",
    "DispatchState",
    "ServerConfig",
    "GenerationClient",
    "InvocationRequest",
    "InvocationResult",
    "RetryPolicy",
    "TextResult",
    "invoke",
    "ProviderConfig",
    "PRESETS",
    "resolve_config",
    "StructuredOutputParser",
    "extract_structured",
    "PromptBuilder",
    "Message",
    "Role",
    "Tool",
    "ToolParameter",
    "ToolRegistry",
    "tool",
    "RateWindow",
    "FixtureMockProvider",
    "sample_from_schema",
    "ResponseEnvelope",
    "SimpleRequest",
    "VersionedRequest",
    "parse_request",
    "parse_response",
    # Exceptions
    "BwWriterError",
    "ErrorKind",
    "ToolValidationError",
    "ToolExecutionError",
    "ProviderConfigurationError",
    "GenerationError",
    "ProtocolError",
    # Usage tracking
    "UsageStats",
    "calculate_cost",
]
