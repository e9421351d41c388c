"""
Tool metadata, schemas, and runtime validation.
"""

from __future__ import annotations

import asyncio
import contextvars
import difflib
import functools
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel

from ..exceptions import BwWriterError, ToolExecutionError, ToolValidationError

JsonSchema = Dict[str, Any]
ParameterValue = Union[str, int, float, bool, dict, list]
ParamMetadata = Dict[str, Any]

SUPPORTED_TYPES = (str, int, float, bool, list, dict)


def _python_type_to_json(param_type: type) -> str:
    """Map a Python type to a JSON schema type string."""
    type_map = {
        str: "string",
        int: "integer",
        float: "number",
        bool: "boolean",
        list: "array",
        dict: "object",
    }
    return type_map.get(param_type, "string")


@dataclass
class ToolParameter:
    """
    Schema definition for a single tool parameter.

    Attributes:
        name: Parameter name (should match the handler's parameter name).
        param_type: Python type (str, int, float, bool, list, dict).
        description: Human-readable description shown in tool listings.
        required: Whether this parameter must be provided (default: True).
        enum: Optional list of allowed values.

    Example:
        >>> ToolParameter(
        ...     name="text",
        ...     param_type=str,
        ...     description="Text to summarize",
        ... )
    """

    name: str
    param_type: type
    description: str
    required: bool = True
    enum: Optional[List[Any]] = None

    def to_schema(self) -> JsonSchema:
        """Render this parameter as a JSON Schema property."""
        schema: JsonSchema = {
            "type": _python_type_to_json(self.param_type),
            "description": self.description,
        }
        if self.enum:
            schema["enum"] = list(self.enum)
        return schema


class Tool:
    """
    A named, schema-described unit of work exposed by the dispatcher.

    A Tool wraps a sync or async handler and adds metadata, parameter
    validation and schema rendering. Handlers return a dict (or something
    the dispatcher can normalize into one).

    Attributes:
        name: Unique identifier for the tool.
        description: Human-readable description of what the tool does.
        parameters: List of ToolParameter objects defining expected inputs.
        function: The underlying handler.
        credentials: Environment variable names the tool needs for live calls.
        output_model: Optional pydantic model describing the tool's result.
        injected_kwargs: Extra kwargs passed to the handler, hidden from callers.
        is_async: Whether the handler is a coroutine function.
    """

    def __init__(
        self,
        name: str,
        description: str,
        parameters: List[ToolParameter],
        function: Callable[..., Any],
        *,
        credentials: Optional[List[str]] = None,
        output_model: Optional[Type[BaseModel]] = None,
        injected_kwargs: Optional[Dict[str, Any]] = None,
        additional_parameters: bool = False,
    ):
        """
        Args:
            additional_parameters: Accept parameters beyond the declared ones
                (for handlers taking ``**kwargs``).

        Raises:
            ToolValidationError: If the tool definition is invalid.
        """
        self.name = name
        self.description = description
        self.parameters = parameters
        self.function = function
        self.credentials: List[str] = list(credentials or [])
        self.output_model = output_model
        self.injected_kwargs = injected_kwargs or {}
        self.additional_parameters = additional_parameters
        self.is_async = inspect.iscoroutinefunction(function)

        self._validate_tool_definition()

    def _validate_tool_definition(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ToolValidationError(
                tool_name="<unnamed>",
                param_name="name",
                issue="Tool name cannot be empty",
                suggestion="Provide a descriptive name for the tool",
            )

        if not isinstance(self.description, str) or not self.description.strip():
            raise ToolValidationError(
                tool_name=self.name,
                param_name="description",
                issue="Tool description cannot be empty",
                suggestion="Provide a clear description explaining what the tool does",
            )

        if not callable(self.function):
            raise ToolValidationError(
                tool_name=self.name,
                param_name="function",
                issue="Tool handler is not callable",
                suggestion="Pass a function or coroutine function as the handler",
            )

        if not isinstance(self.parameters, list) or not all(
            isinstance(p, ToolParameter) for p in self.parameters
        ):
            raise ToolValidationError(
                tool_name=self.name,
                param_name="parameters",
                issue="Parameter schema must be a list of ToolParameter",
                suggestion="Describe each input with ToolParameter(name, param_type, description)",
            )

        param_names = [p.name for p in self.parameters]
        duplicates = sorted({n for n in param_names if param_names.count(n) > 1})
        if duplicates:
            raise ToolValidationError(
                tool_name=self.name,
                param_name=", ".join(duplicates),
                issue="Duplicate parameter name(s)",
                suggestion="Each parameter must have a unique name",
            )

        for param in self.parameters:
            if param.param_type not in SUPPORTED_TYPES:
                type_list = ", ".join(t.__name__ for t in SUPPORTED_TYPES)
                raise ToolValidationError(
                    tool_name=self.name,
                    param_name=param.name,
                    issue=f"Unsupported parameter type: {param.param_type}",
                    suggestion=f"Use one of: {type_list}",
                )

        if self.output_model is not None and not (
            isinstance(self.output_model, type) and issubclass(self.output_model, BaseModel)
        ):
            raise ToolValidationError(
                tool_name=self.name,
                param_name="output_model",
                issue="Output model must be a pydantic BaseModel subclass",
            )

        try:
            sig = inspect.signature(self.function)
        except (ValueError, TypeError):
            # Builtins and some C callables have no inspectable signature.
            return

        func_params = sig.parameters
        accepts_kwargs = any(p.kind is inspect.Parameter.VAR_KEYWORD for p in func_params.values())
        injected_names = set(self.injected_kwargs)

        for param in self.parameters:
            if param.name in func_params or param.name in injected_names or accepts_kwargs:
                continue
            func_param_names = [p for p in func_params if p not in injected_names]
            suggestion = f"Available function parameters: {', '.join(func_param_names)}"
            if not func_param_names:
                suggestion = "Function has no parameters"
            raise ToolValidationError(
                tool_name=self.name,
                param_name=param.name,
                issue=f"Parameter '{param.name}' not found in function signature",
                suggestion=suggestion,
            )

        for param in self.parameters:
            if param.required and param.name in func_params:
                default = func_params[param.name].default
                if default is not inspect.Parameter.empty:
                    raise ToolValidationError(
                        tool_name=self.name,
                        param_name=param.name,
                        issue=f"Parameter marked as required but has default value in function: {default!r}",
                        suggestion="Either mark as optional (required=False) or remove the default",
                    )

    def schema(self) -> JsonSchema:
        """Return a JSON-schema style dict describing this tool."""
        properties = {param.name: param.to_schema() for param in self.parameters}
        required = [param.name for param in self.parameters if param.required]

        parameters: JsonSchema = {
            "type": "object",
            "properties": properties,
            "required": required,
        }
        if self.additional_parameters:
            parameters["additionalProperties"] = True

        return {
            "name": self.name,
            "description": self.description,
            "parameters": parameters,
        }

    definition = schema

    def _validate_single(self, param: ToolParameter, value: Any) -> Optional[str]:
        if value is None:
            return f"Parameter '{param.name}' is None"

        if param.param_type is float:
            if isinstance(value, bool) or not isinstance(value, (float, int)):
                return f"Parameter '{param.name}' must be a number"
        elif param.param_type is int:
            if isinstance(value, bool) or not isinstance(value, int):
                return f"Parameter '{param.name}' must be an integer, got {type(value).__name__}"
        elif not isinstance(value, param.param_type):
            return (
                f"Parameter '{param.name}' must be of type {param.param_type.__name__}, "
                f"got {type(value).__name__}"
            )

        if param.enum and value not in param.enum:
            allowed = ", ".join(repr(v) for v in param.enum)
            return f"Parameter '{param.name}' must be one of {allowed}"
        return None

    def validate(self, params: Dict[str, Any]) -> None:
        """
        Validate a parameter dictionary against this tool's schema.

        Raises ToolValidationError if validation fails.
        """
        if not isinstance(params, dict):
            raise ToolValidationError(
                tool_name=self.name,
                param_name="parameters",
                issue=f"Parameters must be an object, got {type(params).__name__}",
            )

        expected_params = {p.name for p in self.parameters}
        extra_params = set(params) - expected_params

        if extra_params and not self.additional_parameters:
            suggestions = []
            for extra in sorted(extra_params):
                matches = difflib.get_close_matches(extra, expected_params, n=1, cutoff=0.6)
                if matches:
                    suggestions.append(f"'{extra}' -> did you mean '{matches[0]}'?")
                else:
                    suggestions.append(f"'{extra}' is not a valid parameter")
            expected_list = ", ".join(f"'{p}'" for p in sorted(expected_params)) or "none"
            raise ToolValidationError(
                tool_name=self.name,
                param_name=", ".join(sorted(extra_params)),
                issue="Unexpected parameter(s)",
                suggestion=f"{'; '.join(suggestions)}. Expected parameters: {expected_list}",
            )

        for param in self.parameters:
            if param.name not in params:
                if param.required:
                    expected_list = ", ".join(f"'{p.name}'" for p in self.parameters if p.required)
                    raise ToolValidationError(
                        tool_name=self.name,
                        param_name=param.name,
                        issue="Missing required parameter",
                        suggestion=f"Required parameters: {expected_list}",
                    )
                continue

            error = self._validate_single(param, params[param.name])
            if error:
                raise ToolValidationError(
                    tool_name=self.name,
                    param_name=param.name,
                    issue=error,
                    suggestion=f"Expected type: {param.param_type.__name__}",
                )

    async def aexecute(self, params: Dict[str, Any]) -> Any:
        """
        Validate parameters then run the handler.

        Async handlers are awaited; sync handlers run in the default thread
        pool so they never block the event loop. Library errors keep their
        own kind; anything else is wrapped in ToolExecutionError.
        """
        self.validate(params)

        call_args: Dict[str, Any] = dict(params)
        call_args.update(self.injected_kwargs)

        try:
            if self.is_async:
                return await self.function(**call_args)
            loop = asyncio.get_running_loop()
            context = contextvars.copy_context()
            func_with_args = functools.partial(self.function, **call_args)
            return await loop.run_in_executor(None, context.run, func_with_args)
        except BwWriterError:
            raise
        except Exception as exc:
            raise ToolExecutionError(tool_name=self.name, error=exc, params=params) from exc


__all__ = ["Tool", "ToolParameter", "ParamMetadata", "JsonSchema", "SUPPORTED_TYPES"]
