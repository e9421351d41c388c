"""
Decorators for tool definition.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List, Optional, Type, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from .base import ParamMetadata, Tool, ToolParameter


def _unwrap_type(type_hint: Any) -> Any:
    """Unwrap Optional[T] to T and List[T]/Dict[K, V] to list/dict."""
    origin = get_origin(type_hint)
    if origin is Union:
        non_none_args = [a for a in get_args(type_hint) if a is not type(None)]
        if len(non_none_args) == 1:
            return _unwrap_type(non_none_args[0])
    if origin in (list, dict):
        return origin
    return type_hint


def _infer_parameters_from_callable(
    func: Callable[..., Any],
    param_metadata: Optional[Dict[str, ParamMetadata]] = None,
    hidden: Optional[set] = None,
) -> List[ToolParameter]:
    """
    Inspect a handler's signature to create ToolParameter objects.

    Parameters without a type hint default to ``str``; parameters with a
    default value are optional. Names in ``hidden`` (injected kwargs) are
    skipped.
    """
    type_hints = get_type_hints(func)
    sig = inspect.signature(func)
    param_metadata = param_metadata or {}
    hidden = hidden or set()
    parameters = []

    for name, param in sig.parameters.items():
        if name in ("self", "cls") or name in hidden:
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        param_type = _unwrap_type(type_hints.get(name, str))
        meta = param_metadata.get(name, {})

        parameters.append(
            ToolParameter(
                name=name,
                param_type=param_type,
                description=meta.get("description", f"Parameter {name}"),
                required=param.default is inspect.Parameter.empty,
                enum=meta.get("enum"),
            )
        )

    return parameters


def tool(
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    param_metadata: Optional[Dict[str, ParamMetadata]] = None,
    credentials: Optional[List[str]] = None,
    output_model: Optional[Type[BaseModel]] = None,
    injected_kwargs: Optional[Dict[str, Any]] = None,
) -> Callable[[Callable[..., Any]], Tool]:
    """
    Decorator to convert a function into a Tool.

    Args:
        name: Optional custom name (defaults to function name).
        description: Optional description (defaults to docstring).
        param_metadata: Dict mapping parameter names to metadata (description, enum).
        credentials: Environment variables the tool needs for live calls.
        output_model: Pydantic model describing the tool's result.
        injected_kwargs: Kwargs injected at runtime and hidden from callers.

    Example:
        >>> @tool(description="Echo the parameters back")
        ... def echo(**parameters) -> dict:
        ...     return parameters
    """

    def decorator(func: Callable[..., Any]) -> Tool:
        tool_name = name or func.__name__
        tool_description = description or inspect.getdoc(func) or f"Tool {tool_name}"
        parameters = _infer_parameters_from_callable(
            func, param_metadata, hidden=set(injected_kwargs or {})
        )
        accepts_kwargs = any(
            p.kind is inspect.Parameter.VAR_KEYWORD
            for p in inspect.signature(func).parameters.values()
        )

        return Tool(
            name=tool_name,
            description=tool_description,
            parameters=parameters,
            function=func,
            credentials=credentials,
            output_model=output_model,
            injected_kwargs=injected_kwargs,
            additional_parameters=accepts_kwargs,
        )

    return decorator


__all__ = ["tool"]
