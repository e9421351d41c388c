"""
Registry for managing and discovering tools.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from ..exceptions import ToolValidationError
from .base import ParamMetadata, Tool
from .decorators import tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Name-to-tool mapping consulted by the dispatcher.

    Tools are registered once at startup, either as prebuilt Tool instances
    or through the ``tool`` decorator. Names are unique.
    """

    def __init__(self, tools: Optional[List[Tool]] = None) -> None:
        self._tools: Dict[str, Tool] = {}
        for tool_instance in tools or []:
            self.register(tool_instance)

    def register(self, tool_instance: Tool) -> Tool:
        """
        Register a pre-existing Tool instance.

        Raises:
            ToolValidationError: If the object is not a Tool or the name is taken.
        """
        if not isinstance(tool_instance, Tool):
            raise ToolValidationError(
                tool_name=str(getattr(tool_instance, "name", "<unknown>")),
                param_name="tool",
                issue=f"Expected a Tool instance, got {type(tool_instance).__name__}",
                suggestion="Wrap the handler with @tool(...) or construct Tool(...) first",
            )
        if tool_instance.name in self._tools:
            raise ToolValidationError(
                tool_name=tool_instance.name,
                param_name="name",
                issue="A tool with this name is already registered",
                suggestion="Pick a unique tool name",
            )
        self._tools[tool_instance.name] = tool_instance
        logger.debug("Registered tool %s", tool_instance.name)
        return tool_instance

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> List[Tool]:
        """Return all registered tools in registration order."""
        return list(self._tools.values())

    def definitions(self) -> List[Dict[str, Any]]:
        """Return ``{name, description, parameters}`` for every tool."""
        return [t.definition() for t in self._tools.values()]

    def required_credentials(self) -> List[str]:
        """Union of every tool's credential variables, first occurrence order."""
        seen: Dict[str, None] = {}
        for tool_instance in self._tools.values():
            for var in tool_instance.credentials:
                seen.setdefault(var, None)
        return list(seen)

    def tool(
        self,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        param_metadata: Optional[Dict[str, ParamMetadata]] = None,
        credentials: Optional[List[str]] = None,
        output_model: Optional[Type[BaseModel]] = None,
        injected_kwargs: Optional[Dict[str, Any]] = None,
    ) -> Callable[[Callable[..., Any]], Tool]:
        """Decorator to register a function as a tool in this registry."""

        def decorator(func: Callable[..., Any]) -> Tool:
            tool_instance = tool(
                name=name,
                description=description,
                param_metadata=param_metadata,
                credentials=credentials,
                output_model=output_model,
                injected_kwargs=injected_kwargs,
            )(func)
            return self.register(tool_instance)

        return decorator


__all__ = ["ToolRegistry"]
