"""
Tools package exports.
"""

from .base import ParamMetadata, Tool, ToolParameter
from .decorators import tool
from .registry import ToolRegistry

__all__ = ["Tool", "ToolParameter", "ToolRegistry", "tool", "ParamMetadata"]
