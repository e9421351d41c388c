"""
Built-in toolbox served by default.

- ``echo``: returns its parameters unchanged
- ``summarize_text`` / ``extract_keywords``: generation-backed text tools with
  deterministic fallbacks

Usage:
    from bwwriter.toolbox import get_all_tools

    registry = ToolRegistry(get_all_tools(GenerationClient(), "claude3_haiku"))
"""

from typing import List, Optional

from ..generation import GenerationClient
from ..models import DEFAULT_PRESET
from ..tools import Tool
from . import basic_tools, text_tools

__all__ = ["basic_tools", "text_tools", "get_all_tools"]


def get_all_tools(client: Optional[GenerationClient] = None, llm: str = DEFAULT_PRESET) -> List[Tool]:
    """
    Get every built-in tool.

    Args:
        client: Generation client used by the text tools (a fresh one if omitted).
        llm: Preset the text tools invoke.
    """
    tools: List[Tool] = [basic_tools.echo]
    tools.extend(text_tools.get_tools(client or GenerationClient(), llm))
    return tools
