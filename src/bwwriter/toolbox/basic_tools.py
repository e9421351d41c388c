"""
Tools that need no provider.
"""

from typing import Any, Dict

from ..tools import tool


@tool(description="Return the given parameters unchanged")
def echo(**parameters: Any) -> Dict[str, Any]:
    return dict(parameters)
