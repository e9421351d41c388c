"""
Core message and role types for the generation core.

These primitives are provider-agnostic and are reused across transports,
the retry loop, and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class Role(str, Enum):
    """Conversation role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class Message:
    """A single chat message sent to a provider."""

    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        """Return the plain ``{"role", "content"}`` form most chat APIs accept."""
        return {"role": self.role.value, "content": self.content}


def split_system(messages: List[Message]) -> tuple[str, List[Message]]:
    """
    Separate system messages from the conversation.

    Some providers take system instructions as a dedicated parameter rather
    than as messages; this joins them in order and returns the remainder.
    """
    system_parts = [m.content for m in messages if m.role == Role.SYSTEM]
    rest = [m for m in messages if m.role != Role.SYSTEM]
    return "\n\n".join(system_parts), rest


__all__ = ["Role", "Message", "split_system"]
