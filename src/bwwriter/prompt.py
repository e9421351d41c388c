"""
Prompt templating for the structured-output contract.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from .types import Message, Role

SCHEMA_DIRECTIVE = (
    "Return only a valid JSON object (no extra text) matching this schema:"
    "\n\n======\n\n{schema}\n\n======\n"
)

# Indexed by failed attempt number (1-based); the last entry repeats.
CORRECTIVE_NOTES = [
    "Your previous reply could not be used: {error}. "
    "Reply again with a JSON object that matches the schema.",
    "Your previous reply was rejected again: {error}. "
    "Respond with ONLY the JSON object. No prose, no markdown, no code fences. "
    "Every required field must be present with the correct type.",
    "Final warning: {error}. Output exactly one JSON object matching the schema "
    "and nothing else.",
]


class PromptBuilder:
    """Render the messages sent to a provider for one structured invocation."""

    def __init__(self, directive: str = SCHEMA_DIRECTIVE, notes: Optional[List[str]] = None):
        self.directive = directive
        self.notes = notes or list(CORRECTIVE_NOTES)

    def build(
        self,
        prompt: str,
        json_schema: Dict[str, Any],
        system_message: Optional[str] = None,
    ) -> List[Message]:
        messages: List[Message] = []
        if system_message and system_message.strip():
            messages.append(Message(role=Role.SYSTEM, content=system_message.strip()))
        directive = self.directive.format(schema=json.dumps(json_schema))
        messages.append(Message(role=Role.USER, content=f"{prompt}\n\n{directive}"))
        return messages

    def corrective_note(self, attempt: int, error: str) -> Message:
        """System note appended after failed attempt ``attempt``; firmer each time."""
        index = min(max(attempt, 1), len(self.notes)) - 1
        return Message(role=Role.SYSTEM, content=self.notes[index].format(error=error))


__all__ = ["PromptBuilder", "SCHEMA_DIRECTIVE", "CORRECTIVE_NOTES"]
