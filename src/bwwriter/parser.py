"""
Extraction of structured JSON objects from free-text model output.

Providers do not always honor structured-output modes, so transports fall
back to scraping the response text. The strategies run in a fixed order:

1. the whole text is a JSON object
2. a fenced code block (```json ... ``` or ``` ... ```) holds one
3. the first balanced ``{...}`` span in the text parses as one
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

JsonObject = Dict[str, Any]
Strategy = Callable[[str], Optional[JsonObject]]

_FENCE_RE = re.compile(r"```[ \t]*([A-Za-z0-9_-]*)[ \t]*\n?(.*?)```", re.DOTALL)

# Balanced spans tried per text, in start order
MAX_BALANCED_CANDIDATES = 64


def _load_object(candidate: str) -> Optional[JsonObject]:
    """Parse ``candidate`` as JSON, returning it only if it is an object."""
    normalized = candidate.strip().strip("` \n")
    if not normalized:
        return None
    attempts = [normalized, normalized.replace("'", '"')]
    for attempt in attempts:
        try:
            # strict=False tolerates raw newlines inside strings
            value = json.loads(attempt, strict=False)
        except json.JSONDecodeError:
            continue
        except RecursionError:
            return None
        if isinstance(value, dict):
            return value
        return None
    return None


def find_balanced_spans(text: str) -> List[Tuple[int, int]]:
    """
    Locate balanced ``{...}`` spans in one pass over ``text``.

    Returns ``(start, end)`` slice bounds ordered by start. A quote opens a
    string literal only inside an open brace, and braces within string
    literals are ignored.
    """
    spans: List[Tuple[int, int]] = []
    open_braces: List[int] = []
    in_string = False
    escaped = False
    for idx, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = bool(open_braces)
        elif char == "{":
            open_braces.append(idx)
        elif char == "}" and open_braces:
            spans.append((open_braces.pop(), idx + 1))
    spans.sort()
    return spans


def find_balanced_objects(text: str) -> List[str]:
    """Balanced ``{...}`` substrings of ``text`` in order of their start."""
    return [text[start:end] for start, end in find_balanced_spans(text)]


def _first_balanced(text: str) -> Optional[JsonObject]:
    for start, end in find_balanced_spans(text)[:MAX_BALANCED_CANDIDATES]:
        parsed = _load_object(text[start:end])
        if parsed is not None:
            return parsed
    return None


def parse_direct(text: str) -> Optional[JsonObject]:
    return _load_object(text)


def parse_fenced(text: str) -> Optional[JsonObject]:
    for _lang, body in _FENCE_RE.findall(text):
        parsed = _load_object(body)
        if parsed is None:
            parsed = _first_balanced(body)
        if parsed is not None:
            return parsed
    return None


def parse_balanced(text: str) -> Optional[JsonObject]:
    return _first_balanced(text)


DEFAULT_STRATEGIES: List[Strategy] = [parse_direct, parse_fenced, parse_balanced]


@dataclass
class StructuredOutputParser:
    """Robustly extract a JSON object from model output."""

    strategies: List[Strategy] = field(default_factory=lambda: list(DEFAULT_STRATEGIES))
    max_payload_chars: int = 200_000

    def parse(self, text: Optional[str]) -> Optional[JsonObject]:
        """
        Run each strategy in order and return the first object found.

        Returns None for empty input, oversized input, or text without any
        parseable JSON object.
        """
        if not text or not text.strip():
            return None
        if self.max_payload_chars and len(text) > self.max_payload_chars:
            return None
        for strategy in self.strategies:
            result = strategy(text)
            if result is not None:
                return result
        return None


_default_parser = StructuredOutputParser()


def extract_structured(text: Optional[str]) -> Optional[JsonObject]:
    """Extract the first JSON object from ``text`` using the default strategies."""
    return _default_parser.parse(text)


__all__ = [
    "StructuredOutputParser",
    "extract_structured",
    "find_balanced_objects",
    "find_balanced_spans",
    "MAX_BALANCED_CANDIDATES",
    "parse_direct",
    "parse_fenced",
    "parse_balanced",
    "DEFAULT_STRATEGIES",
]
