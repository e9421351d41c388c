"""
Deterministic mock data for mock mode and offline runs.

The dispatcher substitutes a mock-data provider's output for real tool
execution when the server runs in mock mode. Output is derived from fixed
fixtures where one is registered for a tool, otherwise from the tool's
declared output model, so it is stable across runs and matches the shape
callers expect.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Protocol, Union

if TYPE_CHECKING:
    from .tools.base import Tool

logger = logging.getLogger(__name__)

JsonSchema = Dict[str, Any]
Fixture = Union[Dict[str, Any], Callable[[Dict[str, Any]], Dict[str, Any]]]


def _resolve_ref(ref: str, defs: Mapping[str, Any]) -> JsonSchema:
    name = ref.rsplit("/", 1)[-1]
    return defs.get(name, {})


def sample_from_schema(
    schema: JsonSchema,
    name: str = "value",
    defs: Optional[Mapping[str, Any]] = None,
) -> Any:
    """
    Build a deterministic value that satisfies a (pydantic-generated) JSON schema.

    Covers the subset pydantic emits for plain models: ``$ref``/``$defs``,
    ``anyOf``, ``enum``/``const``, defaults, scalars, arrays and objects.
    """
    defs = defs if defs is not None else schema.get("$defs", {})

    if "$ref" in schema:
        return sample_from_schema(_resolve_ref(schema["$ref"], defs), name, defs)
    if "default" in schema:
        return schema["default"]
    if "const" in schema:
        return schema["const"]
    if schema.get("enum"):
        return schema["enum"][0]
    for union_key in ("anyOf", "oneOf"):
        if schema.get(union_key):
            options = [o for o in schema[union_key] if o.get("type") != "null"]
            return sample_from_schema((options or schema[union_key])[0], name, defs)
    if schema.get("allOf"):
        return sample_from_schema(schema["allOf"][0], name, defs)

    kind = schema.get("type", "object" if "properties" in schema else "string")
    if isinstance(kind, list):
        kind = next((k for k in kind if k != "null"), "null")

    if kind == "string":
        text = f"mock {name}"
        min_length = schema.get("minLength", 0)
        if len(text) < min_length:
            text = text.ljust(min_length, "x")
        return text
    if kind == "integer":
        if "minimum" in schema:
            return int(schema["minimum"])
        if "exclusiveMinimum" in schema:
            return int(schema["exclusiveMinimum"]) + 1
        return 0
    if kind == "number":
        if "minimum" in schema:
            return float(schema["minimum"])
        if "exclusiveMinimum" in schema:
            return float(schema["exclusiveMinimum"]) + 1.0
        return 0.0
    if kind == "boolean":
        return False
    if kind == "null":
        return None
    if kind == "array":
        count = max(schema.get("minItems", 0), 1)
        if "maxItems" in schema:
            count = min(count, schema["maxItems"])
        items = schema.get("items", {"type": "string"})
        return [sample_from_schema(items, name, defs) for _ in range(count)]
    if kind == "object":
        properties = schema.get("properties", {})
        return {
            prop: sample_from_schema(prop_schema, prop, defs)
            for prop, prop_schema in properties.items()
        }
    logger.debug("Unsupported schema type %r for %s; using null", kind, name)
    return None


class MockDataProvider(Protocol):
    """Anything that can produce canned output for a tool call."""

    def get(self, tool: "Tool", parameters: Dict[str, Any]) -> Dict[str, Any]:
        ...


class FixtureMockProvider:
    """
    Mock provider backed by per-tool fixtures.

    Fixtures are either a fixed dict or a callable taking the request
    parameters. Tools without a fixture get a sample built from their output
    model, or a generic echo of the call when they declare none.
    """

    def __init__(self, fixtures: Optional[Dict[str, Fixture]] = None):
        self.fixtures: Dict[str, Fixture] = dict(fixtures or {})

    def register(self, tool_name: str, fixture: Fixture) -> None:
        self.fixtures[tool_name] = fixture

    def get(self, tool: "Tool", parameters: Dict[str, Any]) -> Dict[str, Any]:
        fixture = self.fixtures.get(tool.name)
        if fixture is not None:
            data = fixture(dict(parameters)) if callable(fixture) else fixture
            return dict(data)
        if tool.output_model is not None:
            sample = sample_from_schema(tool.output_model.model_json_schema())
            # Round-trip through the model so the mock is exactly what a real call returns.
            return tool.output_model.model_validate(sample).model_dump(mode="json")
        return {"tool": tool.name, "parameters": dict(parameters), "mock": True}


__all__ = ["sample_from_schema", "MockDataProvider", "FixtureMockProvider"]
