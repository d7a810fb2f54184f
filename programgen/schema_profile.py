"""
Schema capability profiles for structured-output backends.

Some inference backends only accept a subset of JSON Schema in their
structured-output mechanism. A capability profile says which constraint
keywords a backend accepts; anything it can't express is stripped from the
schema sent to it, restated as prompt text, and re-checked by pydantic after
the call returns.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel

NUMERIC_BOUND_KEYS = ("minimum", "maximum", "exclusiveMinimum", "exclusiveMaximum")
STRING_LENGTH_KEYS = ("minLength", "maxLength")

# Keys whose values are maps of name -> schema, not schema keywords
_SCHEMA_MAP_KEYS = ("properties", "$defs", "definitions", "patternProperties")


@dataclass(frozen=True)
class SchemaCapabilities:
    """
    What a backend's structured-output schema may contain.

    Attributes:
        name: Profile name for logging
        numeric_bounds: minimum/maximum/exclusive* are accepted
        string_length: minLength/maxLength are accepted
        max_items: maxItems is accepted
        min_items_limit: Largest minItems accepted (None = unlimited)
        integer_type: "integer" is accepted as a type (otherwise sent as "number")
    """
    name: str
    numeric_bounds: bool = True
    string_length: bool = True
    max_items: bool = True
    min_items_limit: Optional[int] = None
    integer_type: bool = True


ANTHROPIC_TOOLS = SchemaCapabilities(
    name="anthropic_tools",
    numeric_bounds=False,
    string_length=False,
    max_items=False,
    min_items_limit=1,
    integer_type=False,
)

FULL_JSON_SCHEMA = SchemaCapabilities(name="full_json_schema")


def _strip(node: Any, caps: SchemaCapabilities) -> Any:
    if isinstance(node, list):
        return [_strip(item, caps) for item in node]
    if not isinstance(node, dict):
        return node

    result: Dict[str, Any] = {}
    for key, value in node.items():
        if key in _SCHEMA_MAP_KEYS and isinstance(value, dict):
            result[key] = {name: _strip(sub, caps) for name, sub in value.items()}
            continue
        if not caps.numeric_bounds and key in NUMERIC_BOUND_KEYS:
            continue
        if not caps.string_length and key in STRING_LENGTH_KEYS:
            continue
        if not caps.max_items and key == "maxItems":
            continue
        if key == "minItems" and caps.min_items_limit is not None:
            result[key] = min(value, caps.min_items_limit)
            continue
        if key == "type" and not caps.integer_type:
            if value == "integer":
                result[key] = "number"
                continue
            if isinstance(value, list):
                result[key] = ["number" if t == "integer" else t for t in value]
                continue
        result[key] = _strip(value, caps)
    return result


def provider_schema(model: Type[BaseModel], caps: SchemaCapabilities) -> Dict[str, Any]:
    """
    Build the JSON schema for a model as a given backend can accept it.

    Args:
        model: Pydantic model describing the expected output
        caps: Capability profile of the target backend

    Returns:
        JSON schema dict with unsupported keywords removed or relaxed
    """
    schema = model.model_json_schema(by_alias=True)
    return _strip(copy.deepcopy(schema), caps)


def _stripped_rules(node: Dict[str, Any], caps: SchemaCapabilities) -> List[str]:
    rules: List[str] = []
    candidates = [node] + [n for n in node.get("anyOf", []) if isinstance(n, dict)]
    for candidate in candidates:
        if not caps.numeric_bounds:
            if "minimum" in candidate:
                rules.append(f">= {candidate['minimum']}")
            if "exclusiveMinimum" in candidate:
                rules.append(f"> {candidate['exclusiveMinimum']}")
            if "maximum" in candidate:
                rules.append(f"<= {candidate['maximum']}")
            if "exclusiveMaximum" in candidate:
                rules.append(f"< {candidate['exclusiveMaximum']}")
        if not caps.integer_type and candidate.get("type") == "integer":
            rules.append("a whole number")
        if not caps.string_length:
            if "minLength" in candidate:
                rules.append(f"at least {candidate['minLength']} characters")
            if "maxLength" in candidate:
                rules.append(f"at most {candidate['maxLength']} characters")
        if not caps.max_items and "maxItems" in candidate:
            rules.append(f"at most {candidate['maxItems']} items")
        min_items = candidate.get("minItems")
        if caps.min_items_limit is not None and min_items is not None and min_items > caps.min_items_limit:
            rules.append(f"at least {min_items} items")
    return rules


def constraint_hints(model: Type[BaseModel], caps: SchemaCapabilities) -> List[str]:
    """
    Restate the constraints a backend can't enforce as prompt lines.

    Args:
        model: Pydantic model describing the expected output
        caps: Capability profile of the target backend

    Returns:
        Lines like "ExerciseSlot.sets: >= 1, <= 10, a whole number"
    """
    schema = model.model_json_schema(by_alias=True)
    objects = [(schema.get("title", model.__name__), schema)]
    objects += list(schema.get("$defs", {}).items())

    hints: List[str] = []
    for title, obj in objects:
        for field_name, field_schema in obj.get("properties", {}).items():
            rules = _stripped_rules(field_schema, caps)
            if rules:
                hints.append(f"{title}.{field_name}: {', '.join(rules)}")
    return hints


def render_constraint_block(model: Type[BaseModel], caps: SchemaCapabilities) -> str:
    """Format constraint hints as a section to append to a system prompt."""
    hints = constraint_hints(model, caps)
    if not hints:
        return ""
    lines = "\n".join(f"- {hint}" for hint in hints)
    return f"\n\nOUTPUT FIELD RULES (must hold for every value you produce):\n{lines}"
