"""
Tests for schema capability profiles.

The Anthropic tools profile strips keywords the backend rejects; the rules
they carried reappear as prompt text so the model still sees them.
"""

from programgen.plan_schemas import ProgramSkeleton, ValidationResult
from programgen.schema_profile import (
    ANTHROPIC_TOOLS,
    FULL_JSON_SCHEMA,
    SchemaCapabilities,
    constraint_hints,
    provider_schema,
    render_constraint_block,
)


def _walk(node):
    if isinstance(node, dict):
        yield node
        for value in node.values():
            yield from _walk(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk(item)


def test_full_profile_keeps_schema():
    assert provider_schema(ProgramSkeleton, FULL_JSON_SCHEMA) == ProgramSkeleton.model_json_schema(by_alias=True)


def test_tools_profile_strips_bounds():
    schema = provider_schema(ProgramSkeleton, ANTHROPIC_TOOLS)

    for node in _walk(schema):
        for key in ("minimum", "maximum", "minLength", "maxLength", "maxItems"):
            assert key not in node or isinstance(node.get(key), dict)
        assert node.get("type") != "integer"
        if "minItems" in node and not isinstance(node["minItems"], dict):
            assert node["minItems"] <= 1


def test_field_names_survive_stripping():
    """A field literally named like a keyword is a property name, not a keyword."""
    schema = provider_schema(ProgramSkeleton, ANTHROPIC_TOOLS)
    slot = schema["$defs"]["ExerciseSlot"]["properties"]

    assert {"slot_id", "sets", "reps", "rest_seconds", "rpe_target"} <= set(slot)
    assert slot["sets"]["type"] == "number"


def test_pass_alias_in_schema():
    schema = provider_schema(ValidationResult, ANTHROPIC_TOOLS)
    assert "pass" in schema["properties"]
    assert "passed" not in schema["properties"]


def test_min_items_clamped():
    caps = SchemaCapabilities(name="tight", min_items_limit=0)
    schema = provider_schema(ProgramSkeleton, caps)
    assert schema["properties"]["weeks"]["minItems"] == 0


def test_hints_restate_stripped_rules():
    hints = constraint_hints(ProgramSkeleton, ANTHROPIC_TOOLS)

    assert "ExerciseSlot.sets: >= 1, <= 10, a whole number" in hints
    assert "ExerciseSlot.rpe_target: >= 1, <= 10" in hints
    assert "ProgramDay.day_of_week: >= 1, <= 7, a whole number" in hints


def test_no_hints_when_backend_enforces_everything():
    assert constraint_hints(ProgramSkeleton, FULL_JSON_SCHEMA) == []
    assert render_constraint_block(ProgramSkeleton, FULL_JSON_SCHEMA) == ""


def test_constraint_block_format():
    block = render_constraint_block(ProgramSkeleton, ANTHROPIC_TOOLS)

    assert block.startswith("\n\nOUTPUT FIELD RULES")
    assert "\n- ExerciseSlot.sets: >= 1, <= 10, a whole number" in block
