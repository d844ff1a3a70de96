"""Schema validator — structural checks for registry.yaml and parts.yaml.

Walks the schemas in ``partshub.registry.schema`` directly, covering the
required/type/minLength checks and map-valued objects that the two
manifests use.
"""

from __future__ import annotations

from partshub.registry.schema import get_schema


def validate_schema(data, kind: str) -> list[str]:
    """Validate a parsed manifest against its schema.

    Args:
        data: The parsed YAML document.
        kind: ``"registry"`` or ``"parts"``.

    Returns:
        List of error messages. Empty list means valid.
    """
    issues: list[str] = []
    _validate_node(data, get_schema(kind), "", issues)
    return issues


def _validate_node(data, schema: dict, path: str, issues: list[str]):
    schema_type = schema.get("type")

    if schema_type and not _type_matches(data, schema_type):
        issues.append(f"{path or '/'}: expected type '{schema_type}', got {type(data).__name__}")
        return

    if isinstance(schema_type, list):
        # Walk the node as whichever listed type it matched.
        schema_type = next(t for t in schema_type if _type_matches(data, t))

    if schema_type == "string":
        min_len = schema.get("minLength", 0)
        if len(data) < min_len:
            issues.append(f"{path or '/'}: string too short (min {min_len}, got {len(data)})")

    if schema_type == "object":
        for req in schema.get("required", []):
            if req not in data:
                issues.append(f"{path or '/'}: missing required property '{req}'")

        props = schema.get("properties", {})
        extra = schema.get("additionalProperties")
        for key, value in data.items():
            if key in props:
                _validate_node(value, props[key], f"{path}.{key}", issues)
            elif isinstance(extra, dict):
                _validate_node(value, extra, f"{path}.{key}", issues)

    if schema_type == "array":
        items_schema = schema.get("items")
        if items_schema:
            for i, item in enumerate(data):
                _validate_node(item, items_schema, f"{path}[{i}]", issues)


def _type_matches(data, schema_type) -> bool:
    if isinstance(schema_type, list):
        return any(_type_matches(data, t) for t in schema_type)
    type_map = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
        "null": type(None),
    }
    expected = type_map.get(schema_type)
    if expected is None:
        return True
    if schema_type in ("integer", "number") and isinstance(data, bool):
        return False
    return isinstance(data, expected)
