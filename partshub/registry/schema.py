"""JSON Schemas for registry.yaml and parts.yaml.

These are the structural definitions the validator walks before a
document is turned into a ``RegistrySpec`` or ``PartsSpec``. They can be
exported and used with any JSON Schema validator.
"""

REGISTRY_API_VERSION = "0.1"
REGISTRY_KIND = "ksonnet.io/registry"
PARTS_API_VERSION = "0.0.1"
PARTS_KIND = "ksonnet.io/parts"

REGISTRY_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Parts registry inventory",
    "type": "object",
    "properties": {
        "apiVersion": {"type": "string"},
        "kind": {"type": "string"},
        # Commit the inventory was fetched at; written by the cache.
        "version": {"type": ["string", "number"]},
        "libraries": {
            "type": ["object", "null"],
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "version": {"type": ["string", "number"]},
                    "path": {"type": "string"},
                },
            },
        },
    },
}

PARTS_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Parts library manifest",
    "type": "object",
    "required": ["name"],
    "properties": {
        "apiVersion": {"type": "string"},
        "kind": {"type": "string"},
        "name": {"type": "string", "minLength": 1},
        "version": {"type": ["string", "number"]},
        "description": {"type": "string"},
        "author": {"type": "string"},
        "contributors": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "email": {"type": "string"},
                },
            },
        },
        "repository": {
            "type": "object",
            "properties": {
                "type": {"type": "string"},
                "url": {"type": "string"},
            },
        },
        "bugs": {
            "type": "object",
            "properties": {"url": {"type": "string"}},
        },
        "keywords": {"type": "array", "items": {"type": "string"}},
        "quickStart": {"type": "object"},
        "license": {"type": "string"},
        "dependencies": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "constraint": {"type": "string"},
                },
            },
        },
    },
}


def get_schema(kind: str) -> dict:
    """Return the schema for ``"registry"`` or ``"parts"``."""
    schemas = {"registry": REGISTRY_SCHEMA, "parts": PARTS_SCHEMA}
    if kind not in schemas:
        raise KeyError(f"unknown schema {kind!r}; expected one of {sorted(schemas)}")
    return schemas[kind]
