"""
JSON Schema for schema-definition documents.

Every record type is described by a small declarative document (see
schemas/definitions.py). Documents coming from the built-in table or from
FHIR_SCHEMA_DIR are checked against this contract before they are turned
into RecordSchema objects.
"""

_CARDINALITY_MAX: dict = {
    "oneOf": [
        {"type": "integer", "minimum": 0},
        {"type": "string", "const": "*"},
    ],
    "description": "Upper bound; '*' means unbounded.",
}

_TARGETS: dict = {
    "type": "array",
    "items": {"type": "string", "minLength": 1},
    "uniqueItems": True,
    "description": "Permitted target record types for a Reference.",
}

_BINDING: dict = {
    "type": "object",
    "required": ["strength"],
    "properties": {
        "strength": {
            "type": "string",
            "enum": ["required", "extensible", "preferred", "example"],
        },
        "valueSet": {"type": "string"},
        "codes": {
            "type": "object",
            "description": "Code system URI -> permitted codes.",
            "additionalProperties": {
                "type": "array",
                "items": {"type": "string", "minLength": 1},
            },
        },
    },
    "additionalProperties": False,
}

_ALTERNATIVE: dict = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {"type": "string", "minLength": 1},
        "targets": _TARGETS,
    },
    "additionalProperties": False,
}

_FIELD: dict = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "pattern": "^[A-Za-z][A-Za-z0-9_]*$"},
        "type": {"type": "string", "minLength": 1},
        "choice": {"type": "array", "items": _ALTERNATIVE, "minItems": 2},
        "min": {"type": "integer", "minimum": 0},
        "max": _CARDINALITY_MAX,
        "targets": _TARGETS,
        "binding": _BINDING,
        "modifier": {"type": "boolean"},
    },
    "oneOf": [
        {"required": ["type"], "not": {"required": ["choice"]}},
        {"required": ["choice"], "not": {"required": ["type"]}},
    ],
    "additionalProperties": False,
}

SCHEMA_DEFINITION_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Record schema definition",
    "description": "Declarative description of one record type.",
    "type": "object",
    "required": ["name", "fields"],
    "properties": {
        "name": {"type": "string", "pattern": "^[A-Z][A-Za-z0-9]*(\\.[A-Z][A-Za-z0-9]*)*$"},
        "category": {"type": "string", "enum": ["resource", "datatype", "backbone"]},
        "base": {"type": "string", "minLength": 1},
        "abstract": {"type": "boolean"},
        "renames": {
            "type": "object",
            "additionalProperties": {"type": "string", "pattern": "^[A-Za-z_][A-Za-z0-9_]*$"},
        },
        "fields": {"type": "array", "items": _FIELD},
    },
    "additionalProperties": False,
}
