"""
Exception taxonomy for the record engine.

Two families:
- SchemaError: registry / schema misuse. Always a programmer or
  configuration error, raised immediately.
- DecodeError: a codec could not turn external input into a RecordInstance.
  Every DecodeError carries the field path where decoding stopped.

Validation problems are NOT exceptions; see services.validation.ValidationIssue.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Schema / registry errors
# ---------------------------------------------------------------------------

class SchemaError(Exception):
    """Base class for registry and schema-definition errors."""


class DuplicateSchema(SchemaError):
    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Schema already registered: {type_name}")


class UnknownType(SchemaError):
    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Unknown record type: {type_name}")


class InvalidSchema(SchemaError):
    """A schema definition breaks one or more structural invariants."""

    def __init__(self, type_name: str, problems: list[str]):
        self.type_name = type_name
        self.problems = list(problems)
        joined = "; ".join(self.problems)
        super().__init__(f"Invalid schema '{type_name}': {joined}")


class UnknownField(SchemaError):
    def __init__(self, type_name: str, field_name: str):
        self.type_name = type_name
        self.field_name = field_name
        super().__init__(f"'{type_name}' has no field named '{field_name}'")


class RegistryFrozen(SchemaError):
    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Registry is frozen; cannot register '{type_name}'")


# ---------------------------------------------------------------------------
# Decode errors
# ---------------------------------------------------------------------------

class DecodeError(Exception):
    """Base class for codec decode failures. Carries the offending field path."""

    kind = "DecodeError"

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        where = path or "<root>"
        super().__init__(f"{self.kind} at {where}: {message}")


class UnknownTypeError(DecodeError):
    kind = "UnknownType"

    def __init__(self, path: str, type_name: str | None):
        self.type_name = type_name
        if type_name is None:
            message = "missing type discriminator"
        else:
            message = f"unknown record type '{type_name}'"
        super().__init__(path, message)


class ShapeMismatch(DecodeError):
    kind = "ShapeMismatch"


class MalformedPrimitive(DecodeError):
    kind = "MalformedPrimitive"
