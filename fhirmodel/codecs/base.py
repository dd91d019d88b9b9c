"""
Shared schema walk for both wire formats.

Demonstrates:
- One generic engine driven by RecordSchema data (no per-type classes)
- Template-method hooks: the Tree and Tagged-Object codecs only differ in
  how a record's type is carried, how field keys are named, and how
  primitives and references are written
- Atomic decoding: a RecordInstance is only returned once the whole input
  has been walked, errors carry the field path where decoding stopped
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, Mapping

from fhirmodel.errors import DecodeError, MalformedPrimitive, ShapeMismatch, UnknownTypeError
from fhirmodel.models.primitives import PrimitiveKind
from fhirmodel.models.record import (
    FieldValue,
    Primitive,
    RecordInstance,
    Reference,
    Repeated,
    Single,
)
from fhirmodel.models.schema import FieldDescriptor, FieldSlot, RecordSchema

if TYPE_CHECKING:
    from fhirmodel.services.registry import SchemaRegistry

logger = logging.getLogger(__name__)

REFERENCE_KEYS = ("reference", "type", "display")


def join_path(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


class RecordCodec:
    """Base class for codecs. Subclasses implement the ``_``-prefixed hooks."""

    #: keys that carry the record type rather than a field
    header_keys: tuple[str, ...] = ()

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def encode(self, instance: RecordInstance) -> dict[str, Any]:
        """Encode any RecordInstance, valid or not. Only the top-level type must be registered."""
        return self._encode_record(instance, self.registry.lookup(instance.type_name))

    def decode(self, node: Any, type_name: str | None = None) -> RecordInstance:
        """
        Decode one record. *type_name* is needed only for records whose
        type is not carried by the input itself (e.g. a Tree Format datatype).
        """
        try:
            schema = self._schema_for(node, type_name, "")
            return self._decode_record(node, schema, "")
        except DecodeError as exc:
            logger.debug("Decode failed: %s", exc)
            raise
        except RecursionError as exc:
            raise DecodeError("", "input is nested too deeply") from exc

    # -----------------------------------------------------------------------
    # Hooks
    # -----------------------------------------------------------------------

    def _schema_for(self, node: Any, expected: str | None, path: str) -> RecordSchema:
        raise NotImplementedError

    def _write_header(self, node: dict[str, Any], schema: RecordSchema) -> None:
        raise NotImplementedError

    def _write_type_name(self, node: dict[str, Any], type_name: str) -> None:
        raise NotImplementedError

    def _is_header(self, key: str, schema: RecordSchema) -> bool:
        return key in self.header_keys

    def _field_key(self, schema: RecordSchema, wire_key: str) -> str:
        """Key written for a field on encode."""
        return wire_key

    def _wire_key(self, schema: RecordSchema, key: str) -> str:
        """Storage key for an input key on decode."""
        return key

    def _encode_primitive(self, value: Any) -> Any:
        raise NotImplementedError

    def _decode_primitive(self, kind: PrimitiveKind, node: Any) -> Any:
        """Return the native value; raise ValueError if *node* is malformed."""
        raise NotImplementedError

    def _encode_reference(self, reference: Reference) -> dict[str, Any]:
        node: dict[str, Any] = {}
        if reference.target_identifier is not None:
            node["reference"] = reference.target_identifier
        if reference.target_type_hint is not None:
            node["type"] = reference.target_type_hint
        if reference.display is not None:
            node["display"] = reference.display
        for key, extra in reference.extras.items():
            node.setdefault(key, copy.deepcopy(extra))
        return node

    def _decode_reference(self, node: Any, path: str) -> Reference:
        if not isinstance(node, Mapping):
            raise ShapeMismatch(path, f"expected a Reference object, got {type(node).__name__}")
        for key in REFERENCE_KEYS:
            if key in node and not isinstance(node[key], str):
                raise MalformedPrimitive(join_path(path, key), "expected a string")
        return Reference(
            target_identifier=node.get("reference"),
            target_type_hint=node.get("type"),
            display=node.get("display"),
            extras={
                k: copy.deepcopy(v)
                for k, v in node.items()
                if k not in REFERENCE_KEYS and k not in self.header_keys
            },
        )

    # -----------------------------------------------------------------------
    # Encoding walk
    # -----------------------------------------------------------------------

    def _encode_record(self, record: RecordInstance, schema: RecordSchema) -> dict[str, Any]:
        node: dict[str, Any] = {}
        self._write_header(node, schema)
        for descriptor, slot in schema.iter_slots():
            value = record.fields.get(slot.key)
            if value is None:
                continue
            node[self._field_key(schema, slot.key)] = self._encode_value(descriptor, value)
        for key, value in record.fields.items():
            # keys the schema does not declare still encode, by runtime shape
            if schema.slot(key) is None:
                node.setdefault(key, self._encode_loose(value))
        for key, extra in record.extras.items():
            node.setdefault(key, copy.deepcopy(extra))
        return node

    def _encode_value(self, descriptor: FieldDescriptor, value: FieldValue) -> Any:
        if isinstance(value, Repeated):
            items = [self._encode_item(item) for item in value.items]
            if not descriptor.is_repeated and len(items) == 1:
                return items[0]
            return items
        encoded = self._encode_item(value)
        return [encoded] if descriptor.is_repeated else encoded

    def _encode_item(self, value: FieldValue) -> Any:
        if isinstance(value, Primitive):
            return self._encode_primitive(value.value)
        if isinstance(value, Reference):
            return self._encode_reference(value)
        if isinstance(value, Single):
            child = value.record
            schema = self.registry.get(child.type_name)
            if schema is None:
                return self._encode_unregistered(child)
            return self._encode_record(child, schema)
        raise TypeError(f"cannot encode nested {type(value).__name__}")

    def _encode_loose(self, value: FieldValue) -> Any:
        if isinstance(value, Repeated):
            return [self._encode_item(item) for item in value.items]
        return self._encode_item(value)

    def _encode_unregistered(self, record: RecordInstance) -> dict[str, Any]:
        """Nested record of an unknown type: type name, fields and extras as they are."""
        node: dict[str, Any] = {}
        self._write_type_name(node, record.type_name)
        for key, value in record.fields.items():
            node[key] = self._encode_loose(value)
        for key, extra in record.extras.items():
            node.setdefault(key, copy.deepcopy(extra))
        return node

    # -----------------------------------------------------------------------
    # Decoding walk
    # -----------------------------------------------------------------------

    def _decode_record(self, node: Any, schema: RecordSchema, path: str) -> RecordInstance:
        if not isinstance(node, Mapping):
            raise ShapeMismatch(path, f"expected an object for {schema.name}, got {type(node).__name__}")
        fields: dict[str, FieldValue] = {}
        extras: dict[str, Any] = {}
        for key, child in node.items():
            if self._is_header(key, schema):
                continue
            wire_key = self._wire_key(schema, key)
            resolved = schema.slot(wire_key)
            if resolved is None:
                extras[key] = copy.deepcopy(child)
                continue
            descriptor, slot = resolved
            if wire_key in fields:
                raise ShapeMismatch(join_path(path, key), "field given under two names")
            fields[wire_key] = self._decode_value(descriptor, slot, child, join_path(path, key))
        return RecordInstance(schema.name, fields, extras)

    def _decode_value(
        self, descriptor: FieldDescriptor, slot: FieldSlot, node: Any, path: str
    ) -> FieldValue:
        if isinstance(node, list):
            # a sequence on a max=1 field is kept so the validator can report it
            return Repeated(
                tuple(
                    self._decode_item(slot, item, f"{path}[{index}]")
                    for index, item in enumerate(node)
                )
            )
        if descriptor.is_repeated:
            raise ShapeMismatch(
                path, f"{descriptor.name} allows {descriptor.cardinality()} and must be a sequence"
            )
        return self._decode_item(slot, node, path)

    def _decode_item(self, slot: FieldSlot, node: Any, path: str) -> FieldValue:
        if isinstance(node, list):
            raise ShapeMismatch(path, "nested sequences are not allowed")
        if slot.primitive is not None:
            try:
                return Primitive(self._decode_primitive(slot.primitive, node))
            except ValueError as exc:
                raise MalformedPrimitive(path, str(exc)) from exc
        if slot.is_reference:
            return self._decode_reference(node, path)
        expected = None if slot.is_any_resource else slot.type_name
        schema = self._schema_for(node, expected, path)
        return Single(self._decode_record(node, schema, path))

    def _registered(self, type_name: Any, path: str) -> RecordSchema:
        schema = self.registry.get(type_name) if isinstance(type_name, str) else None
        if schema is None:
            raise UnknownTypeError(path, str(type_name))
        return schema
