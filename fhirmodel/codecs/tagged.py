"""
Tagged-Object codec: plain Python dicts with native scalar values.

Every record object carries its type under ``__type__`` (references too,
tagged ``"Reference"``), field keys use the in-memory names from the
schema's rename table (``class_``), and primitives keep their native types
(``Decimal``, ``date``, ``bytes`` ...) instead of text.
"""

from __future__ import annotations

from typing import Any, Mapping

from fhirmodel.codecs.base import RecordCodec
from fhirmodel.errors import ShapeMismatch
from fhirmodel.models.primitives import PrimitiveKind, coerce_native
from fhirmodel.models.record import Reference
from fhirmodel.models.schema import REFERENCE_TYPE, RecordSchema

TYPE_TAG = "__type__"


class TaggedCodec(RecordCodec):
    header_keys = (TYPE_TAG,)

    def _write_header(self, node: dict[str, Any], schema: RecordSchema) -> None:
        self._write_type_name(node, schema.name)

    def _write_type_name(self, node: dict[str, Any], type_name: str) -> None:
        node[TYPE_TAG] = type_name

    def _schema_for(self, node: Any, expected: str | None, path: str) -> RecordSchema:
        # the tag wins over the declared type; the validator reports a mismatch
        tag = self._tag(node, path)
        return self._registered(tag, path)

    def _tag(self, node: Any, path: str) -> Any:
        if not isinstance(node, Mapping):
            raise ShapeMismatch(path, f"expected a tagged object, got {type(node).__name__}")
        if TYPE_TAG not in node:
            raise ShapeMismatch(path, f"missing {TYPE_TAG} tag")
        return node[TYPE_TAG]

    def _field_key(self, schema: RecordSchema, wire_key: str) -> str:
        return schema.local_name(wire_key)

    def _wire_key(self, schema: RecordSchema, key: str) -> str:
        return schema.wire_name(key)

    def _encode_primitive(self, value: Any) -> Any:
        return value

    def _decode_primitive(self, kind: PrimitiveKind, node: Any) -> Any:
        return coerce_native(kind, node)

    def _encode_reference(self, reference: Reference) -> dict[str, Any]:
        node = {TYPE_TAG: REFERENCE_TYPE}
        node.update(super()._encode_reference(reference))
        return node

    def _decode_reference(self, node: Any, path: str) -> Reference:
        tag = self._tag(node, path)
        if tag != REFERENCE_TYPE:
            raise ShapeMismatch(path, f"expected a {REFERENCE_TYPE}, got {tag!r}")
        return super()._decode_reference(node, path)
