"""
Tree Format codec: the JSON document representation.

- Resources carry their type in ``resourceType``; datatypes and backbone
  elements are typed by the field that holds them.
- Keys are wire names (``class``, ``valueString``).
- Primitives are text-encoded: dates and times as strings, binary as
  base64. Decimals stay ``decimal.Decimal`` inside the tree so precision
  survives; ``loads`` and ``dumps`` keep them exact in JSON text too.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping

import simplejson

from fhirmodel.codecs.base import RecordCodec, join_path
from fhirmodel.errors import DecodeError, ShapeMismatch, UnknownTypeError
from fhirmodel.models.primitives import PrimitiveKind, parse_text, to_text
from fhirmodel.models.record import RecordInstance
from fhirmodel.models.schema import RecordSchema

RESOURCE_TYPE_KEY = "resourceType"


def _finite_only(node: Any) -> Any:
    """Replace NaN and infinite decimals with their text; JSON has no literal for them."""
    if isinstance(node, Decimal) and not node.is_finite():
        return str(node)
    if isinstance(node, dict):
        return {key: _finite_only(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_finite_only(value) for value in node]
    return node


class TreeCodec(RecordCodec):
    """
    Usage:
        codec = TreeCodec(registry)
        appointment = codec.loads(text)
        text = codec.dumps(appointment)
    """

    def _is_header(self, key: str, schema: RecordSchema) -> bool:
        return key == RESOURCE_TYPE_KEY and schema.is_resource

    def _write_header(self, node: dict[str, Any], schema: RecordSchema) -> None:
        if schema.is_resource:
            self._write_type_name(node, schema.name)

    def _write_type_name(self, node: dict[str, Any], type_name: str) -> None:
        node[RESOURCE_TYPE_KEY] = type_name

    def _schema_for(self, node: Any, expected: str | None, path: str) -> RecordSchema:
        if expected is not None:
            schema = self._registered(expected, path)
            if schema.is_resource and isinstance(node, Mapping):
                found = node.get(RESOURCE_TYPE_KEY, schema.name)
                if found != schema.name:
                    raise ShapeMismatch(
                        join_path(path, RESOURCE_TYPE_KEY), f"expected {schema.name}, got {found!r}"
                    )
            return schema
        if not isinstance(node, dict):
            raise ShapeMismatch(path, f"expected a resource object, got {type(node).__name__}")
        type_name = node.get(RESOURCE_TYPE_KEY)
        if type_name is None:
            raise UnknownTypeError(path, None)
        schema = self._registered(type_name, path)
        if not schema.is_resource:
            raise UnknownTypeError(path, type_name)
        return schema

    def _encode_primitive(self, value: Any) -> Any:
        return to_text(value)

    def _decode_primitive(self, kind: PrimitiveKind, node: Any) -> Any:
        return parse_text(kind, node)

    # -- JSON text ----------------------------------------------------------

    def loads(self, text: str | bytes, type_name: str | None = None) -> RecordInstance:
        try:
            tree = simplejson.loads(text, use_decimal=True)
        except simplejson.JSONDecodeError as exc:
            raise DecodeError("", f"invalid JSON: {exc.msg} (line {exc.lineno})") from exc
        except UnicodeDecodeError as exc:
            raise DecodeError("", f"input is not valid UTF-8: {exc.reason}") from exc
        except RecursionError as exc:
            raise DecodeError("", "input is nested too deeply") from exc
        return self.decode(tree, type_name)

    def dumps(self, instance: RecordInstance, indent: int | None = None) -> str:
        return simplejson.dumps(
            _finite_only(self.encode(instance)), use_decimal=True, indent=indent
        )
