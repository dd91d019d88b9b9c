"""
Turn schema-definition documents into RecordSchema objects.

Demonstrates the data-driven approach: one generic engine, many record types
described as plain mappings. Base definitions (``"abstract": true``) are
resolved by name and their fields are prepended to the derived type's own.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError

from fhirmodel.errors import InvalidSchema
from fhirmodel.models.primitives import PRIMITIVE_NAMES
from fhirmodel.models.schema import REFERENCE_TYPE, RecordSchema
from fhirmodel.schemas.meta import SCHEMA_DEFINITION_SCHEMA
from fhirmodel.services.validation import validate_against_schema

logger = logging.getLogger(__name__)


def check_definition(doc: Mapping[str, Any]) -> None:
    """Raise InvalidSchema listing every problem the document contract finds."""
    errors = validate_against_schema(dict(doc), SCHEMA_DEFINITION_SCHEMA)
    if errors:
        name = doc.get("name", "<unnamed>") if isinstance(doc, Mapping) else "<unnamed>"
        raise InvalidSchema(str(name), errors)


def _field_kwargs(field: Mapping[str, Any]) -> dict[str, Any]:
    max_value = field.get("max", 1)
    kwargs: dict[str, Any] = {
        "name": field["name"],
        "min": field.get("min", 0),
        "max": None if max_value == "*" else max_value,
        "is_modifier": field.get("modifier", False),
    }
    if "choice" in field:
        kwargs["kind"] = {
            "kind": "choice",
            "alternatives": [
                {
                    "type_name": alt["type"],
                    "is_reference": alt["type"] == REFERENCE_TYPE,
                    "reference_targets": alt.get("targets", []),
                }
                for alt in field["choice"]
            ],
        }
    elif field["type"] in PRIMITIVE_NAMES:
        kwargs["kind"] = {"kind": "primitive", "primitive": field["type"]}
    else:
        kwargs["kind"] = {"kind": "complex", "type_name": field["type"]}
    if "targets" in field:
        kwargs["reference_targets"] = field["targets"]
    binding = field.get("binding")
    if binding is not None:
        kwargs["binding"] = {
            "strength": binding["strength"],
            "value_set": binding.get("valueSet"),
            "allowed_codes": binding.get("codes", {}),
        }
    return kwargs


def _resolve_fields(
    doc: Mapping[str, Any], bases: Mapping[str, Mapping[str, Any]], seen: tuple[str, ...] = ()
) -> list[Mapping[str, Any]]:
    base_name = doc.get("base")
    if base_name is None:
        return list(doc["fields"])
    if base_name in seen:
        raise InvalidSchema(doc["name"], [f"circular base chain through '{base_name}'"])
    base = bases.get(base_name)
    if base is None:
        raise InvalidSchema(doc["name"], [f"unknown base '{base_name}'"])
    inherited = _resolve_fields(base, bases, seen + (base_name,))
    own_names = {f["name"] for f in doc["fields"]}
    # a derived type may redeclare a base field (e.g. to tighten cardinality)
    merged = [f if f["name"] not in own_names else _own(doc, f["name"]) for f in inherited]
    inherited_names = {f["name"] for f in inherited}
    merged.extend(f for f in doc["fields"] if f["name"] not in inherited_names)
    return merged


def _own(doc: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    return next(f for f in doc["fields"] if f["name"] == name)


def build_schema(
    doc: Mapping[str, Any], bases: Mapping[str, Mapping[str, Any]] | None = None
) -> RecordSchema:
    """Build one RecordSchema from a definition document."""
    check_definition(doc)
    fields = _resolve_fields(doc, bases or {})
    try:
        return RecordSchema(
            name=doc["name"],
            category=doc.get("category", "resource"),
            fields=[_field_kwargs(f) for f in fields],
            renames=doc.get("renames", {}),
        )
    except PydanticValidationError as exc:
        raise InvalidSchema(doc["name"], [e["msg"] for e in exc.errors()]) from exc


def build_schemas(docs: Iterable[Mapping[str, Any]]) -> list[RecordSchema]:
    """Build every concrete schema in *docs*; abstract ones only serve as bases."""
    docs = list(docs)
    for doc in docs:
        check_definition(doc)
    bases = {doc["name"]: doc for doc in docs if doc.get("abstract")}
    schemas = [build_schema(doc, bases) for doc in docs if not doc.get("abstract")]
    logger.debug("Built %d schemas (%d abstract bases)", len(schemas), len(bases))
    return schemas


def read_definition_dir(path: str | Path) -> list[dict[str, Any]]:
    """Read ``*.json`` definition documents; each file holds one document or a list."""
    directory = Path(path)
    docs: list[dict[str, Any]] = []
    for file in sorted(directory.glob("*.json")):
        content = json.loads(file.read_text(encoding="utf-8"))
        docs.extend(content if isinstance(content, list) else [content])
        logger.info("Read schema definitions from %s", file.name)
    return docs
