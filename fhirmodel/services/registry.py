"""
Schema registry.

Holds one RecordSchema per record type name. It is populated once at startup
(see fhirmodel.main.build_registry), frozen, and then shared read-only by the
builder, the validator and both codecs.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Mapping

from pydantic import ValidationError as PydanticValidationError

from fhirmodel.errors import DuplicateSchema, InvalidSchema, RegistryFrozen, UnknownType
from fhirmodel.models.schema import RecordSchema
from fhirmodel.schemas.loader import build_schema, check_definition

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """
    Usage:
        registry = SchemaRegistry()
        registry.load_definitions(BUILTIN_DEFINITIONS)
        registry.freeze()
        schema = registry.lookup("Appointment")
    """

    def __init__(self) -> None:
        self._schemas: dict[str, RecordSchema] = {}
        self._bases: dict[str, Mapping[str, Any]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, schema: RecordSchema | Mapping[str, Any]) -> RecordSchema:
        """
        Add a schema. Accepts a RecordSchema or a definition document.

        Raises DuplicateSchema if the name is taken, InvalidSchema if the
        schema breaks an invariant and RegistryFrozen after freeze().
        """
        if isinstance(schema, Mapping):
            schema = build_schema(schema, self._bases)
        else:
            # re-run the model validators: model_construct() can bypass them
            try:
                schema = RecordSchema.model_validate(schema.model_dump())
            except PydanticValidationError as exc:
                raise InvalidSchema(schema.name, [e["msg"] for e in exc.errors()]) from exc

        if self._frozen:
            raise RegistryFrozen(schema.name)
        if schema.name in self._schemas:
            raise DuplicateSchema(schema.name)
        self._schemas[schema.name] = schema
        logger.debug("Registered schema %s (%d fields)", schema.name, len(schema.fields))
        return schema

    def load_definitions(self, docs: Iterable[Mapping[str, Any]]) -> list[RecordSchema]:
        """Register every concrete document; abstract ones become available as bases."""
        docs = list(docs)
        for doc in docs:
            check_definition(doc)
            if doc.get("abstract"):
                self._bases[doc["name"]] = doc
        return [self.register(doc) for doc in docs if not doc.get("abstract")]

    def freeze(self) -> None:
        self._frozen = True
        missing = self.missing_types()
        if missing:
            logger.warning("Registry frozen with unresolved types: %s", ", ".join(sorted(missing)))
        logger.info("Schema registry frozen with %d record types", len(self._schemas))

    def lookup(self, type_name: str) -> RecordSchema:
        schema = self._schemas.get(type_name)
        if schema is None:
            raise UnknownType(type_name)
        return schema

    def get(self, type_name: str) -> RecordSchema | None:
        return self._schemas.get(type_name)

    def names(self) -> list[str]:
        return sorted(self._schemas)

    def missing_types(self) -> set[str]:
        """Complex types referenced by some field but not registered."""
        referenced: set[str] = set()
        for schema in self._schemas.values():
            referenced |= schema.referenced_types()
        return referenced - self._schemas.keys()

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def __iter__(self) -> Iterator[RecordSchema]:
        return iter(self._schemas.values())
