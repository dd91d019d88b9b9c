"""
Runtime record values.

A RecordInstance holds field values keyed by storage key. Choice fields are
stored under their type-suffixed key (``valueString``), so an instance can
carry two alternatives of the same choice; the validator reports that.

FieldValue variants:
    Primitive(value)   native scalar (see models.primitives)
    Single(record)     owned nested RecordInstance
    Repeated(items)    ordered tuple of one variant
    Reference(...)     non-owning pointer to another record
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Union

from fhirmodel.errors import UnknownField
from fhirmodel.models.primitives import choice_suffix, coerce_native
from fhirmodel.models.schema import FieldDescriptor, FieldSlot, RecordSchema

if TYPE_CHECKING:
    from fhirmodel.services.registry import SchemaRegistry

# [base-url/]Type/id[/_history/version]
_LITERAL_REFERENCE = re.compile(
    r"(?:(?:https?|urn)://\S+?/)?(?P<type>[A-Z][A-Za-z]+)/[A-Za-z0-9\-\.]{1,64}"
    r"(?:/_history/[A-Za-z0-9\-\.]{1,64})?"
)


@dataclass(frozen=True)
class Primitive:
    value: Any


@dataclass(frozen=True)
class Single:
    record: RecordInstance


@dataclass(frozen=True)
class Reference:
    """Association with another record by identifier or URL. Never owns it."""

    target_identifier: str | None = None
    target_type_hint: str | None = None
    display: str | None = None
    extras: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @property
    def target_type(self) -> str | None:
        """Explicit type hint, else the type segment of a literal reference."""
        if self.target_type_hint:
            return self.target_type_hint
        if self.target_identifier:
            match = _LITERAL_REFERENCE.fullmatch(self.target_identifier)
            if match:
                return match["type"]
        return None


@dataclass(frozen=True)
class Repeated:
    items: tuple[Union[Primitive, Single, Reference], ...] = ()

    def __post_init__(self) -> None:
        items = tuple(self.items)
        object.__setattr__(self, "items", items)
        variants = {type(item) for item in items}
        if Repeated in variants:
            raise TypeError("Repeated values cannot be nested")
        if len(variants) > 1:
            names = sorted(v.__name__ for v in variants)
            raise TypeError(f"Repeated values must share one variant, got {names}")

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


FieldValue = Union[Primitive, Single, Repeated, Reference]


@dataclass(eq=False)
class RecordInstance:
    type_name: str
    fields: dict[str, FieldValue] = field(default_factory=dict)
    # wire content the schema does not describe, kept verbatim for re-encoding
    extras: dict[str, Any] = field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecordInstance):
            return NotImplemented
        from fhirmodel.services.equality import structural_equals

        return structural_equals(self, other)

    __hash__ = None  # type: ignore[assignment]

    def __contains__(self, key: str) -> bool:
        return key in self.fields

    def get(self, key: str, default: FieldValue | None = None) -> FieldValue | None:
        return self.fields.get(key, default)

    def value(self, key: str) -> Any:
        """Unwrap a field to plain Python: scalars, RecordInstances, References, lists."""
        return unwrap(self.fields[key]) if key in self.fields else None

    def without(self, key: str) -> RecordInstance:
        """Copy of this record with *key* no longer provided."""
        return RecordInstance(
            self.type_name,
            {k: v for k, v in self.fields.items() if k != key},
            dict(self.extras),
        )

    def with_field(self, key: str, value: FieldValue) -> RecordInstance:
        fields = dict(self.fields)
        fields[key] = value
        return RecordInstance(self.type_name, fields, dict(self.extras))


def unwrap(value: FieldValue) -> Any:
    if isinstance(value, Primitive):
        return value.value
    if isinstance(value, Single):
        return value.record
    if isinstance(value, Repeated):
        return [unwrap(item) for item in value.items]
    return value


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class RecordBuilder:
    """
    Populate a RecordInstance field by field against its schema.

    Usage:
        appt = (
            RecordBuilder(registry, "Appointment")
            .set("status", "booked")
            .add("participant", {"status": "accepted"})
            .build()
        )

    Field names may be wire names or renamed local names (``class_``).
    Plain values are wrapped in the matching FieldValue variant and primitive
    values are normalised for their kind when possible. Values that cannot be
    normalised are stored as given so the validator can report them.
    """

    def __init__(self, registry: SchemaRegistry, type_name: str):
        self._registry = registry
        self._schema: RecordSchema = registry.lookup(type_name)
        self._fields: dict[str, FieldValue] = {}
        self._extras: dict[str, Any] = {}

    @property
    def schema(self) -> RecordSchema:
        return self._schema

    def _resolve(self, name: str) -> tuple[str, FieldDescriptor, FieldSlot]:
        key = self._schema.wire_name(name)
        resolved = self._schema.slot(key)
        if resolved is None:
            raise UnknownField(self._schema.name, name)
        return (key,) + resolved

    def set(self, name: str, value: Any) -> RecordBuilder:
        key, descriptor, slot = self._resolve(name)
        if value is None:
            self._fields.pop(key, None)
        else:
            self._fields[key] = self._wrap(descriptor, slot, value)
        return self

    def set_choice(self, name: str, type_name: str, value: Any) -> RecordBuilder:
        descriptor = self._schema.field(name)
        if descriptor is None or not descriptor.is_choice:
            raise UnknownField(self._schema.name, name)
        return self.set(name + choice_suffix(type_name), value)

    def add(self, name: str, value: Any) -> RecordBuilder:
        """Append one element. A max=1 field holds the first element directly."""
        key, descriptor, slot = self._resolve(name)
        element = self._wrap_one(slot, value)
        current = self._fields.get(key)
        if current is None and not descriptor.is_repeated:
            self._fields[key] = element
            return self
        if current is None:
            items: tuple = ()
        elif isinstance(current, Repeated):
            items = current.items
        else:
            items = (current,)
        self._fields[key] = Repeated(items + (element,))
        return self

    def update(self, values: Mapping[str, Any]) -> RecordBuilder:
        for name, value in values.items():
            self.set(name, value)
        return self

    def extra(self, key: str, node: Any) -> RecordBuilder:
        self._extras[key] = node
        return self

    def build(self) -> RecordInstance:
        return RecordInstance(self._schema.name, dict(self._fields), dict(self._extras))

    def _wrap(self, descriptor: FieldDescriptor, slot: FieldSlot, value: Any) -> FieldValue:
        if isinstance(value, Repeated):
            return value
        if isinstance(value, (list, tuple)):
            if len(value) == 1 and not descriptor.is_repeated:
                return self._wrap_one(slot, value[0])
            return Repeated(tuple(self._wrap_one(slot, item) for item in value))
        return self._wrap_one(slot, value)

    def _wrap_one(self, slot: FieldSlot, value: Any) -> Union[Primitive, Single, Reference]:
        if isinstance(value, (Primitive, Single, Reference)):
            return value
        if isinstance(value, Repeated):
            raise TypeError("Repeated values cannot be nested")
        if isinstance(value, RecordInstance):
            return Single(value)
        if isinstance(value, RecordBuilder):
            return Single(value.build())
        if slot.primitive is not None:
            try:
                return Primitive(coerce_native(slot.primitive, value))
            except ValueError:
                return Primitive(value)
        if slot.is_reference:
            if isinstance(value, str):
                return Reference(target_identifier=value)
            if isinstance(value, Mapping):
                known = {"reference", "type", "display"}
                return Reference(
                    target_identifier=value.get("reference"),
                    target_type_hint=value.get("type"),
                    display=value.get("display"),
                    extras={k: v for k, v in value.items() if k not in known},
                )
        if isinstance(value, Mapping) and not slot.is_any_resource:
            nested = RecordBuilder(self._registry, slot.type_name).update(value)
            return Single(nested.build())
        return Primitive(value)
