"""
Schema model: what a record type looks like.

A RecordSchema is an ordered list of FieldDescriptors plus the type's name.
Schemas are immutable pydantic models; the invariants (cardinality bounds,
choice arity, unique wire keys, rename table consistency) are enforced when
the model is built, so an invalid schema can never reach the registry.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from fhirmodel.models.primitives import PrimitiveKind, choice_suffix, kind_of

REFERENCE_TYPE = "Reference"
ANY_RESOURCE_TYPE = "Resource"
CODED_TYPES = frozenset({"Coding", "CodeableConcept"})


class BindingStrength(str, Enum):
    REQUIRED = "required"
    EXTENSIBLE = "extensible"
    PREFERRED = "preferred"
    EXAMPLE = "example"


class RecordCategory(str, Enum):
    RESOURCE = "resource"
    DATATYPE = "datatype"
    BACKBONE = "backbone"


class CodeBinding(BaseModel):
    """Allowed codes for a coded field, grouped by code system URI."""

    model_config = ConfigDict(frozen=True)

    strength: BindingStrength
    value_set: str | None = None
    allowed_codes: dict[str, frozenset[str]] = Field(default_factory=dict)

    @property
    def is_required(self) -> bool:
        return self.strength is BindingStrength.REQUIRED

    @property
    def is_checkable(self) -> bool:
        """An empty allow-list carries nothing to check against."""
        return any(self.allowed_codes.values())

    def all_codes(self) -> frozenset[str]:
        codes: set[str] = set()
        for system_codes in self.allowed_codes.values():
            codes.update(system_codes)
        return frozenset(codes)

    def allows(self, system: str | None, code: str | None) -> bool:
        """True if (system, code) is in the allow-list.

        A bare code (system None) is checked against every system, which is
        how plain ``code`` primitives are bound. An unrecognised system never
        matches.
        """
        if code is None:
            return False
        if system is None:
            return code in self.all_codes()
        return code in self.allowed_codes.get(system, frozenset())


# ---------------------------------------------------------------------------
# Field kinds
# ---------------------------------------------------------------------------

class PrimitiveType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["primitive"] = "primitive"
    primitive: PrimitiveKind

    @property
    def type_name(self) -> str:
        return self.primitive.value


class ComplexType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["complex"] = "complex"
    type_name: str = Field(..., min_length=1)


class ChoiceAlternative(BaseModel):
    model_config = ConfigDict(frozen=True)

    type_name: str = Field(..., min_length=1)
    is_reference: bool = False
    reference_targets: frozenset[str] = frozenset()

    @model_validator(mode="after")
    def _check_reference(self) -> ChoiceAlternative:
        if self.is_reference != (self.type_name == REFERENCE_TYPE):
            raise ValueError(
                f"alternative '{self.type_name}': is_reference must be set exactly "
                f"when the type is {REFERENCE_TYPE}"
            )
        if self.reference_targets and not self.is_reference:
            raise ValueError(f"alternative '{self.type_name}' is not a reference but has targets")
        return self


class ChoiceType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["choice"] = "choice"
    alternatives: tuple[ChoiceAlternative, ...]

    @model_validator(mode="after")
    def _check_alternatives(self) -> ChoiceType:
        if len(self.alternatives) < 2:
            raise ValueError("a choice field needs at least two alternatives")
        names = [alt.type_name for alt in self.alternatives]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate choice alternatives: {names}")
        return self


FieldKind = Annotated[Union[PrimitiveType, ComplexType, ChoiceType], Field(discriminator="kind")]


@dataclass(frozen=True)
class FieldSlot:
    """One concrete storage key for a field.

    A plain field has a single slot keyed by its name; a choice field has one
    slot per alternative, keyed ``name + TypeSuffix`` (``valueString``).
    """

    key: str
    type_name: str
    primitive: PrimitiveKind | None
    is_reference: bool
    reference_targets: frozenset[str]

    @property
    def is_any_resource(self) -> bool:
        return self.type_name == ANY_RESOURCE_TYPE


# ---------------------------------------------------------------------------
# FieldDescriptor
# ---------------------------------------------------------------------------

class FieldDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    kind: FieldKind
    min: int = Field(0, ge=0)
    max: int | None = Field(1, ge=0)  # None = unbounded
    binding: CodeBinding | None = None
    reference_targets: frozenset[str] = frozenset()
    is_modifier: bool = False

    @model_validator(mode="after")
    def _check_invariants(self) -> FieldDescriptor:
        if self.max is not None and self.min > self.max:
            raise ValueError(
                f"field '{self.name}': min ({self.min}) is greater than max ({self.max})"
            )
        if self.reference_targets and not (
            isinstance(self.kind, ComplexType) and self.kind.type_name == REFERENCE_TYPE
        ):
            raise ValueError(f"field '{self.name}': reference targets on a non-reference field")
        if self.binding is not None and not self._is_codeable():
            raise ValueError(f"field '{self.name}': code binding on a non-coded field")
        return self

    def _is_codeable(self) -> bool:
        names = {slot.type_name for slot in self.slots()}
        return bool(names & (CODED_TYPES | {PrimitiveKind.CODE.value}))

    @property
    def is_choice(self) -> bool:
        return isinstance(self.kind, ChoiceType)

    @property
    def is_repeated(self) -> bool:
        return self.max is None or self.max > 1

    @property
    def is_required(self) -> bool:
        return self.min >= 1

    @property
    def display_name(self) -> str:
        return f"{self.name}[x]" if self.is_choice else self.name

    def cardinality(self) -> str:
        return f"{self.min}..{'*' if self.max is None else self.max}"

    def slots(self) -> list[FieldSlot]:
        kind = self.kind
        if isinstance(kind, ChoiceType):
            return [
                FieldSlot(
                    key=self.name + choice_suffix(alt.type_name),
                    type_name=alt.type_name,
                    primitive=kind_of(alt.type_name),
                    is_reference=alt.is_reference,
                    reference_targets=alt.reference_targets,
                )
                for alt in kind.alternatives
            ]
        if isinstance(kind, PrimitiveType):
            return [FieldSlot(self.name, kind.type_name, kind.primitive, False, frozenset())]
        return [
            FieldSlot(
                key=self.name,
                type_name=kind.type_name,
                primitive=None,
                is_reference=kind.type_name == REFERENCE_TYPE,
                reference_targets=self.reference_targets,
            )
        ]


# ---------------------------------------------------------------------------
# RecordSchema
# ---------------------------------------------------------------------------

class RecordSchema(BaseModel):
    """Named, ordered field list for one record type.

    ``renames`` maps a wire name to the in-memory (Python) name for fields
    whose wire name is a Python keyword, e.g. ``{"class": "class_"}``.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    category: RecordCategory = RecordCategory.RESOURCE
    fields: tuple[FieldDescriptor, ...] = ()
    renames: dict[str, str] = Field(default_factory=dict)

    _slots: dict[str, tuple[FieldDescriptor, FieldSlot]] = PrivateAttr(default_factory=dict)
    _local_to_wire: dict[str, str] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _check_fields(self) -> RecordSchema:
        problems: list[str] = []
        seen: set[str] = set()
        keys: set[str] = set()
        for descriptor in self.fields:
            if descriptor.name in seen:
                problems.append(f"duplicate field name '{descriptor.name}'")
            seen.add(descriptor.name)
            for slot in descriptor.slots():
                if slot.key in keys:
                    problems.append(f"wire key '{slot.key}' is produced by more than one field")
                keys.add(slot.key)
        for wire, local in self.renames.items():
            if wire not in keys:
                problems.append(f"rename of unknown field '{wire}'")
            if local in keys:
                problems.append(f"rename target '{local}' collides with a field")
        if len(set(self.renames.values())) != len(self.renames):
            problems.append("rename targets are not unique")
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def model_post_init(self, __context) -> None:
        for descriptor in self.fields:
            for slot in descriptor.slots():
                self._slots[slot.key] = (descriptor, slot)
        self._local_to_wire = {local: wire for wire, local in self.renames.items()}

    @property
    def is_resource(self) -> bool:
        return self.category is RecordCategory.RESOURCE

    def field(self, name: str) -> FieldDescriptor | None:
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        return None

    def field_names(self) -> list[str]:
        return [descriptor.name for descriptor in self.fields]

    def slot(self, key: str) -> tuple[FieldDescriptor, FieldSlot] | None:
        """Resolve a storage key (``status``, ``valueString``) to its field and slot."""
        return self._slots.get(key)

    def iter_slots(self) -> Iterator[tuple[FieldDescriptor, FieldSlot]]:
        for descriptor in self.fields:
            for slot in descriptor.slots():
                yield descriptor, slot

    def local_name(self, wire_name: str) -> str:
        return self.renames.get(wire_name, wire_name)

    def wire_name(self, name: str) -> str:
        """Accept either a wire name or a renamed local name; return the wire name."""
        return self._local_to_wire.get(name, name)

    def referenced_types(self) -> set[str]:
        """Complex type names this schema points at (excluding Reference / Resource)."""
        names: set[str] = set()
        for _, slot in self.iter_slots():
            if slot.primitive is None and not slot.is_reference and not slot.is_any_resource:
                names.add(slot.type_name)
        return names
