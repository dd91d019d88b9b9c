"""
Validation services.

Demonstrates:
- Schema-driven data validation (a core pattern for healthcare interop)
- Collecting all issues rather than failing on the first one
- Two layers: JSON Schema for definition documents, the record Validator
  for RecordInstances against their RecordSchema
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable

import jsonschema

from fhirmodel.config import settings
from fhirmodel.models.primitives import PrimitiveKind, kind_problem
from fhirmodel.models.record import (
    FieldValue,
    Primitive,
    RecordInstance,
    Reference,
    Repeated,
    Single,
)
from fhirmodel.models.schema import (
    ANY_RESOURCE_TYPE,
    FieldDescriptor,
    FieldSlot,
    RecordSchema,
)

if TYPE_CHECKING:
    from fhirmodel.services.registry import SchemaRegistry

logger = logging.getLogger(__name__)


def validate_against_schema(data: dict[str, Any], schema: dict[str, Any]) -> list[str]:
    """
    Validate a dict against a JSON schema.
    Returns a list of error messages (empty list = valid).
    """
    validator = jsonschema.Draft7Validator(schema)
    return [error.message for error in validator.iter_errors(data)]


# ---------------------------------------------------------------------------
# Record validation
# ---------------------------------------------------------------------------

class IssueKind(str, Enum):
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    CARDINALITY_EXCEEDED = "CardinalityExceeded"
    AMBIGUOUS_CHOICE = "AmbiguousChoice"
    TYPE_MISMATCH = "TypeMismatch"
    CODE_NOT_IN_VALUE_SET = "CodeNotInValueSet"
    INVALID_REFERENCE_TARGET = "InvalidReferenceTarget"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found in a RecordInstance. A value, never raised."""

    kind: IssueKind
    path: str
    message: str
    severity: Severity = Severity.ERROR

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.kind.value} at {self.path}: {self.message}"


def _join(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


def _variant(value: FieldValue) -> str:
    if isinstance(value, Single):
        return value.record.type_name
    return type(value).__name__


class Validator:
    """
    Walk a RecordInstance against its registered schema.

    Usage:
        issues = Validator(registry).validate(appointment)
        if not is_valid(issues):
            ...

    Only ``required`` bindings produce errors. Codes that miss an
    extensible/preferred/example binding are reported as warnings when
    ``include_advisory`` is on (default: REPORT_ADVISORY_BINDINGS).
    """

    def __init__(self, registry: SchemaRegistry, include_advisory: bool | None = None):
        self.registry = registry
        if include_advisory is None:
            include_advisory = settings.REPORT_ADVISORY_BINDINGS
        self.include_advisory = include_advisory

    def validate(self, instance: RecordInstance) -> list[ValidationIssue]:
        schema = self.registry.lookup(instance.type_name)
        issues: list[ValidationIssue] = []
        self._check_record(instance, schema, "", issues)
        logger.debug("Validated %s: %d issue(s)", instance.type_name, len(issues))
        return issues

    # -- record level -------------------------------------------------------

    def _check_record(
        self,
        record: RecordInstance,
        schema: RecordSchema,
        prefix: str,
        issues: list[ValidationIssue],
    ) -> None:
        for key in record.fields:
            if schema.slot(key) is None:
                logger.debug("Skipping undeclared key %s on %s", _join(prefix, key), schema.name)

        for descriptor in schema.fields:
            present = [
                (slot, record.fields[slot.key])
                for slot in descriptor.slots()
                if slot.key in record.fields
            ]
            path = _join(prefix, descriptor.display_name)

            if len(present) > 1:
                keys = ", ".join(slot.key for slot, _ in present)
                issues.append(
                    ValidationIssue(
                        IssueKind.AMBIGUOUS_CHOICE,
                        path,
                        f"only one alternative may be populated, found {keys}",
                    )
                )
                for slot, value in present:
                    self._check_upper_bound(descriptor, value, _join(prefix, slot.key), issues)
            else:
                count = self._count(present[0][1]) if present else 0
                if count < descriptor.min:
                    issues.append(
                        ValidationIssue(
                            IssueKind.MISSING_REQUIRED_FIELD,
                            path,
                            f"{descriptor.display_name} requires {descriptor.cardinality()}, "
                            f"found {count}",
                        )
                    )
                if present:
                    self._check_upper_bound(descriptor, present[0][1], path, issues)

            for slot, value in present:
                base = _join(prefix, slot.key)
                if isinstance(value, Repeated):
                    for index, item in enumerate(value.items):
                        self._check_item(descriptor, slot, item, f"{base}[{index}]", issues)
                else:
                    self._check_item(descriptor, slot, value, base, issues)

    @staticmethod
    def _count(value: FieldValue) -> int:
        return len(value) if isinstance(value, Repeated) else 1

    def _check_upper_bound(
        self,
        descriptor: FieldDescriptor,
        value: FieldValue,
        path: str,
        issues: list[ValidationIssue],
    ) -> None:
        count = self._count(value)
        if descriptor.max is not None and count > descriptor.max:
            issues.append(
                ValidationIssue(
                    IssueKind.CARDINALITY_EXCEEDED,
                    path,
                    f"at most {descriptor.max} value(s) allowed, found {count}",
                )
            )

    # -- item level ---------------------------------------------------------

    def _check_item(
        self,
        descriptor: FieldDescriptor,
        slot: FieldSlot,
        item: FieldValue,
        path: str,
        issues: list[ValidationIssue],
    ) -> None:
        if slot.primitive is not None:
            self._check_primitive(descriptor, slot.primitive, item, path, issues)
        elif slot.is_reference:
            self._check_reference(slot, item, path, issues)
        else:
            self._check_complex(descriptor, slot, item, path, issues)

    def _mismatch(self, path: str, expected: str, item: FieldValue) -> ValidationIssue:
        return ValidationIssue(
            IssueKind.TYPE_MISMATCH, path, f"expected {expected}, got {_variant(item)}"
        )

    def _check_primitive(
        self,
        descriptor: FieldDescriptor,
        kind: PrimitiveKind,
        item: FieldValue,
        path: str,
        issues: list[ValidationIssue],
    ) -> None:
        if not isinstance(item, Primitive):
            issues.append(self._mismatch(path, kind.value, item))
            return
        problem = kind_problem(kind, item.value)
        if problem is not None:
            issues.append(ValidationIssue(IssueKind.TYPE_MISMATCH, path, problem))
            return
        if kind is PrimitiveKind.CODE:
            self._check_codes(descriptor, [(None, item.value)], path, issues)

    def _check_reference(
        self, slot: FieldSlot, item: FieldValue, path: str, issues: list[ValidationIssue]
    ) -> None:
        if not isinstance(item, Reference):
            issues.append(self._mismatch(path, "Reference", item))
            return
        targets = slot.reference_targets
        if not targets or ANY_RESOURCE_TYPE in targets:
            return
        target = item.target_type
        if target is not None and target not in targets:
            allowed = ", ".join(sorted(targets))
            issues.append(
                ValidationIssue(
                    IssueKind.INVALID_REFERENCE_TARGET,
                    path,
                    f"reference to {target} is not allowed here (allowed: {allowed})",
                )
            )

    def _check_complex(
        self,
        descriptor: FieldDescriptor,
        slot: FieldSlot,
        item: FieldValue,
        path: str,
        issues: list[ValidationIssue],
    ) -> None:
        if not isinstance(item, Single):
            issues.append(self._mismatch(path, slot.type_name, item))
            return
        child = item.record
        child_schema = self.registry.get(child.type_name)
        if child_schema is None:
            issues.append(
                ValidationIssue(
                    IssueKind.TYPE_MISMATCH, path, f"'{child.type_name}' is not a registered type"
                )
            )
            return
        if slot.is_any_resource:
            if not child_schema.is_resource:
                issues.append(self._mismatch(path, "a resource", item))
                return
        elif child.type_name != slot.type_name:
            issues.append(self._mismatch(path, slot.type_name, item))
            return

        self._check_record(child, child_schema, path, issues)

        if slot.type_name == "Coding":
            self._check_codes(descriptor, [self._coding(child)], path, issues)
        elif slot.type_name == "CodeableConcept":
            codings = [
                self._coding(value.record)
                for value in self._items(child.get("coding"))
                if isinstance(value, Single)
            ]
            self._check_codes(descriptor, codings, path, issues)

    @staticmethod
    def _items(value: FieldValue | None) -> Iterable[FieldValue]:
        if value is None:
            return ()
        return value.items if isinstance(value, Repeated) else (value,)

    @staticmethod
    def _coding(record: RecordInstance) -> tuple[Any, Any]:
        return record.value("system"), record.value("code")

    # -- code bindings ------------------------------------------------------

    def _check_codes(
        self,
        descriptor: FieldDescriptor,
        codings: list[tuple[Any, Any]],
        path: str,
        issues: list[ValidationIssue],
    ) -> None:
        """A coded value passes if any of its (system, code) pairs is allowed."""
        binding = descriptor.binding
        if binding is None or not binding.is_checkable:
            return
        codings = [(system, code) for system, code in codings if code is not None]
        if not codings:
            return
        if any(binding.allows(system, code) for system, code in codings):
            return
        if not binding.is_required and not self.include_advisory:
            return

        shown = ", ".join(f"{system}|{code}" if system else str(code) for system, code in codings)
        message = f"{shown} is not in {binding.value_set or 'the bound value set'}"
        unknown = [s for s, _ in codings if s is not None and s not in binding.allowed_codes]
        if unknown:
            message += f" (unrecognised code system {unknown[0]})"
        severity = Severity.ERROR
        if not binding.is_required:
            severity = Severity.WARNING
            message += f" [{binding.strength.value} binding"
            message += ", modifier element]" if descriptor.is_modifier else "]"
        issues.append(ValidationIssue(IssueKind.CODE_NOT_IN_VALUE_SET, path, message, severity))


def validate(
    instance: RecordInstance, registry: SchemaRegistry, include_advisory: bool | None = None
) -> list[ValidationIssue]:
    """Convenience wrapper: ``Validator(registry).validate(instance)``."""
    return Validator(registry, include_advisory=include_advisory).validate(instance)


def is_valid(issues: Iterable[ValidationIssue]) -> bool:
    """True when no issue has error severity (warnings do not count)."""
    return not any(issue.severity is Severity.ERROR for issue in issues)
