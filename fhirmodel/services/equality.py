"""Structural equality and hashing over RecordInstances (testing / dedup)."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable

from fhirmodel.models.primitives import to_text
from fhirmodel.models.record import (
    FieldValue,
    Primitive,
    RecordInstance,
    Reference,
    Repeated,
    Single,
)


def structural_equals(a: RecordInstance, b: RecordInstance) -> bool:
    """
    True iff both records have the same type and every provided field is
    structurally equal. Repeated values compare in order; unknown wire
    content (``extras``) must match too.
    """
    if a is b:
        return True
    if a.type_name != b.type_name or a.fields.keys() != b.fields.keys():
        return False
    for key, value in a.fields.items():
        if not _values_equal(value, b.fields[key]):
            return False
    return _nodes_equal(a.extras, b.extras)


def _values_equal(x: FieldValue, y: FieldValue) -> bool:
    if type(x) is not type(y):
        return False
    if isinstance(x, Primitive):
        return _scalars_equal(x.value, y.value)
    if isinstance(x, Single):
        return structural_equals(x.record, y.record)
    if isinstance(x, Repeated):
        return len(x.items) == len(y.items) and all(
            _values_equal(left, right) for left, right in zip(x.items, y.items)
        )
    return (
        x.target_identifier == y.target_identifier
        and x.target_type_hint == y.target_type_hint
        and x.display == y.display
        and _nodes_equal(dict(x.extras), dict(y.extras))
    )


def _scalars_equal(x: Any, y: Any) -> bool:
    # bool/int and float/Decimal must not compare equal across types
    if type(x) is not type(y):
        return False
    if isinstance(x, (dict, list, tuple)):
        return _nodes_equal(x, y)
    if isinstance(x, Decimal):
        # precision is significant: 1.5 and 1.50 are different values
        return str(x) == str(y)
    if isinstance(x, datetime):
        return x == y and x.utcoffset() == y.utcoffset()
    return x == y


def _nodes_equal(x: Any, y: Any) -> bool:
    if isinstance(x, dict):
        return (
            isinstance(y, dict)
            and x.keys() == y.keys()
            and all(_nodes_equal(x[k], y[k]) for k in x)
        )
    if isinstance(x, (list, tuple)):
        return (
            isinstance(y, (list, tuple))
            and len(x) == len(y)
            and all(_nodes_equal(i, j) for i, j in zip(x, y))
        )
    return _scalars_equal(x, y)


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------

def _freeze_scalar(value: Any) -> Any:
    if isinstance(value, (Decimal, datetime, date, time)):
        return (type(value).__name__, to_text(value) if not isinstance(value, Decimal) else str(value))
    if isinstance(value, (dict, list, tuple)):
        # unhashable content stored on a field of an invalid record
        return _freeze_node(value)
    return (type(value).__name__, value)


def _freeze_node(node: Any) -> Any:
    if isinstance(node, dict):
        return ("dict", tuple(sorted((k, _freeze_node(v)) for k, v in node.items())))
    if isinstance(node, (list, tuple)):
        return ("list", tuple(_freeze_node(item) for item in node))
    return _freeze_scalar(node)


def _freeze_value(value: FieldValue) -> Any:
    if isinstance(value, Primitive):
        return ("P", _freeze_scalar(value.value))
    if isinstance(value, Single):
        return ("S", _freeze_record(value.record))
    if isinstance(value, Repeated):
        return ("N", tuple(_freeze_value(item) for item in value.items))
    assert isinstance(value, Reference)
    return (
        "R",
        value.target_identifier,
        value.target_type_hint,
        value.display,
        _freeze_node(dict(value.extras)),
    )


def _freeze_record(record: RecordInstance) -> Any:
    return (
        record.type_name,
        tuple(sorted((k, _freeze_value(v)) for k, v in record.fields.items())),
        _freeze_node(record.extras),
    )


def structural_hash(record: RecordInstance) -> int:
    """Hash consistent with structural_equals: equal records hash equal."""
    return hash(_freeze_record(record))


def deduplicate(records: Iterable[RecordInstance]) -> list[RecordInstance]:
    """Drop structural duplicates, keeping the first occurrence and input order."""
    buckets: dict[int, list[RecordInstance]] = {}
    unique: list[RecordInstance] = []
    for record in records:
        bucket = buckets.setdefault(structural_hash(record), [])
        if any(structural_equals(record, seen) for seen in bucket):
            continue
        bucket.append(record)
        unique.append(record)
    return unique
