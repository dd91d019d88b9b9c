"""Tests for RecordBuilder and RecordInstance helpers."""

from datetime import date
from decimal import Decimal

import pytest

from fhirmodel.errors import UnknownField, UnknownType
from fhirmodel.models.record import (
    Primitive,
    RecordBuilder,
    Reference,
    Repeated,
    Single,
)


def test_plain_values_are_wrapped(registry):
    patient = (
        RecordBuilder(registry, "Patient")
        .set("active", True)
        .set("birthDate", "1990-01-15")
        .add("name", {"family": "Doe"})
        .set("managingOrganization", "Organization/1")
        .build()
    )
    assert patient.get("active") == Primitive(True)
    assert patient.get("birthDate") == Primitive(date(1990, 1, 15))
    assert isinstance(patient.get("name"), Repeated)
    assert isinstance(patient.get("name").items[0], Single)
    assert patient.get("managingOrganization") == Reference(target_identifier="Organization/1")


def test_primitive_values_are_normalised(registry):
    quantity = RecordBuilder(registry, "Quantity").set("value", 72).build()
    assert quantity.value("value") == Decimal(72)
    assert isinstance(quantity.value("value"), Decimal)


def test_uncoercible_value_stored_as_given(registry):
    """The validator, not the builder, reports a bad primitive."""
    appointment = RecordBuilder(registry, "Appointment").set("minutesDuration", "soon").build()
    assert appointment.get("minutesDuration") == Primitive("soon")


def test_setting_none_removes_field(registry):
    builder = RecordBuilder(registry, "Patient").set("gender", "male")
    assert "gender" not in builder.set("gender", None).build()


def test_add_appends(registry):
    patient = (
        RecordBuilder(registry, "Patient")
        .add("name", {"family": "Doe"})
        .add("name", {"family": "Roe"})
        .build()
    )
    assert [name.value("family") for name in patient.value("name")] == ["Doe", "Roe"]


def test_add_on_single_field_stores_bare_value(registry):
    """A max=1 field holds its first element directly, never a one-element sequence."""
    added = RecordBuilder(registry, "Appointment").add("status", "booked").build()
    assert added.get("status") == Primitive("booked")
    listed = RecordBuilder(registry, "Appointment").set("status", ["booked"]).build()
    assert listed.get("status") == Primitive("booked")


def test_second_add_on_single_field_is_kept_for_validation(registry):
    appointment = (
        RecordBuilder(registry, "Appointment").add("status", "booked").add("status", "arrived").build()
    )
    assert appointment.get("status") == Repeated((Primitive("booked"), Primitive("arrived")))


def test_set_choice_uses_suffixed_key(registry):
    patient = RecordBuilder(registry, "Patient").set_choice("deceased", "boolean", False).build()
    assert patient.fields == {"deceasedBoolean": Primitive(False)}


def test_renamed_field_accepts_local_name(registry):
    encounter = RecordBuilder(registry, "Encounter").set("class_", {"code": "AMB"}).build()
    assert "class" in encounter
    assert "class_" not in encounter


def test_extras(registry):
    patient = RecordBuilder(registry, "Patient").extra("_active", {"id": "a"}).build()
    assert patient.extras == {"_active": {"id": "a"}}


def test_unknown_field(registry):
    with pytest.raises(UnknownField):
        RecordBuilder(registry, "Patient").set("favouriteColour", "blue")
    with pytest.raises(UnknownField):
        RecordBuilder(registry, "Patient").set_choice("gender", "code", "male")


def test_unknown_type(registry):
    with pytest.raises(UnknownType):
        RecordBuilder(registry, "Spaceship")


def test_repeated_values_share_one_variant():
    with pytest.raises(TypeError):
        Repeated((Primitive("a"), Reference(target_identifier="Patient/1")))


def test_reference_target_type():
    assert Reference(target_identifier="Patient/123").target_type == "Patient"
    assert Reference(target_identifier="http://example.org/fhir/Device/7/_history/2").target_type == "Device"
    assert Reference(target_identifier="Patient/1", target_type_hint="Group").target_type == "Group"
    assert Reference(target_identifier="urn:uuid:1234").target_type is None


def test_records_are_not_hashable(registry):
    with pytest.raises(TypeError):
        hash(RecordBuilder(registry, "Patient").build())
