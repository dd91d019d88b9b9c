"""Tests for the Tree Format (JSON document) codec."""

import json
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from fhirmodel.codecs.tree import TreeCodec
from fhirmodel.errors import DecodeError, MalformedPrimitive, ShapeMismatch, UnknownType, UnknownTypeError
from fhirmodel.models.primitives import PartialDate
from fhirmodel.models.record import Primitive, RecordBuilder, RecordInstance, Reference, Repeated, Single
from fhirmodel.services.equality import structural_equals


def _appointment_tree():
    return {
        "resourceType": "Appointment",
        "id": "appt-1",
        "status": "booked",
        "start": "2024-03-01T09:30:00Z",
        "minutesDuration": 30,
        "participant": [
            {
                "actor": {"reference": "Patient/123", "display": "Jane Doe"},
                "status": "accepted",
            }
        ],
    }


def test_decode_appointment(registry):
    record = TreeCodec(registry).decode(_appointment_tree())
    assert record.type_name == "Appointment"
    assert record.value("status") == "booked"
    assert record.value("start") == datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
    participant = record.value("participant")[0]
    assert participant.value("status") == "accepted"
    assert participant.value("actor") == Reference(target_identifier="Patient/123", display="Jane Doe")


def test_encode_is_canonical_and_idempotent(registry):
    codec = TreeCodec(registry)
    tree = _appointment_tree()
    encoded = codec.encode(codec.decode(tree))
    assert encoded == tree
    assert codec.encode(codec.decode(encoded)) == encoded


def test_unknown_keys_survive_round_trip(registry):
    """One known field plus one unrecognised key: the key comes back unchanged."""
    codec = TreeCodec(registry)
    tree = {
        "resourceType": "Patient",
        "gender": "female",
        "_gender": {"extension": [{"url": "http://example.org/x", "valueString": "y"}]},
    }
    record = codec.decode(tree)
    assert record.extras == {"_gender": tree["_gender"]}
    assert codec.encode(record) == tree


def test_choice_key_decodes_to_suffixed_slot(registry):
    codec = TreeCodec(registry)
    tree = {
        "resourceType": "Observation",
        "status": "final",
        "code": {"text": "Heart rate"},
        "valueQuantity": {"value": 72, "unit": "beats/minute"},
        "effectiveDateTime": "2024-05",
    }
    record = codec.decode(tree)
    assert "valueQuantity" in record
    assert record.value("effectiveDateTime") == PartialDate(2024, 5)
    assert record.value("valueQuantity").value("value") == Decimal(72)
    assert codec.encode(record) == tree


def test_repeated_field_always_encodes_as_sequence(registry):
    codec = TreeCodec(registry)
    patient = RecordBuilder(registry, "Patient").set("name", {"family": "Doe"}).build()
    assert codec.encode(patient)["name"] == [{"family": "Doe"}]


def test_single_field_never_wrapped(registry):
    codec = TreeCodec(registry)
    patient = RecordBuilder(registry, "Patient").set("birthDate", date(1990, 1, 15)).build()
    assert codec.encode(patient) == {"resourceType": "Patient", "birthDate": "1990-01-15"}


def test_renamed_field_uses_wire_name(registry):
    codec = TreeCodec(registry)
    encounter = (
        RecordBuilder(registry, "Encounter")
        .set("status", "finished")
        .set("class_", {"code": "AMB"})
        .build()
    )
    tree = codec.encode(encounter)
    assert tree["class"] == {"code": "AMB"}
    assert "class_" not in tree
    assert codec.decode(tree) == encounter


def test_binary_and_decimal_primitives(registry):
    codec = TreeCodec(registry)
    tree = {
        "resourceType": "Patient",
        "photo": [{"contentType": "image/png", "data": "aGVsbG8=", "size": 5}],
    }
    record = codec.decode(tree)
    assert record.value("photo")[0].value("data") == b"hello"
    assert codec.encode(record) == tree


def test_encode_invalid_instance(registry):
    """Encoding never validates: an invalid record still encodes."""
    codec = TreeCodec(registry)
    record = RecordInstance("Appointment", {"priority": Primitive("high")})
    assert codec.encode(record) == {"resourceType": "Appointment", "priority": "high"}


def test_contained_resources_use_their_own_type(registry):
    codec = TreeCodec(registry)
    tree = {
        "resourceType": "Appointment",
        "contained": [{"resourceType": "Patient", "id": "p1", "gender": "male"}],
        "status": "booked",
        "participant": [{"actor": {"reference": "#p1"}, "status": "accepted"}],
    }
    record = codec.decode(tree)
    assert record.value("contained")[0].type_name == "Patient"
    assert codec.encode(record) == tree


def test_loads_and_dumps_keep_decimal_text(registry):
    codec = TreeCodec(registry)
    text = '{"resourceType": "Observation", "status": "final", "code": {"text": "t"}, "valueQuantity": {"value": 1.50}}'
    record = codec.loads(text)
    assert str(record.value("valueQuantity").value("value")) == "1.50"
    assert '"value": 1.50' in codec.dumps(record)
    assert structural_equals(codec.loads(codec.dumps(record)), record)


def test_dumps_keeps_long_decimals_exact(registry):
    codec = TreeCodec(registry)
    record = (
        RecordBuilder(registry, "Observation")
        .set("status", "final")
        .set("code", {"text": "t"})
        .set_choice("value", "Quantity", {"value": Decimal("12345678901234567.89")})
        .build()
    )
    text = codec.dumps(record)
    assert "12345678901234567.89" in text
    assert structural_equals(codec.loads(text), record)


def test_dumps_writes_non_finite_decimal_as_text(registry):
    """An invalid NaN decimal still dumps, as a string JSON can carry."""
    record = (
        RecordBuilder(registry, "Observation")
        .set("status", "final")
        .set("code", {"text": "t"})
        .set_choice("value", "Quantity", {"value": Decimal("NaN")})
        .build()
    )
    tree = json.loads(TreeCodec(registry).dumps(record))
    assert tree["valueQuantity"] == {"value": "NaN"}


def test_nested_unregistered_record_encodes_with_resource_type(registry):
    appointment = RecordInstance(
        "Appointment",
        {
            "status": Primitive("booked"),
            "cancelationReason": Single(RecordInstance("Spaceship", {"warp": Primitive(9)})),
        },
    )
    tree = TreeCodec(registry).encode(appointment)
    assert tree["cancelationReason"] == {"resourceType": "Spaceship", "warp": 9}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

def test_unknown_resource_type(registry):
    with pytest.raises(UnknownTypeError) as exc:
        TreeCodec(registry).decode({"resourceType": "Spaceship"})
    assert exc.value.type_name == "Spaceship"


def test_missing_resource_type(registry):
    with pytest.raises(UnknownTypeError):
        TreeCodec(registry).decode({"status": "booked"})


def test_datatype_requires_explicit_type(registry):
    record = TreeCodec(registry).decode({"start": "2024"}, type_name="Period")
    assert record.value("start") == PartialDate(2024)


def test_object_where_sequence_expected(registry):
    tree = _appointment_tree()
    tree["participant"] = {"status": "accepted"}
    with pytest.raises(ShapeMismatch) as exc:
        TreeCodec(registry).decode(tree)
    assert exc.value.path == "participant"


def test_scalar_where_object_expected(registry):
    tree = _appointment_tree()
    tree["participant"][0]["period"] = "2024-01-01"
    with pytest.raises(ShapeMismatch) as exc:
        TreeCodec(registry).decode(tree)
    assert exc.value.path == "participant[0].period"


def test_malformed_date_reports_path(registry):
    tree = _appointment_tree()
    tree["participant"][0]["period"] = {"start": "01/02/2024"}
    with pytest.raises(MalformedPrimitive) as exc:
        TreeCodec(registry).decode(tree)
    assert exc.value.path == "participant[0].period.start"
    assert isinstance(exc.value, DecodeError)


def test_list_on_single_field_is_kept_for_validation(registry):
    tree = _appointment_tree()
    tree["status"] = ["booked", "arrived"]
    record = TreeCodec(registry).decode(tree)
    assert record.get("status") == Repeated((Primitive("booked"), Primitive("arrived")))


def test_invalid_json_text(registry):
    with pytest.raises(DecodeError):
        TreeCodec(registry).loads("{not json")


def test_encode_unregistered_type(registry):
    with pytest.raises(UnknownType):
        TreeCodec(registry).encode(RecordInstance("Spaceship"))


def test_invalid_utf8_bytes(registry):
    with pytest.raises(DecodeError) as exc:
        TreeCodec(registry).loads(b'{"resourceType": "Patient", "gender": "\xff"}')
    assert exc.value.path == ""


def test_deeply_nested_text(registry):
    text = '{"resourceType": "Patient", "extra": ' + "[" * 100000 + "]" * 100000 + "}"
    with pytest.raises(DecodeError):
        TreeCodec(registry).loads(text)


def test_resource_type_must_match_requested_type(registry):
    with pytest.raises(ShapeMismatch) as exc:
        TreeCodec(registry).decode({"resourceType": "Patient"}, type_name="Appointment")
    assert exc.value.path == "resourceType"
