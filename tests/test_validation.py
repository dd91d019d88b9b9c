"""Tests for the record validator and the definition-document JSON Schema check."""

from fhirmodel.models.record import Primitive, RecordBuilder, Reference, Repeated, Single
from fhirmodel.schemas.meta import SCHEMA_DEFINITION_SCHEMA
from fhirmodel.services.validation import (
    IssueKind,
    Severity,
    Validator,
    is_valid,
    validate,
    validate_against_schema,
)


def _make_appointment(registry, status="booked"):
    return (
        RecordBuilder(registry, "Appointment")
        .set("status", status)
        .add("participant", {"status": "accepted", "actor": "Patient/123"})
        .build()
    )


def _make_device_request(registry):
    return (
        RecordBuilder(registry, "DeviceRequest")
        .set("intent", "order")
        .set("subject", "Patient/123")
        .set(
            "codeCodeableConcept",
            {"coding": [{"system": "http://snomed.info/sct", "code": "25062003"}]},
        )
        .build()
    )


def _kinds(issues):
    return [(issue.kind, issue.path) for issue in issues]


# ---------------------------------------------------------------------------
# Appointment scenario
# ---------------------------------------------------------------------------

def test_valid_appointment_has_no_issues(registry):
    """Booked appointment with one accepted participant is clean."""
    assert validate(_make_appointment(registry), registry) == []


def test_missing_status_reported_once(registry):
    appointment = _make_appointment(registry).without("status")
    issues = validate(appointment, registry)
    assert _kinds(issues) == [(IssueKind.MISSING_REQUIRED_FIELD, "status")]


def test_unknown_status_code(registry):
    issues = validate(_make_appointment(registry, status="bogus-code"), registry)
    assert _kinds(issues) == [(IssueKind.CODE_NOT_IN_VALUE_SET, "status")]
    assert issues[0].severity is Severity.ERROR
    assert not is_valid(issues)


def test_removing_each_required_field_adds_exactly_one_issue(registry):
    """Dropping a min>=1 field yields one MissingRequiredField at its path."""
    appointment = _make_appointment(registry)
    schema = registry.lookup("Appointment")
    required = [d.name for d in schema.fields if d.is_required]
    assert required == ["status", "participant"]
    for name in required:
        issues = validate(appointment.without(name), registry)
        assert _kinds(issues) == [(IssueKind.MISSING_REQUIRED_FIELD, name)]


def test_nested_issue_paths(registry):
    appointment = (
        RecordBuilder(registry, "Appointment")
        .set("status", "booked")
        .add("participant", {"status": "accepted"})
        .add("participant", {"required": "optional"})
        .build()
    )
    issues = validate(appointment, registry)
    assert _kinds(issues) == [(IssueKind.MISSING_REQUIRED_FIELD, "participant[1].status")]


def test_empty_repeated_counts_as_missing(registry):
    appointment = _make_appointment(registry).with_field("participant", Repeated(()))
    issues = validate(appointment, registry)
    assert _kinds(issues) == [(IssueKind.MISSING_REQUIRED_FIELD, "participant")]


def test_cardinality_exceeded(registry):
    reason = RecordBuilder(registry, "CodeableConcept").set("text", "a").build()
    appointment = _make_appointment(registry).with_field(
        "cancelationReason", Repeated((Single(reason), Single(reason)))
    )
    issues = validate(appointment, registry)
    assert _kinds(issues) == [(IssueKind.CARDINALITY_EXCEEDED, "cancelationReason")]


# ---------------------------------------------------------------------------
# Choice fields
# ---------------------------------------------------------------------------

def test_single_choice_alternative_is_valid(registry):
    assert validate(_make_device_request(registry), registry) == []


def test_two_choice_alternatives_are_ambiguous(registry):
    """Each alternative type-checks on its own; together they are rejected."""
    request = _make_device_request(registry).with_field(
        "codeReference", Reference(target_identifier="Device/abc")
    )
    issues = validate(request, registry)
    assert _kinds(issues) == [(IssueKind.AMBIGUOUS_CHOICE, "code[x]")]


def test_missing_required_choice(registry):
    request = _make_device_request(registry).without("codeCodeableConcept")
    issues = validate(request, registry)
    assert _kinds(issues) == [(IssueKind.MISSING_REQUIRED_FIELD, "code[x]")]


# ---------------------------------------------------------------------------
# Types and references
# ---------------------------------------------------------------------------

def test_type_mismatch_on_primitive(registry):
    appointment = _make_appointment(registry).with_field("priority", Primitive("high"))
    issues = validate(appointment, registry)
    assert _kinds(issues) == [(IssueKind.TYPE_MISMATCH, "priority")]


def test_positive_int_bounds(registry):
    appointment = _make_appointment(registry).with_field("minutesDuration", Primitive(0))
    issues = validate(appointment, registry)
    assert _kinds(issues) == [(IssueKind.TYPE_MISMATCH, "minutesDuration")]


def test_wrong_record_type_in_complex_field(registry):
    coding = RecordBuilder(registry, "Coding").set("code", "x").build()
    appointment = _make_appointment(registry).with_field("cancelationReason", Single(coding))
    issues = validate(appointment, registry)
    assert _kinds(issues) == [(IssueKind.TYPE_MISMATCH, "cancelationReason")]


def test_reference_target_not_allowed(registry):
    request = _make_device_request(registry).with_field(
        "subject", Reference(target_identifier="Practitioner/9")
    )
    issues = validate(request, registry)
    assert _kinds(issues) == [(IssueKind.INVALID_REFERENCE_TARGET, "subject")]


def test_reference_type_hint_is_checked(registry):
    request = _make_device_request(registry).with_field(
        "subject", Reference(target_type_hint="Patient", display="Jane")
    )
    assert validate(request, registry) == []


def test_untyped_reference_is_not_checked(registry):
    request = _make_device_request(registry).with_field(
        "subject", Reference(target_identifier="#contained-1")
    )
    assert validate(request, registry) == []


def test_contained_accepts_any_resource(registry):
    patient = RecordBuilder(registry, "Patient").set("gender", "female").build()
    coding = RecordBuilder(registry, "Coding").set("code", "x").build()
    appointment = _make_appointment(registry).with_field(
        "contained", Repeated((Single(patient),))
    )
    assert validate(appointment, registry) == []
    appointment = appointment.with_field("contained", Repeated((Single(coding),)))
    assert _kinds(validate(appointment, registry)) == [(IssueKind.TYPE_MISMATCH, "contained[0]")]


# ---------------------------------------------------------------------------
# Bindings
# ---------------------------------------------------------------------------

def test_coding_with_unknown_system_is_not_in_value_set(registry):
    encounter = (
        RecordBuilder(registry, "Encounter")
        .set("status", "finished")
        .set("class_", {"system": "http://example.org/unknown", "code": "AMB"})
        .build()
    )
    issues = validate(encounter, registry, include_advisory=True)
    assert _kinds(issues) == [(IssueKind.CODE_NOT_IN_VALUE_SET, "class")]
    assert issues[0].severity is Severity.WARNING
    assert is_valid(issues)


def test_advisory_bindings_can_be_suppressed(registry):
    encounter = (
        RecordBuilder(registry, "Encounter")
        .set("status", "finished")
        .set("class", {"system": "http://example.org/unknown", "code": "AMB"})
        .build()
    )
    assert Validator(registry, include_advisory=False).validate(encounter) == []


def test_codeable_concept_passes_if_any_coding_matches(registry):
    identifier = {
        "type": {
            "coding": [
                {"system": "http://example.org/local", "code": "X"},
                {"system": "http://terminology.hl7.org/CodeSystem/v2-0203", "code": "MR"},
            ]
        },
        "value": "12345",
    }
    patient = RecordBuilder(registry, "Patient").add("identifier", identifier).build()
    assert validate(patient, registry, include_advisory=True) == []


def test_required_binding_inside_datatype(registry):
    patient = RecordBuilder(registry, "Patient").add("name", {"use": "nick", "family": "Doe"}).build()
    issues = validate(patient, registry)
    assert _kinds(issues) == [(IssueKind.CODE_NOT_IN_VALUE_SET, "name[0].use")]


# ---------------------------------------------------------------------------
# Definition documents (jsonschema)
# ---------------------------------------------------------------------------

def test_definition_document_passes_json_schema():
    doc = {"name": "Thing", "fields": [{"name": "label", "type": "string", "max": "*"}]}
    assert validate_against_schema(doc, SCHEMA_DEFINITION_SCHEMA) == []


def test_definition_document_errors_are_collected():
    doc = {"name": "thing", "fields": [{"name": "label", "type": "string", "max": "many"}]}
    errors = validate_against_schema(doc, SCHEMA_DEFINITION_SCHEMA)
    assert len(errors) >= 2
