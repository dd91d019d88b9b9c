"""Tests for turning definition documents into RecordSchemas."""

import pytest

from fhirmodel.errors import InvalidSchema
from fhirmodel.models.schema import BindingStrength, RecordCategory
from fhirmodel.schemas.definitions import BUILTIN_DEFINITIONS
from fhirmodel.schemas.loader import build_schema, build_schemas, check_definition

BASE = {"name": "Base", "abstract": True, "fields": [{"name": "id", "type": "id"}]}


def _make_doc(**overrides):
    doc = {
        "name": "Gadget",
        "category": "datatype",
        "fields": [
            {"name": "label", "type": "string", "min": 1},
            {"name": "tags", "type": "code", "max": "*"},
        ],
    }
    doc.update(overrides)
    return doc


def test_builtin_definitions_pass_the_document_contract():
    for doc in BUILTIN_DEFINITIONS:
        check_definition(doc)


def test_build_schema_fields():
    schema = build_schema(_make_doc())
    assert schema.category is RecordCategory.DATATYPE
    label, tags = schema.fields
    assert label.is_required and not label.is_repeated
    assert tags.max is None
    assert tags.cardinality() == "0..*"


def test_base_fields_are_prepended():
    schema = build_schema(_make_doc(base="Base"), {"Base": BASE})
    assert schema.field_names() == ["id", "label", "tags"]


def test_derived_type_may_redeclare_a_base_field():
    doc = _make_doc(base="Base", fields=[{"name": "id", "type": "id", "min": 1}])
    schema = build_schema(doc, {"Base": BASE})
    assert schema.field_names() == ["id"]
    assert schema.field("id").is_required


def test_unknown_base():
    with pytest.raises(InvalidSchema, match="unknown base 'Nope'"):
        build_schema(_make_doc(base="Nope"))


def test_circular_base_chain():
    bases = {
        "A": {"name": "A", "abstract": True, "base": "B", "fields": []},
        "B": {"name": "B", "abstract": True, "base": "A", "fields": []},
    }
    with pytest.raises(InvalidSchema, match="circular"):
        build_schema(_make_doc(base="A"), bases)


def test_document_errors_are_collected():
    doc = {"name": "gadget", "fields": [{"name": "x", "type": "string", "choice": []}], "extra": 1}
    with pytest.raises(InvalidSchema) as exc:
        check_definition(doc)
    assert len(exc.value.problems) >= 3


def test_choice_needs_two_alternatives():
    doc = _make_doc(fields=[{"name": "value", "choice": [{"type": "string"}]}])
    with pytest.raises(InvalidSchema):
        build_schema(doc)


def test_targets_only_on_references():
    doc = _make_doc(fields=[{"name": "owner", "type": "string", "targets": ["Patient"]}])
    with pytest.raises(InvalidSchema, match="non-reference"):
        build_schema(doc)


def test_binding_only_on_coded_fields():
    doc = _make_doc(
        fields=[{"name": "label", "type": "string", "binding": {"strength": "required"}}]
    )
    with pytest.raises(InvalidSchema, match="non-coded"):
        build_schema(doc)


def test_binding_and_renames():
    doc = _make_doc(
        renames={"class": "class_"},
        fields=[
            {
                "name": "class",
                "type": "code",
                "binding": {
                    "strength": "extensible",
                    "codes": {"http://example.org/cs": ["a", "b"]},
                },
            }
        ],
    )
    schema = build_schema(doc)
    binding = schema.field("class").binding
    assert binding.strength is BindingStrength.EXTENSIBLE
    assert binding.allows("http://example.org/cs", "a")
    assert binding.allows(None, "b")
    assert not binding.allows("http://example.org/other", "a")
    assert schema.local_name("class") == "class_"
    assert schema.wire_name("class_") == "class"


def test_rename_of_unknown_field():
    with pytest.raises(InvalidSchema, match="rename of unknown field"):
        build_schema(_make_doc(renames={"class": "class_"}))


def test_build_schemas_skips_abstract_documents():
    schemas = build_schemas([BASE, _make_doc(base="Base")])
    assert [schema.name for schema in schemas] == ["Gadget"]
