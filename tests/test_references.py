from __future__ import annotations

from record_migrator.services.references import ReferenceShape, extract_reference, shadow_field_name
from record_migrator.utils import escape_odata_string, normalize_identifier, strip_braces


def test_shadow_field_name():
    assert shadow_field_name("ownerid") == "_ownerid_value"


def test_shadow_field_takes_priority():
    record = {"_ownerid_value": "{AAA-1}", "ownerid": "bbb-2"}
    reference = extract_reference(record, "ownerid")
    assert reference.identifier == "AAA-1"
    assert reference.shape == ReferenceShape.SHADOW_FIELD


def test_plain_string_reference():
    reference = extract_reference({"ownerid": "bbb-2"}, "ownerid")
    assert reference.identifier == "bbb-2"
    assert reference.shape == ReferenceShape.PLAIN_STRING


def test_nested_value_before_nested_id():
    reference = extract_reference({"ownerid": {"_value": "ccc-3", "id": "ddd-4"}}, "ownerid")
    assert reference.identifier == "ccc-3"
    assert reference.shape == ReferenceShape.NESTED_VALUE


def test_nested_id_reference():
    reference = extract_reference({"ownerid": {"id": "{DDD-4}"}}, "ownerid")
    assert reference.identifier == "DDD-4"
    assert reference.shape == ReferenceShape.NESTED_ID


def test_empty_shadow_falls_back_to_field():
    reference = extract_reference({"_ownerid_value": None, "ownerid": "eee-5"}, "ownerid")
    assert reference.shape == ReferenceShape.PLAIN_STRING


def test_missing_reference_returns_none():
    assert extract_reference({}, "ownerid") is None
    assert extract_reference({"ownerid": None}, "ownerid") is None
    assert extract_reference({"ownerid": {"name": "x"}}, "ownerid") is None
    assert extract_reference({"ownerid": "{}"}, "ownerid") is None


def test_normalize_identifier_is_idempotent():
    once = normalize_identifier("{ABC-1}")
    assert once == "abc-1"
    assert normalize_identifier(once) == once
    assert normalize_identifier("{ABC-1}") == normalize_identifier("abc-1")


def test_strip_braces_keeps_case():
    assert strip_braces("{ABC-1}") == "ABC-1"
    assert strip_braces("ABC-1") == "ABC-1"


def test_escape_odata_string():
    assert escape_odata_string("O'Brien") == "O''Brien"
