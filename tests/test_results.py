from django.core.exceptions import ValidationError

from logbook.backends.base import RecordNotFound
from logbook.results import fail, ok, to_error_message


def test_envelopes():
    assert ok({"a": 1}) == {"ok": True, "data": {"a": 1}}
    assert fail("nope") == {"ok": False, "error": "nope"}


def test_field_errors_are_joined_with_field_names():
    e = ValidationError({"weight_kg": ["too small"], "__all__": ["bad combination"]})
    message = to_error_message(e)
    assert "weight_kg: too small" in message
    assert "input: bad combination" in message
    assert "; " in message


def test_plain_validation_error():
    assert to_error_message(ValidationError(["a", "b"])) == "a; b"


def test_other_exceptions_use_their_message():
    assert to_error_message(RecordNotFound("Meal", "rec1")) == "Meal not found: rec1"


def test_non_exceptions_are_serialised():
    assert to_error_message({"code": 1}) == '{"code": 1}'
