from types import SimpleNamespace
from unittest import mock

import pytest

from logbook.ai import assist_meal, assist_workout, extract_json, merge_assist


def fake_client(content):
    client = mock.Mock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    return client


@pytest.fixture
def ai_key(settings):
    settings.OPENAI_API_KEY = "sk-test"
    settings.OPENAI_MODEL = "gpt-4o-mini"


def test_extract_json_from_fence_and_prose():
    assert extract_json('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert extract_json('Sure! {"a": {"b": 2}} hope that helps') == '{"a": {"b": 2}}'
    assert extract_json("no json") == "no json"


def test_empty_text_fails_before_calling_out(ai_key):
    client = fake_client("{}")
    assert assist_meal({"text": "  "}, client=client) == {"ok": False, "error": "Text is empty."}
    client.chat.completions.create.assert_not_called()


def test_not_configured(settings):
    settings.OPENAI_API_KEY = ""
    result = assist_meal({"text": "toast"})
    assert result == {"ok": False, "error": "AI assist is not configured (missing OPENAI_API_KEY)."}


def test_meal_assist(ai_key):
    client = fake_client('```json\n{"mealType": "Breakfast", "items": [" toast ", "coffee"], "notes": ""}\n```')
    result = assist_meal({"text": "toast and coffee at 8"}, client=client)
    assert result == {"ok": True, "data": {"mealType": "Breakfast", "items": ["toast", "coffee"]}}

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert "toast and coffee at 8" in kwargs["messages"][-1]["content"]


def test_workout_assist_rejects_out_of_schema_values(ai_key):
    client = fake_client('{"workoutType": "Skydiving", "durationMin": 30}')
    result = assist_workout({"text": "jumped out of a plane"}, client=client)
    assert result["ok"] is False
    assert result["error"].startswith("AI output rejected: workoutType:")


def test_non_json_reply(ai_key):
    result = assist_workout({"text": "ran"}, client=fake_client("I could not tell."))
    assert result["ok"] is False
    assert "non-JSON" in result["error"]


def test_merge_only_fills_blanks():
    values = {"meal_type": "Lunch", "text": "ramen", "items_json": "", "note": ""}
    merged = merge_assist("meal", values, {"mealType": "Dinner", "items": ["ramen"], "notes": "large"})
    assert merged["meal_type"] == "Lunch"
    assert merged["items_json"] == '["ramen"]'
    assert merged["note"] == "large"
    assert merged["ai_assisted"] is True
    assert values["items_json"] == ""


def test_merge_workout():
    merged = merge_assist("workout", {"workout_type": "", "duration_min": ""}, {"workoutType": "Run", "durationMin": 30})
    assert merged["workout_type"] == "Run"
    assert merged["duration_min"] == 30


def test_merge_unknown_kind():
    with pytest.raises(ValueError):
        merge_assist("nap", {}, {})
