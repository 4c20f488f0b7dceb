from unittest import mock

from django.urls import reverse

from logbook import actions


def test_home_calendar(client, store):
    actions.add_meal(store, {"eaten_at": "2024-03-05T12:00", "meal_type": "Lunch", "text": "soba"})
    response = client.get(reverse("logbook:home"), {"month": "2024-03"})
    assert response.status_code == 200
    assert response.context["prev_month"] == "2024-02"
    cells = [cell for week in response.context["weeks"] for cell in week if cell]
    assert len(cells) == 31
    assert cells[4]["day_key"] == "2024-03-05"
    assert cells[4]["meal"] == 1
    # 2024-03-01 is a Friday
    assert response.context["weeks"][0][:5] == [None] * 5


def test_pages_render_without_backend(client, no_store):
    for name in ("logbook:home", "logbook:day_summary", "logbook:weight", "logbook:sleep",
                 "logbook:eat", "logbook:workout", "logbook:workout_list", "journal:list"):
        response = client.get(reverse(name))
        assert response.status_code == 200, name
        assert "No storage backend configured" in response.content.decode()


def test_weight_form_post_redirects_to_day(client, store):
    response = client.post(
        reverse("logbook:weight") + "?day=2024-03-01",
        {"recorded_at": "2024-03-01T07:15", "weight_kg": "62.3", "body_fat_pct": "", "note": ""},
    )
    assert response.status_code == 302
    assert response.url == reverse("logbook:weight") + "?day=2024-03-01"

    page = client.get(response.url)
    assert page.context["existing"].fields["weightKg"] == 62.3
    assert page.context["values"]["weight_kg"] == 62.3


def test_weight_form_error_is_shown(client, store):
    response = client.post(reverse("logbook:weight"), {"recorded_at": "2024-03-01T07:15", "weight_kg": "2"})
    assert response.status_code == 200
    assert response.context["form_error"].startswith("weight_kg:")
    assert response.context["values"]["weight_kg"] == "2"


def test_sleep_delete(client, store):
    actions.save_sleep(store, {"sleep_start_at": "2024-02-29T23:00", "sleep_end_at": "2024-03-01T06:00"})
    response = client.post(reverse("logbook:sleep_delete"), {"day": "2024-03-01"})
    assert response.status_code == 302
    assert store.sleeps.find("default", "2024-03-01") is None


def test_meal_page_add_edit_delete(client, store):
    url = reverse("logbook:eat") + "?day=2024-03-01"
    response = client.post(url, {"eaten_at": "2024-03-01T12:00", "meal_type": "Lunch", "text": "curry"})
    assert response.status_code == 302

    page = client.get(url)
    [row] = page.context["rows"]
    record_id = row["entry"].id
    assert row["values"]["text"] == "curry"

    response = client.post(reverse("logbook:meal_edit", args=[record_id]) + "?day=2024-03-01",
                           {"eaten_at": "2024-03-01T12:00", "meal_type": "Lunch", "text": "katsu curry"})
    assert response.status_code == 302
    assert store.meals.rows[record_id]["text"] == "katsu curry"

    response = client.post(reverse("logbook:meal_edit", args=[record_id]) + "?day=2024-03-01",
                           {"calories_kcal": "-5"})
    assert response.status_code == 200
    assert response.context["rows"][0]["error"].startswith("calories_kcal:")

    response = client.post(reverse("logbook:meal_delete", args=[record_id]) + "?day=2024-03-01")
    assert response.status_code == 302
    assert store.meals.rows == {}


def test_assist_fills_blank_fields(client, store, settings):
    settings.OPENAI_API_KEY = "sk-test"
    suggestion = {"ok": True, "data": {"workoutType": "Run", "durationMin": 30, "intensity": "Medium"}}
    with mock.patch.dict("logbook.views.ENTRY_PAGES") as pages:
        pages["workout"] = {**pages["workout"], "assist": mock.Mock(return_value=suggestion)}
        response = client.post(reverse("logbook:workout") + "?day=2024-03-01", {
            "assist": "1", "performed_at": "2024-03-01T18:00", "workout_type": "",
            "duration_min": "", "intensity": "High", "detail": "30 minute jog",
        })
    assert response.status_code == 200
    values = response.context["values"]
    assert values["workout_type"] == "Run"
    assert values["duration_min"] == 30
    assert values["intensity"] == "High"
    assert values["ai_assisted"] is True
    assert store.workouts.rows == {}


def test_journal_pages(client, store):
    response = client.post(reverse("journal:list"), {"title": "Trip", "details": "Went hiking", "attach": ""})
    assert response.status_code == 302
    entry_id = response.url.rstrip("/").split("/")[-1]

    detail = client.get(reverse("journal:detail", args=[entry_id]))
    assert detail.status_code == 200
    assert "Went hiking" in detail.content.decode()

    edit = client.get(reverse("journal:edit", args=[entry_id]))
    assert edit.context["values"]["title"] == "Trip"

    response = client.post(reverse("journal:edit", args=[entry_id]),
                           {"title": "Trip", "details": "Went hiking", "attach": "https://example.com/photo.jpg"})
    assert response.status_code == 302
    assert store.journal.get("default", entry_id).fields["attach"] == [{"url": "https://example.com/photo.jpg"}]

    assert client.post(reverse("journal:delete", args=[entry_id])).status_code == 302
    assert client.get(reverse("journal:detail", args=[entry_id])).status_code == 404
