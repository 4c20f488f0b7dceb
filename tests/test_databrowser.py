from datetime import datetime, timezone
from unittest import mock

import pytest
from django.apps import apps
from django.urls import reverse

from databrowser.auth import COOKIE_NAME
from databrowser.sources import AirtableSource, UnknownTable, resolve_date_column
from logbook.backends.airtable import AirtableError
from logbook.backends.relational import build_relational_store


@pytest.fixture
def relational_store(db):
    config = apps.get_app_config("logbook")
    previous = config.store
    config.store = build_relational_store()
    yield config.store
    config.store = previous


@pytest.fixture
def token(settings):
    settings.ADMIN_TOKEN = "s3cret"
    return "s3cret"


def seed_meals(store, count, day_key="2024-03-01"):
    day_id = store.days.upsert("default", day_key)
    for i in range(count):
        store.meals.create(
            owner_key="default", day_id=day_id, day_key=day_key,
            eaten_at=datetime(2024, 3, 1, i % 24, tzinfo=timezone.utc), meal_type="Snack", text=f"item {i}",
        )


def test_resolve_date_column_priority():
    columns = [{"name": n} for n in ("id", "created_at", "eaten_at")]
    assert resolve_date_column(columns) == "eaten_at"
    assert resolve_date_column([{"name": "id"}]) is None


def test_open_when_no_token_configured(client, relational_store):
    response = client.get(reverse("databrowser:index"))
    assert response.status_code == 200
    assert "meal_logs" in response.context["tables"]
    assert "days" in response.context["tables"]


def test_redirects_to_login_when_protected(client, relational_store, token):
    response = client.get(reverse("databrowser:index"))
    assert response.status_code == 302
    assert response.url == reverse("databrowser:login")


def test_header_token_is_accepted(client, relational_store, token):
    response = client.get(reverse("databrowser:index"), HTTP_X_ADMIN_TOKEN=token)
    assert response.status_code == 200


def test_login_sets_cookie_and_logout_clears_it(client, relational_store, token):
    response = client.post(reverse("databrowser:login"), {"token": token})
    assert response.status_code == 302
    cookie = response.cookies[COOKIE_NAME]
    assert cookie.value == token
    assert cookie["path"] == "/admin"
    assert cookie["httponly"]
    assert client.get(reverse("databrowser:index")).status_code == 200

    response = client.post(reverse("databrowser:logout"))
    assert response.cookies[COOKIE_NAME].value == ""
    assert client.get(reverse("databrowser:index")).status_code == 302


def test_wrong_token_redirects_with_error(client, relational_store, token):
    response = client.post(reverse("databrowser:login"), {"token": "guess"})
    assert response.status_code == 302
    assert response.url.endswith("?error=invalid")
    assert COOKIE_NAME not in response.cookies


def test_table_paging_and_limits(client, relational_store):
    seed_meals(relational_store, 25)
    url = reverse("databrowser:table", args=["meal_logs"])

    response = client.get(url)
    assert response.context["limit"] == 20
    assert len(response.context["page"].rows) == 20
    assert response.context["page"].total == 25
    assert response.context["prev_url"] is None
    assert "offset=20" in response.context["next_url"]

    response = client.get(url, {"limit": "500", "offset": "-4"})
    assert response.context["limit"] == 100
    assert response.context["offset"] == 0
    assert response.context["next_url"] is None

    response = client.get(url, {"limit": "0", "offset": "20"})
    assert response.context["limit"] == 1
    assert len(response.context["page"].rows) == 1


def test_table_filters(client, relational_store):
    seed_meals(relational_store, 3, "2024-03-01")
    seed_meals(relational_store, 2, "2024-03-02")
    url = reverse("databrowser:table", args=["meal_logs"])

    assert client.get(url, {"day_key": "2024-03-02"}).context["page"].total == 2
    assert client.get(url, {"owner_key": "nobody"}).context["page"].total == 0
    # invalid day filters are ignored
    assert client.get(url, {"day_key": "yesterday"}).context["page"].total == 5


def test_table_date_range_uses_local_days(client, relational_store):
    seed_meals(relational_store, 3)
    url = reverse("databrowser:table", args=["meal_logs"])
    page = client.get(url, {"from": "2024-03-01", "to": "2024-03-01"}).context["page"]
    assert page.date_column == "eaten_at"
    assert page.total == 3
    assert client.get(url, {"from": "2024-03-02"}).context["page"].total == 0


def test_unknown_table_is_404(client, relational_store):
    assert client.get(reverse("databrowser:table", args=["auth_user"])).status_code == 404


def test_row_detail(client, relational_store):
    seed_meals(relational_store, 1)
    row_id = relational_store.meals.list_by_day("default", "2024-03-01")[0].id
    response = client.get(reverse("databrowser:row", args=["meal_logs", row_id]))
    assert response.status_code == 200
    assert response.context["values"]["text"] == "item 0"
    assert client.get(reverse("databrowser:row", args=["meal_logs", "missing"])).status_code == 404


def test_no_backend(client, no_store):
    response = client.get(reverse("databrowser:index"))
    assert response.status_code == 200
    assert "No storage backend configured" in response.context["hint"]


def test_airtable_source_filters_in_python(settings):
    settings.APP_TZ = "Asia/Tokyo"
    client = mock.Mock()
    client.list_all.return_value = [
        {"id": "m1", "createdTime": "2024-03-01T00:00:00.000Z", "fields": {"eatenAt": "2024-02-29T16:00:00.000Z"}},
        {"id": "m2", "createdTime": "2024-03-01T00:00:00.000Z", "fields": {"eatenAt": "2024-03-02T03:00:00.000Z"}},
        {"id": "m3", "createdTime": "2024-03-01T00:00:00.000Z", "fields": {}},
    ]
    source = AirtableSource(client)
    page = source.fetch_rows("MealLogs", 10, 0, {"owner_key": "me", "from": "2024-03-01", "to": "2024-03-01"})

    assert page.date_column == "eatenAt"
    assert [r["id"] for r in page.rows] == ["m1"]
    assert client.list_all.call_args.kwargs["filter_by_formula"] == "{ownerKey}='me'"

    with pytest.raises(UnknownTable):
        source.fetch_rows("Secrets", 10, 0, {})


def test_impossible_dates_are_dropped_from_filters(client, relational_store):
    seed_meals(relational_store, 2)
    meals = client.get(reverse("databrowser:table", args=["meal_logs"]), {"from": "2024-02-30"})
    assert meals.status_code == 200
    assert meals.context["filters"] == {}
    assert meals.context["page"].total == 2

    days = client.get(reverse("databrowser:table", args=["days"]), {"to": "2024-02-30"})
    assert days.status_code == 200
    assert days.context["page"].total == 1


def test_backend_failure_is_shown_inline(client, relational_store):
    source = mock.Mock()
    source.fetch_rows.side_effect = AirtableError(503, "https://api.airtable.com/v0/app/MealLogs", "unavailable")
    source.fetch_row.side_effect = AirtableError(503, "https://api.airtable.com/v0/app/MealLogs/m1", "unavailable")

    with mock.patch("databrowser.views.get_source", return_value=source):
        table = client.get(reverse("databrowser:table", args=["MealLogs"]))
        row = client.get(reverse("databrowser:row", args=["MealLogs", "m1"]))

    assert table.status_code == 200
    assert table.context["page"] is None
    assert table.context["error"]
    assert row.status_code == 200
    assert row.context["error"]
