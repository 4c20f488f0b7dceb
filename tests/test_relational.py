import threading
from datetime import datetime, timezone

import pytest
from django.db import connection

from logbook.backends.base import RecordNotFound
from logbook.backends.relational import build_relational_store
from logbook.models import Day

pytestmark = pytest.mark.django_db

AT = datetime(2024, 3, 1, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def rel():
    return build_relational_store()


def add_meal(rel, day_key="2024-03-01", **extra):
    day_id = rel.days.upsert("me", day_key)
    values = {"eaten_at": AT, "meal_type": "Lunch", "text": "ramen"}
    values.update(extra)
    return rel.meals.create(owner_key="me", day_id=day_id, day_key=day_key, **values)


def test_day_upsert_is_idempotent(rel):
    first = rel.days.upsert("me", "2024-03-01")
    second = rel.days.upsert("me", "2024-03-01")
    assert first == second
    assert Day.objects.filter(owner_key="me", day_key="2024-03-01").count() == 1


@pytest.mark.django_db(transaction=True)
def test_concurrent_day_upserts_share_one_row(rel):
    barrier = threading.Barrier(2)
    ids, errors = [], []

    def upsert():
        try:
            barrier.wait(timeout=5)
            ids.append(rel.days.upsert("me", "2024-03-05"))
        except Exception as e:
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=upsert) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(ids) == 2
    assert ids[0] == ids[1]
    assert Day.objects.filter(owner_key="me", day_key="2024-03-05").count() == 1


def test_day_upsert_separates_owners(rel):
    assert rel.days.upsert("me", "2024-03-01") != rel.days.upsert("you", "2024-03-01")


def test_list_by_range_has_live_counts(rel):
    add_meal(rel)
    add_meal(rel)
    add_meal(rel, "2024-03-02")
    day_id = rel.days.upsert("me", "2024-03-01")
    rel.weights.create(owner_key="me", day_id=day_id, day_key="2024-03-01", recorded_at=AT, weight_kg=60)
    rel.days.upsert("me", "2024-04-01")

    days = rel.days.list_by_range("me", "2024-03-01", "2024-04-01")
    assert [d.fields["dayKey"] for d in days] == ["2024-03-01", "2024-03-02"]
    assert days[0].fields["mealCount"] == 2
    assert days[0].fields["weightCount"] == 1
    assert days[1].fields["mealCount"] == 1
    assert days[1].fields["sleepCount"] == 0


def test_records_use_external_field_names(rel):
    meal = add_meal(rel, calories_kcal=550.0, note=None)
    assert meal.fields["ownerKey"] == "me"
    assert meal.fields["dayKey"] == "2024-03-01"
    assert meal.fields["eatenAt"] == "2024-03-01T03:00:00Z"
    assert meal.fields["caloriesKcal"] == 550.0
    assert len(meal.fields["dayRef"]) == 1
    assert "note" not in meal.fields


def test_single_day_find_and_delete(rel):
    day_id = rel.days.upsert("me", "2024-03-01")
    rel.weights.create(owner_key="me", day_id=day_id, day_key="2024-03-01", recorded_at=AT, weight_kg=61.2)
    assert rel.weights.find("me", "2024-03-01").fields["weightKg"] == 61.2

    rel.weights.delete_by_day("me", "2024-03-01")
    assert rel.weights.find("me", "2024-03-01") is None
    # nothing left to delete is fine
    rel.weights.delete_by_day("me", "2024-03-01")


def test_update_patches_and_moves_day(rel):
    meal = add_meal(rel)
    new_day = rel.days.upsert("me", "2024-03-05")
    updated = rel.meals.update(meal.id, {"text": "udon", "day_id": new_day, "day_key": "2024-03-05"})
    assert updated.fields["text"] == "udon"
    assert updated.fields["dayRef"] == [new_day]
    assert rel.meals.list_by_day("me", "2024-03-01") == []


def test_missing_ids_raise(rel):
    with pytest.raises(RecordNotFound, match="Meal not found: nope"):
        rel.meals.update("nope", {"text": "x"})
    with pytest.raises(RecordNotFound):
        rel.workouts.delete("nope")
    with pytest.raises(RecordNotFound):
        rel.meals.get("nope")


def test_list_by_day_orders_by_time(rel):
    later = add_meal(rel, eaten_at=datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc))
    earlier = add_meal(rel, eaten_at=datetime(2024, 3, 1, 1, 0, tzinfo=timezone.utc))
    assert [m.id for m in rel.meals.list_by_day("me", "2024-03-01")] == [earlier.id, later.id]


def test_workouts_by_owner_newest_first(rel):
    day_id = rel.days.upsert("me", "2024-03-01")
    for hour in (1, 5, 3):
        rel.workouts.create(
            owner_key="me", day_id=day_id, day_key="2024-03-01",
            performed_at=datetime(2024, 3, 1, hour, tzinfo=timezone.utc), workout_type="Run", duration_min=30,
        )
    hours = [w.fields["performedAt"][11:13] for w in rel.workouts.list_by_owner("me", limit=2)]
    assert hours == ["05", "03"]


def test_journal_crud(rel):
    entry = rel.journal.create("me", "Title", "Body", [{"url": "https://example.com/x"}])
    assert rel.journal.get("me", entry.id).fields["attach"] == [{"url": "https://example.com/x"}]
    assert rel.journal.get("you", entry.id) is None

    rel.journal.update("me", entry.id, "New", "Body2", [])
    assert rel.journal.get("me", entry.id).fields["title"] == "New"
    assert [e.id for e in rel.journal.list("me")] == [entry.id]

    rel.journal.delete("me", entry.id)
    assert rel.journal.get("me", entry.id) is None
    with pytest.raises(RecordNotFound, match="Journal entry not found"):
        rel.journal.delete("me", entry.id)
    with pytest.raises(RecordNotFound):
        rel.journal.update("me", entry.id, "t", "d", [])
