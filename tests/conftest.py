import itertools
from datetime import date, datetime

import pytest
from django.apps import apps
from django.core.cache import cache
from django.utils import timezone

from logbook.backends.base import (
    DayRepository,
    JournalRepository,
    MealRepository,
    Record,
    RecordNotFound,
    SleepRepository,
    Store,
    WeightRepository,
    WorkoutRepository,
    camel,
)
from logbook.daykey import to_iso

_ids = itertools.count(1)


def _value(v):
    if isinstance(v, datetime):
        return to_iso(v)
    if isinstance(v, date):
        return v.isoformat()
    return v


def _to_record(row):
    fields = {}
    for name, value in row.items():
        if name in ("id", "created_at") or value is None:
            continue
        fields[camel(name)] = [value] if name == "day_id" else _value(value)
    return Record(id=row["id"], created_at=row["created_at"], fields=fields)


class FakeTable:
    """Rows kept in a dict, keyed by id, with the same Record shape as the real backends."""

    prefix = "rec"

    def __init__(self):
        self.rows = {}

    def create(self, **fields):
        record_id = f"{self.prefix}{next(_ids)}"
        self.rows[record_id] = {"id": record_id, "created_at": to_iso(timezone.now()), **fields}
        return _to_record(self.rows[record_id])

    def update(self, record_id, patch):
        if record_id not in self.rows:
            raise RecordNotFound(self.kind, record_id)
        self.rows[record_id].update(patch)
        return _to_record(self.rows[record_id])

    def _for_day(self, owner_key, day_key):
        return [r for r in self.rows.values() if r["owner_key"] == owner_key and r["day_key"] == day_key]

    def find(self, owner_key, day_key):
        rows = self._for_day(owner_key, day_key)
        return _to_record(rows[-1]) if rows else None

    def delete_by_day(self, owner_key, day_key):
        for row in self._for_day(owner_key, day_key):
            del self.rows[row["id"]]

    def list_by_range(self, owner_key, start_inclusive, end_exclusive):
        rows = [
            r for r in self.rows.values()
            if r["owner_key"] == owner_key and start_inclusive <= r["day_key"] < end_exclusive
        ]
        return [_to_record(r) for r in sorted(rows, key=lambda r: r["day_key"])]

    def list_by_day(self, owner_key, day_key):
        return [_to_record(r) for r in self._for_day(owner_key, day_key)]

    def get(self, record_id):
        if record_id not in self.rows:
            raise RecordNotFound(self.kind, record_id)
        return _to_record(self.rows[record_id])

    def delete(self, record_id):
        if record_id not in self.rows:
            raise RecordNotFound(self.kind, record_id)
        del self.rows[record_id]


class FakeWeights(FakeTable, WeightRepository):
    prefix = "wgt"


class FakeSleeps(FakeTable, SleepRepository):
    prefix = "slp"


class FakeMeals(FakeTable, MealRepository):
    prefix = "meal"


class FakeWorkouts(FakeTable, WorkoutRepository):
    prefix = "wrk"

    def list_by_owner(self, owner_key, limit=50):
        rows = [r for r in self.rows.values() if r["owner_key"] == owner_key]
        rows.sort(key=lambda r: r["performed_at"], reverse=True)
        return [_to_record(r) for r in rows[:limit]]


class FakeDays(DayRepository):
    def __init__(self):
        self.rows = {}
        self.children = {}

    def find(self, owner_key, day_key):
        row = self.rows.get((owner_key, day_key))
        return self._record(row) if row else None

    def upsert(self, owner_key, day_key, day_date=None):
        key = (owner_key, day_key)
        if key not in self.rows:
            self.rows[key] = {"id": f"day{next(_ids)}", "owner_key": owner_key, "day_key": day_key,
                              "day_date": day_date or day_key}
        return self.rows[key]["id"]

    def _record(self, row):
        fields = {"ownerKey": row["owner_key"], "dayKey": row["day_key"], "dayDate": row["day_date"]}
        for name, table in self.children.items():
            fields[f"{name}Count"] = len(table._for_day(row["owner_key"], row["day_key"]))
        return Record(id=row["id"], created_at="2024-01-01T00:00:00Z", fields=fields)

    def list_by_range(self, owner_key, start_inclusive, end_exclusive):
        rows = [
            r for (o, d), r in self.rows.items()
            if o == owner_key and start_inclusive <= d < end_exclusive
        ]
        return [self._record(r) for r in sorted(rows, key=lambda r: r["day_key"])]


class FakeJournal(JournalRepository):
    def __init__(self):
        self.rows = {}

    def list(self, owner_key, limit=50, offset=0):
        rows = [r for r in self.rows.values() if r.fields["ownerKey"] == owner_key]
        rows.sort(key=lambda r: r.fields["updatedAt"], reverse=True)
        return rows[offset:offset + limit]

    def get(self, owner_key, entry_id):
        entry = self.rows.get(entry_id)
        if entry is None or entry.fields["ownerKey"] != owner_key:
            return None
        return entry

    def create(self, owner_key, title, details, attach):
        now = to_iso(timezone.now())
        entry = Record(id=f"jrn{next(_ids)}", created_at=now, fields={
            "ownerKey": owner_key, "title": title, "details": details, "attach": attach, "updatedAt": now,
        })
        self.rows[entry.id] = entry
        return entry

    def update(self, owner_key, entry_id, title, details, attach):
        entry = self.get(owner_key, entry_id)
        if entry is None:
            raise RecordNotFound(self.kind, entry_id)
        entry.fields.update(title=title, details=details, attach=attach, updatedAt=to_iso(timezone.now()))
        return entry

    def delete(self, owner_key, entry_id):
        if self.get(owner_key, entry_id) is None:
            raise RecordNotFound(self.kind, entry_id)
        del self.rows[entry_id]


def make_fake_store():
    days = FakeDays()
    store = Store(
        name="fake",
        days=days,
        weights=FakeWeights(),
        sleeps=FakeSleeps(),
        meals=FakeMeals(),
        workouts=FakeWorkouts(),
        journal=FakeJournal(),
    )
    days.children = {
        "weight": store.weights,
        "sleep": store.sleeps,
        "meal": store.meals,
        "workout": store.workouts,
    }
    return store


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def store():
    config = apps.get_app_config("logbook")
    previous = config.store
    config.store = make_fake_store()
    yield config.store
    config.store = previous


@pytest.fixture
def no_store():
    config = apps.get_app_config("logbook")
    previous = config.store
    config.store = None
    yield
    config.store = previous
