"""Cached reads for the pages and the JSON API."""
from .cache import (
    cached_read,
    journal_entry_tag,
    journal_list_tag,
    owner_tag,
    tags_for_day,
    tags_for_month,
)
from .daykey import add_days, month_bounds

TREND_DAYS = 14


def month_days(store, owner_key, month):
    start, end = month_bounds(month)
    return cached_read(
        "month_days",
        [store.name, owner_key, month],
        tags_for_month(owner_key, month),
        lambda: store.days.list_by_range(owner_key, start, end),
    )


def weight_for_day(store, owner_key, day_key):
    return cached_read(
        "weight_for_day",
        [store.name, owner_key, day_key],
        tags_for_day(owner_key, day_key),
        lambda: store.weights.find(owner_key, day_key),
    )


def sleep_for_day(store, owner_key, day_key):
    return cached_read(
        "sleep_for_day",
        [store.name, owner_key, day_key],
        tags_for_day(owner_key, day_key),
        lambda: store.sleeps.find(owner_key, day_key),
    )


def meals_for_day(store, owner_key, day_key):
    return cached_read(
        "meals_for_day",
        [store.name, owner_key, day_key],
        tags_for_day(owner_key, day_key),
        lambda: store.meals.list_by_day(owner_key, day_key),
    )


def workouts_for_day(store, owner_key, day_key):
    return cached_read(
        "workouts_for_day",
        [store.name, owner_key, day_key],
        tags_for_day(owner_key, day_key),
        lambda: store.workouts.list_by_day(owner_key, day_key),
    )


def recent_workouts(store, owner_key, limit=50):
    return cached_read(
        "recent_workouts",
        [store.name, owner_key, limit],
        [owner_tag(owner_key)],
        lambda: store.workouts.list_by_owner(owner_key, limit),
    )


def day_summary(store, owner_key, day_key):
    meals = meals_for_day(store, owner_key, day_key)
    return {
        "dayKey": day_key,
        "weight": weight_for_day(store, owner_key, day_key),
        "sleep": sleep_for_day(store, owner_key, day_key),
        "meals": meals,
        "workouts": workouts_for_day(store, owner_key, day_key),
        "totalCalories": sum(m.fields.get("caloriesKcal") or 0 for m in meals),
    }


def trend_labels(day_key, days=TREND_DAYS):
    return [add_days(day_key, i - days + 1) for i in range(days)]


def _trend(repo, name, value_of, store, owner_key, day_key, days):
    labels = trend_labels(day_key, days)

    def load():
        rows = repo.list_by_range(owner_key, labels[0], add_days(day_key, 1))
        by_day = {r.fields.get("dayKey"): value_of(r) for r in rows}
        return {"labels": labels, "data": [by_day.get(d) for d in labels]}

    # any write for the owner can land inside the window
    return cached_read(name, [store.name, owner_key, day_key, days], [owner_tag(owner_key)], load)


def weight_trend(store, owner_key, day_key, days=TREND_DAYS):
    return _trend(store.weights, "weight_trend", lambda r: r.fields.get("weightKg"),
                  store, owner_key, day_key, days)


def sleep_trend(store, owner_key, day_key, days=TREND_DAYS):
    """Hours slept per wake-up day."""
    def hours(r):
        minutes = r.fields.get("durationMin")
        return round(minutes / 60, 2) if minutes is not None else None

    return _trend(store.sleeps, "sleep_trend", hours, store, owner_key, day_key, days)


def journal_entries(store, owner_key, limit=50, offset=0):
    return cached_read(
        "journal_entries",
        [store.name, owner_key, limit, offset],
        [owner_tag(owner_key), journal_list_tag(owner_key)],
        lambda: store.journal.list(owner_key, limit=limit, offset=offset),
    )


def journal_entry(store, owner_key, entry_id):
    return cached_read(
        "journal_entry",
        [store.name, owner_key, entry_id],
        [owner_tag(owner_key), journal_entry_tag(owner_key, entry_id)],
        lambda: store.journal.get(owner_key, entry_id),
    )
