"""
Write actions behind the pages and the JSON API.

Every action takes the store and one mapping of arguments, and returns the
{ok, data} / {ok, error} envelope. Inside an action the order is always:
validate, upsert the Day, write the child row, invalidate the cache.
"""
import functools
import json
import logging

from django.core.exceptions import ValidationError

from .backends.base import RecordNotFound
from .cache import invalidate_day, invalidate_owner
from .calc import calc_duration_min
from .conf import backend_config_hint, get_app_tz, get_owner_key, now_utc
from .daykey import assert_day_key, to_day_key
from .results import fail, ok, to_error_message
from .validators import (
    MealInputForm,
    MealPatchForm,
    SleepInputForm,
    WeightInputForm,
    WorkoutInputForm,
    WorkoutPatchForm,
    validate,
)

logger = logging.getLogger(__name__)


class StoreNotConfigured(RuntimeError):
    pass


def action(func):
    """Turn whatever ``func`` raises into the failure envelope."""

    @functools.wraps(func)
    def wrapper(store, args=None):
        try:
            if store is None:
                raise StoreNotConfigured(backend_config_hint())
            return ok(func(store, dict(args or {})))
        except (ValidationError, RecordNotFound, StoreNotConfigured) as e:
            logger.info("%s rejected: %s", func.__name__, to_error_message(e))
            return fail(to_error_message(e))
        except Exception as e:
            logger.exception("%s failed", func.__name__)
            return fail(to_error_message(e))

    return wrapper


def _blank(value):
    return None if value in ("", None) else value


def _owner(args):
    return (args.get("owner_key") or "").strip() or get_owner_key()


def _day_key_from(args, field, default=None):
    """Explicit day_key, else the local day of ``args[field]`` (or ``default``)."""
    if args.get("day_key"):
        return args["day_key"]
    value = args.get(field) or default
    if value is None:
        return None
    try:
        return to_day_key(value, get_app_tz())
    except ValidationError as e:
        raise ValidationError({field: e.messages})


def _items_json(value):
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return value


def _require_id(args):
    record_id = (args.get("id") or "").strip()
    if not record_id:
        raise ValidationError({"id": ["This field is required."]})
    return record_id


# weight


@action
def save_weight(store, args):
    owner_key = _owner(args)
    recorded_at = args.get("recorded_at") or now_utc()
    day_key = _day_key_from(args, "recorded_at", recorded_at)

    parsed = validate(WeightInputForm, {
        "owner_key": owner_key,
        "day_key": day_key,
        "recorded_at": recorded_at,
        "weight_kg": args.get("weight_kg"),
        "body_fat_pct": args.get("body_fat_pct"),
        "note": args.get("note"),
    })
    values = {
        "recorded_at": parsed["recorded_at"],
        "weight_kg": parsed["weight_kg"],
        "body_fat_pct": parsed["body_fat_pct"],
        "note": _blank(parsed["note"]),
    }

    day_id = store.days.upsert(owner_key, day_key, day_key)

    existing = store.weights.find(owner_key, day_key)
    if existing:
        record = store.weights.update(existing.id, values)
        mode = "updated"
    else:
        record = store.weights.create(owner_key=owner_key, day_id=day_id, day_key=day_key, **values)
        mode = "created"

    invalidate_day(owner_key, day_key)
    return {"recordId": record.id, "dayKey": day_key, "mode": mode}


@action
def delete_weight(store, args):
    owner_key = _owner(args)
    day_key = assert_day_key(args.get("day_key") or to_day_key(now_utc(), get_app_tz()))

    store.weights.delete_by_day(owner_key, day_key)
    invalidate_day(owner_key, day_key)
    return {"dayKey": day_key}


# sleep


@action
def save_sleep(store, args):
    owner_key = _owner(args)
    start, end = args.get("sleep_start_at"), args.get("sleep_end_at")
    # the wake-up day owns the night
    day_key = _day_key_from(args, "sleep_end_at")

    duration_min = None
    if start and end:
        try:
            duration_min = calc_duration_min(start, end)
        except ValidationError:
            pass

    parsed = validate(SleepInputForm, {
        "owner_key": owner_key,
        "day_key": day_key,
        "sleep_start_at": start,
        "sleep_end_at": end,
        "duration_min": duration_min,
        "quality": args.get("quality"),
        "note": args.get("note"),
    })

    day_id = store.days.upsert(owner_key, day_key, day_key)
    values = {
        "sleep_start_at": parsed["sleep_start_at"],
        "sleep_end_at": parsed["sleep_end_at"],
        "duration_min": parsed["duration_min"],
        "quality": _blank(parsed["quality"]),
        "note": _blank(parsed["note"]),
    }

    existing = store.sleeps.find(owner_key, day_key)
    if existing:
        record = store.sleeps.update(
            existing.id, {**values, "owner_key": owner_key, "day_id": day_id, "day_key": day_key}
        )
        mode = "updated"
    else:
        record = store.sleeps.create(owner_key=owner_key, day_id=day_id, day_key=day_key, **values)
        mode = "created"

    invalidate_day(owner_key, day_key)
    return {"recordId": record.id, "dayKey": day_key, "mode": mode, "durationMin": parsed["duration_min"]}


@action
def delete_sleep(store, args):
    owner_key = _owner(args)
    day_key = assert_day_key(args.get("day_key") or to_day_key(now_utc(), get_app_tz()))

    store.sleeps.delete_by_day(owner_key, day_key)
    invalidate_day(owner_key, day_key)
    return {"dayKey": day_key}


# meals and workouts


MEAL_FIELDS = ("meal_type", "text", "items_json", "calories_kcal", "note", "ai_assisted")
WORKOUT_FIELDS = ("workout_type", "duration_min", "intensity", "detail", "ai_assisted")

# fields that may not be blanked by a patch
MEAL_REQUIRED = ("meal_type", "text", "eaten_at")
WORKOUT_REQUIRED = ("workout_type", "duration_min", "performed_at")


def _add_entry(repo, form_class, time_field, fields, store, args):
    owner_key = _owner(args)
    at = args.get(time_field) or now_utc()
    day_key = _day_key_from(args, time_field, at)

    data = {"owner_key": owner_key, "day_key": day_key, time_field: at}
    data.update({name: args.get(name) for name in fields})
    if "items_json" in data:
        data["items_json"] = _items_json(data["items_json"])
    parsed = validate(form_class, data)

    day_id = store.days.upsert(owner_key, day_key, day_key)
    values = {time_field: parsed[time_field]}
    values.update({name: _blank(parsed[name]) for name in fields})
    record = repo.create(owner_key=owner_key, day_id=day_id, day_key=day_key, **values)

    invalidate_day(owner_key, day_key)
    return {"recordId": record.id, "dayKey": day_key}


def _update_entry(repo, form_class, time_field, fields, required, store, args):
    record_id = _require_id(args)
    sent = {k: args[k] for k in ("owner_key", "day_key", time_field, *fields) if k in args}
    if "items_json" in sent:
        sent["items_json"] = _items_json(sent["items_json"])
    parsed = validate(form_class, sent, partial=True)

    owner_key = (parsed.get("owner_key") or "").strip() or get_owner_key()
    next_day_key = parsed.get("day_key") or None
    if not next_day_key and parsed.get(time_field):
        next_day_key = to_day_key(parsed[time_field], get_app_tz())

    patch = {}
    for name, value in parsed.items():
        if name in ("owner_key", "day_key"):
            continue
        if name in required and value in ("", None):
            continue
        patch[name] = _blank(value)
    if parsed.get("owner_key"):
        patch["owner_key"] = owner_key

    if next_day_key:
        # an unknown id must not leave a fresh empty day behind
        repo.get(record_id)
        patch["day_id"] = store.days.upsert(owner_key, next_day_key, next_day_key)
        patch["day_key"] = next_day_key
        patch["owner_key"] = owner_key

    record = repo.update(record_id, patch)
    day_key = next_day_key or record.fields.get("dayKey")

    if day_key:
        invalidate_day(owner_key, day_key)
    # the entry may have moved away from another day
    invalidate_owner(owner_key)
    return {"recordId": record.id, "dayKey": day_key}


def _delete_entry(repo, args):
    record_id = _require_id(args)
    repo.delete(record_id)
    # the day is unknown here, so drop everything for the owner
    invalidate_owner(_owner(args))
    return {"recordId": record_id}


@action
def add_meal(store, args):
    return _add_entry(store.meals, MealInputForm, "eaten_at", MEAL_FIELDS, store, args)


@action
def update_meal(store, args):
    return _update_entry(store.meals, MealPatchForm, "eaten_at", MEAL_FIELDS, MEAL_REQUIRED, store, args)


@action
def delete_meal(store, args):
    return _delete_entry(store.meals, args)


@action
def add_workout(store, args):
    return _add_entry(store.workouts, WorkoutInputForm, "performed_at", WORKOUT_FIELDS, store, args)


@action
def update_workout(store, args):
    return _update_entry(
        store.workouts, WorkoutPatchForm, "performed_at", WORKOUT_FIELDS, WORKOUT_REQUIRED, store, args
    )


@action
def delete_workout(store, args):
    return _delete_entry(store.workouts, args)
