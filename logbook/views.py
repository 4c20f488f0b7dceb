import calendar
import logging
from datetime import date

from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.http import require_http_methods

from .actions import (
    add_meal,
    add_workout,
    delete_meal,
    delete_sleep,
    delete_weight,
    delete_workout,
    save_sleep,
    save_weight,
    update_meal,
    update_workout,
)
from .ai import assist_meal, assist_workout, merge_assist
from .backends import get_store
from .backends.base import camel
from .conf import backend_config_hint, get_app_tz, get_owner_key, is_ai_configured, now_utc
from .daykey import add_days, get_zone, is_day_key, is_month, shift_month, to_day_key
from .queries import (
    day_summary as load_day_summary,
    meals_for_day,
    month_days,
    recent_workouts,
    sleep_for_day,
    sleep_trend,
    weight_for_day,
    weight_trend,
    workouts_for_day,
)
from .validators import INTENSITIES, MEAL_TYPES, SLEEP_QUALITIES, WORKOUT_TYPES

logger = logging.getLogger(__name__)

WEIGHT_INPUTS = ["recorded_at", "weight_kg", "body_fat_pct", "note"]
SLEEP_INPUTS = ["sleep_start_at", "sleep_end_at", "quality", "note"]
MEAL_INPUTS = ["eaten_at", "meal_type", "text", "items_json", "calories_kcal", "note", "ai_assisted"]
WORKOUT_INPUTS = ["performed_at", "workout_type", "duration_min", "intensity", "detail", "ai_assisted"]


def today_key():
    return to_day_key(now_utc(), get_app_tz())


def pick_day(request):
    day = request.GET.get("day") or request.POST.get("day") or ""
    return day if is_day_key(day) else today_key()


def read(loader, default):
    """Run a read, returning (value, error message) so the page can render either way."""
    try:
        return loader(), None
    except Exception as e:
        logger.exception("Read failed")
        return default, str(e)


def form_values(post, names):
    values = {name: post.get(name, "").strip() for name in names}
    if "ai_assisted" in values:
        values["ai_assisted"] = values["ai_assisted"] in ("on", "true", "1", "True")
    return values


def action_args(values):
    """Blank inputs are left out so the action falls back to its defaults."""
    return {k: v for k, v in values.items() if v not in ("", None)}


def day_url(name, day_key):
    return f"{reverse(name)}?day={day_key}"


def default_time(day_key, hhmm=None):
    """datetime-local value on ``day_key``; the current local time unless given."""
    if hhmm is None:
        hhmm = now_utc().astimezone(get_zone(get_app_tz())).strftime("%H:%M")
    return f"{day_key}T{hhmm}"


def page_context(day_key, **extra):
    context = {
        "day_key": day_key,
        "prev_day": add_days(day_key, -1),
        "next_day": add_days(day_key, 1),
        "month": day_key[:7],
        "hint": None,
        "error": None,
    }
    context.update(extra)
    return context


def calendar_weeks(month, days):
    """Sunday-first weeks of the month, padded with None, each day with its counts."""
    by_key = {d.fields.get("dayKey"): d.fields for d in days}
    year, mon = int(month[:4]), int(month[5:7])
    today = today_key()

    weeks = []
    for week in calendar.Calendar(firstweekday=6).monthdayscalendar(year, mon):
        row = []
        for day in week:
            if not day:
                row.append(None)
                continue
            key = date(year, mon, day).isoformat()
            fields = by_key.get(key, {})
            row.append({
                "day": day,
                "day_key": key,
                "is_today": key == today,
                "weight": fields.get("weightCount", 0),
                "sleep": fields.get("sleepCount", 0),
                "meal": fields.get("mealCount", 0),
                "workout": fields.get("workoutCount", 0),
            })
        weeks.append(row)
    return weeks


def home(request):
    month = request.GET.get("month", "")
    if not is_month(month):
        month = today_key()[:7]

    store = get_store()
    days, error = [], None
    if store:
        days, error = read(lambda: month_days(store, get_owner_key(), month), [])

    return render(request, "logbook/home.html", {
        "month": month,
        "prev_month": shift_month(month, -1),
        "next_month": shift_month(month, 1),
        "weeks": calendar_weeks(month, days),
        "weekdays": ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"],
        "hint": None if store else backend_config_hint(),
        "error": error,
    })


def day_summary(request):
    day_key = pick_day(request)
    store = get_store()
    context = page_context(day_key)

    empty = {"weight": None, "sleep": None, "meals": [], "workouts": [], "totalCalories": 0}
    if store:
        summary, context["error"] = read(lambda: load_day_summary(store, get_owner_key(), day_key), empty)
    else:
        summary, context["hint"] = empty, backend_config_hint()

    context["summary"] = summary
    return render(request, "logbook/day.html", context)


# weight


def weight(request):
    day_key = pick_day(request)
    store = get_store()
    values, error = {}, None

    if request.method == "POST":
        values = form_values(request.POST, WEIGHT_INPUTS)
        result = save_weight(store, action_args(values))
        if result["ok"]:
            return redirect(day_url("logbook:weight", result["data"]["dayKey"]))
        error = result["error"]

    context = page_context(day_key, values=values, form_error=error)
    existing, trend = None, {"labels": [], "data": []}
    if store:
        owner_key = get_owner_key()
        existing, context["error"] = read(lambda: weight_for_day(store, owner_key, day_key), None)
        trend, trend_error = read(lambda: weight_trend(store, owner_key, day_key), trend)
        context["error"] = context["error"] or trend_error
    else:
        context["hint"] = backend_config_hint()

    if not values:
        fields = existing.fields if existing else {}
        context["values"] = {
            "recorded_at": fields.get("recordedAt") or default_time(day_key),
            "weight_kg": fields.get("weightKg", ""),
            "body_fat_pct": fields.get("bodyFatPct", ""),
            "note": fields.get("note", ""),
        }
    context.update(existing=existing, trend=trend, trend_rows=list(zip(trend["labels"], trend["data"])))
    return render(request, "logbook/weight.html", context)


@require_http_methods(["POST"])
def weight_delete(request):
    day_key = pick_day(request)
    result = delete_weight(get_store(), {"day_key": day_key})
    if not result["ok"]:
        logger.warning("Weight delete failed: %s", result["error"])
    return redirect(day_url("logbook:weight", day_key))


# sleep


def sleep(request):
    day_key = pick_day(request)
    store = get_store()
    values, error = {}, None

    if request.method == "POST":
        values = form_values(request.POST, SLEEP_INPUTS)
        result = save_sleep(store, action_args(values))
        if result["ok"]:
            return redirect(day_url("logbook:sleep", result["data"]["dayKey"]))
        error = result["error"]

    context = page_context(day_key, values=values, form_error=error, qualities=SLEEP_QUALITIES)
    existing, trend = None, {"labels": [], "data": []}
    if store:
        owner_key = get_owner_key()
        existing, context["error"] = read(lambda: sleep_for_day(store, owner_key, day_key), None)
        trend, trend_error = read(lambda: sleep_trend(store, owner_key, day_key), trend)
        context["error"] = context["error"] or trend_error
    else:
        context["hint"] = backend_config_hint()

    if not values:
        fields = existing.fields if existing else {}
        context["values"] = {
            "sleep_start_at": fields.get("sleepStartAt") or default_time(add_days(day_key, -1), "23:00"),
            "sleep_end_at": fields.get("sleepEndAt") or default_time(day_key, "07:00"),
            "quality": fields.get("quality", ""),
            "note": fields.get("note", ""),
        }
    context.update(existing=existing, trend=trend, trend_rows=list(zip(trend["labels"], trend["data"])))
    return render(request, "logbook/sleep.html", context)


@require_http_methods(["POST"])
def sleep_delete(request):
    day_key = pick_day(request)
    result = delete_sleep(get_store(), {"day_key": day_key})
    if not result["ok"]:
        logger.warning("Sleep delete failed: %s", result["error"])
    return redirect(day_url("logbook:sleep", day_key))


# meals and workouts share one page shape: a day's list, an add form with AI
# assist, and inline edit forms per entry


ENTRY_PAGES = {
    "meal": {
        "template": "logbook/eat.html",
        "url": "logbook:eat",
        "inputs": MEAL_INPUTS,
        "time_field": "eaten_at",
        "add": add_meal,
        "update": update_meal,
        "delete": delete_meal,
        "assist": assist_meal,
        "list": meals_for_day,
        "defaults": {"meal_type": "", "text": "", "items_json": "", "calories_kcal": "", "note": ""},
        "choices": {"meal_types": MEAL_TYPES},
    },
    "workout": {
        "template": "logbook/workout.html",
        "url": "logbook:workout",
        "inputs": WORKOUT_INPUTS,
        "time_field": "performed_at",
        "add": add_workout,
        "update": update_workout,
        "delete": delete_workout,
        "assist": assist_workout,
        "list": workouts_for_day,
        "defaults": {"workout_type": "", "duration_min": "", "intensity": "", "detail": ""},
        "choices": {"workout_types": WORKOUT_TYPES, "intensities": INTENSITIES},
    },
}


def render_entries(request, kind, day_key, values=None, **extra):
    page = ENTRY_PAGES[kind]
    store = get_store()
    context = page_context(day_key, kind=kind, ai_enabled=is_ai_configured(), **page["choices"])
    context.update(extra)

    entries = []
    if store:
        entries, context["error"] = read(lambda: page["list"](store, get_owner_key(), day_key), [])
    else:
        context["hint"] = backend_config_hint()

    edit_id = context.get("edit_id")
    rows = []
    for entry in entries:
        editing = entry.id == edit_id
        if editing and context.get("edit_values"):
            entry_values = context["edit_values"]
        else:
            entry_values = {name: entry.fields.get(camel(name), "") for name in page["inputs"]}
        rows.append({"entry": entry, "values": entry_values, "error": context.get("edit_error") if editing else None})

    if values is None:
        values = dict(page["defaults"], **{page["time_field"]: default_time(day_key)})
    context.update(values=values, entries=entries, rows=rows)
    return render(request, page["template"], context)


def entry_page(request, kind):
    page = ENTRY_PAGES[kind]
    day_key = pick_day(request)
    if request.method != "POST":
        return render_entries(request, kind, day_key)

    values = form_values(request.POST, page["inputs"])

    if "assist" in request.POST:
        result = page["assist"]({"text": request.POST.get("assist_text") or values.get("text") or values.get("detail")})
        if not result["ok"]:
            return render_entries(request, kind, day_key, values, form_error=result["error"])
        merged = merge_assist(kind, values, result["data"])
        return render_entries(request, kind, day_key, merged, suggestion=result["data"])

    result = page["add"](get_store(), action_args(values))
    if result["ok"]:
        return redirect(day_url(page["url"], result["data"]["dayKey"]))
    return render_entries(request, kind, day_key, values, form_error=result["error"])


@require_http_methods(["POST"])
def entry_edit(request, kind, record_id):
    page = ENTRY_PAGES[kind]
    day_key = pick_day(request)
    # ai_assisted is not editable after the fact
    values = form_values(request.POST, [n for n in page["inputs"] if n != "ai_assisted"])

    result = page["update"](get_store(), {"id": record_id, **values})
    if result["ok"]:
        return redirect(day_url(page["url"], result["data"]["dayKey"] or day_key))
    return render_entries(request, kind, day_key, edit_id=record_id, edit_values=values,
                          edit_error=result["error"])


@require_http_methods(["POST"])
def entry_delete(request, kind, record_id):
    page = ENTRY_PAGES[kind]
    day_key = pick_day(request)
    result = page["delete"](get_store(), {"id": record_id})
    if not result["ok"]:
        return render_entries(request, kind, day_key, edit_id=record_id, edit_error=result["error"])
    return redirect(day_url(page["url"], day_key))


def eat(request):
    return entry_page(request, "meal")


def workout(request):
    return entry_page(request, "workout")


def workout_list(request):
    store = get_store()
    workouts, error, hint = [], None, None
    if store:
        workouts, error = read(lambda: recent_workouts(store, get_owner_key(), limit=100), [])
    else:
        hint = backend_config_hint()

    return render(request, "logbook/workout_list.html", {
        "workouts": workouts,
        "error": error,
        "hint": hint,
    })
