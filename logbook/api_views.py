"""JSON surface over the same actions, returning the {ok, data|error} envelope."""
import re

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from . import actions, ai
from .backends import get_store
from .conf import backend_config_hint, get_owner_key
from .daykey import is_day_key, is_month
from .queries import day_summary, month_days
from .results import fail, ok, to_error_message

CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def snake(name: str) -> str:
    return CAMEL_RE.sub("_", name).lower()


def request_args(request):
    """Request body as a plain dict with snake_case keys (camelCase accepted)."""
    data = request.data
    if hasattr(data, "dict"):
        data = data.dict()
    return {snake(k): v for k, v in (data or {}).items()}


def respond(result):
    return Response(result, status=status.HTTP_200_OK if result["ok"] else status.HTTP_400_BAD_REQUEST)


def action_view(func):
    def view(request):
        return respond(func(get_store(), request_args(request)))

    view.__name__ = func.__name__
    return api_view(["POST"])(view)


save_weight = action_view(actions.save_weight)
delete_weight = action_view(actions.delete_weight)
save_sleep = action_view(actions.save_sleep)
delete_sleep = action_view(actions.delete_sleep)
add_meal = action_view(actions.add_meal)
update_meal = action_view(actions.update_meal)
delete_meal = action_view(actions.delete_meal)
add_workout = action_view(actions.add_workout)
update_workout = action_view(actions.update_workout)
delete_workout = action_view(actions.delete_workout)


@api_view(["GET"])
def days(request):
    store = get_store()
    month = request.query_params.get("month", "")
    if store is None:
        return respond(fail(backend_config_hint()))
    if not is_month(month):
        return respond(fail("month: must be YYYY-MM"))
    try:
        records = month_days(store, get_owner_key(), month)
    except Exception as e:
        return respond(fail(to_error_message(e)))
    return respond(ok([r.as_dict() for r in records]))


@api_view(["GET"])
def day(request):
    store = get_store()
    day_key = request.query_params.get("day", "")
    if store is None:
        return respond(fail(backend_config_hint()))
    if not is_day_key(day_key):
        return respond(fail("day: must be YYYY-MM-DD"))
    try:
        summary = day_summary(store, get_owner_key(), day_key)
    except Exception as e:
        return respond(fail(to_error_message(e)))

    def dump(value):
        if isinstance(value, list):
            return [v.as_dict() for v in value]
        return value.as_dict() if hasattr(value, "as_dict") else value

    return respond(ok({k: dump(v) for k, v in summary.items()}))


@api_view(["POST"])
def assist_meal(request):
    return respond(ai.assist_meal(request_args(request)))


@api_view(["POST"])
def assist_workout(request):
    return respond(ai.assist_workout(request_args(request)))
