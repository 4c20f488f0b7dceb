from django import template
from django.core.exceptions import ValidationError

from logbook.conf import get_app_tz
from logbook.daykey import get_zone, parse_instant

register = template.Library()


def _local(value):
    # values without an offset are already local wall-clock time
    if not value:
        return None
    tz = get_app_tz()
    try:
        return parse_instant(value, tz).astimezone(get_zone(tz))
    except (ValidationError, ValueError, TypeError):
        return None


@register.filter
def get_item(dictionary, key):
    """Get an item from a dictionary using bracket notation"""
    try:
        return dictionary.get(key)
    except (AttributeError, KeyError, TypeError):
        return None


@register.filter
def local_time(value):
    """ISO instant -> HH:MM in the app timezone"""
    dt = _local(value)
    return dt.strftime("%H:%M") if dt else ""


@register.filter
def local_datetime(value):
    dt = _local(value)
    return dt.strftime("%Y-%m-%d %H:%M") if dt else ""


@register.filter
def datetime_local_input(value):
    """Value for an <input type="datetime-local">"""
    dt = _local(value)
    return dt.strftime("%Y-%m-%dT%H:%M") if dt else (value or "")


@register.filter
def hours_minutes(minutes):
    try:
        minutes = int(minutes)
    except (ValueError, TypeError):
        return ""
    return f"{minutes // 60}h {minutes % 60}m"
