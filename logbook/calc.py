from django.core.exceptions import ValidationError

from .daykey import parse_instant

MAX_DURATION_MIN = 7 * 24 * 60


def clamp_int(n, lo: int, hi: int) -> int:
    return max(lo, min(hi, int(n)))


def calc_duration_min(start, end) -> int:
    """Whole minutes between start and end (truncated), kept within one week."""
    try:
        start_dt = parse_instant(start, "UTC")
        end_dt = parse_instant(end, "UTC")
    except ValidationError:
        raise ValidationError("Invalid datetime", code="invalid_datetime")

    minutes = int((end_dt - start_dt).total_seconds() // 60)
    return clamp_int(minutes, 0, MAX_DURATION_MIN)
