"""The {ok, data} / {ok, error} envelope every action returns."""
import json

from django.core.exceptions import NON_FIELD_ERRORS, ValidationError


def ok(data):
    return {"ok": True, "data": data}


def fail(error: str):
    return {"ok": False, "error": error}


def to_error_message(e) -> str:
    if isinstance(e, ValidationError):
        if hasattr(e, "error_dict"):
            parts = []
            for field, errors in e.error_dict.items():
                label = "input" if field == NON_FIELD_ERRORS else field
                for error in errors:
                    for message in error.messages:
                        parts.append(f"{label}: {message}")
            return "; ".join(parts)
        return "; ".join(e.messages)
    if isinstance(e, Exception):
        return str(e)
    try:
        return json.dumps(e)
    except (TypeError, ValueError):
        return str(e)
