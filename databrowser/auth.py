from datetime import timedelta
from functools import wraps

from django.conf import settings
from django.shortcuts import redirect
from django.utils.crypto import constant_time_compare

COOKIE_NAME = "admin_token"
HEADER_NAME = "X-Admin-Token"
COOKIE_PATH = "/admin"
COOKIE_MAX_AGE = int(timedelta(days=30).total_seconds())


def get_admin_token() -> str:
    return (getattr(settings, "ADMIN_TOKEN", "") or "").strip()


def is_protection_enabled() -> bool:
    return bool(get_admin_token())


def token_matches(candidate) -> bool:
    expected = get_admin_token()
    if not expected or not candidate:
        return False
    return constant_time_compare(candidate.strip(), expected)


def is_authorized(request) -> bool:
    if not is_protection_enabled():
        return True
    candidate = request.headers.get(HEADER_NAME) or request.COOKIES.get(COOKIE_NAME)
    return token_matches(candidate)


def admin_required(view):
    """Send unauthenticated requests to the login page while a token is configured."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not is_authorized(request):
            return redirect("databrowser:login")
        return view(request, *args, **kwargs)
    return wrapper


def set_token_cookie(response, token):
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=COOKIE_MAX_AGE,
        path=COOKIE_PATH,
        httponly=True,
        samesite="Lax",
        secure=not settings.DEBUG,
    )
    return response


def clear_token_cookie(response):
    response.delete_cookie(COOKIE_NAME, path=COOKIE_PATH, samesite="Lax")
    return response
