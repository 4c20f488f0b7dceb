import logging
from urllib.parse import urlencode

from django.core.exceptions import ValidationError
from django.http import Http404
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.http import require_http_methods

from logbook.calc import clamp_int
from logbook.conf import backend_config_hint
from logbook.daykey import assert_day_key

from .auth import (
    admin_required,
    clear_token_cookie,
    is_protection_enabled,
    set_token_cookie,
    token_matches,
)
from .sources import UnknownTable, get_source

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
FILTER_KEYS = ("owner_key", "day_key", "from", "to")


def parse_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def read_filters(params):
    filters = {}
    for key in FILTER_KEYS:
        value = (params.get(key) or "").strip()
        if not value:
            continue
        if key != "owner_key":
            try:
                assert_day_key(value)
            except ValidationError:
                continue
        filters[key] = value
    return filters


def page_url(table, offset, limit, filters):
    query = urlencode({**filters, "limit": limit, "offset": offset})
    return f"{reverse('databrowser:table', args=[table])}?{query}"


@admin_required
def index(request):
    source = get_source()
    tables, error = [], None
    if source:
        try:
            tables = source.tables()
        except Exception as e:
            logger.exception("Listing tables failed")
            error = str(e)

    return render(request, "databrowser/index.html", {
        "source": source,
        "tables": tables,
        "hint": None if source else backend_config_hint(),
        "error": error,
        "protected": is_protection_enabled(),
    })


@admin_required
def table(request, table):
    source = get_source()
    if source is None:
        raise Http404("No storage backend configured")

    limit = clamp_int(parse_int(request.GET.get("limit"), DEFAULT_LIMIT), 1, MAX_LIMIT)
    offset = max(parse_int(request.GET.get("offset"), 0), 0)
    filters = read_filters(request.GET)

    page, error = None, None
    try:
        page = source.fetch_rows(table, limit, offset, filters)
    except UnknownTable:
        raise Http404(f"Unknown table: {table}")
    except Exception as e:
        logger.exception("Fetching rows from %s failed", table)
        error = str(e)

    prev_url = next_url = None
    if page is not None:
        prev_url = page_url(table, max(offset - limit, 0), limit, filters) if offset > 0 else None
        next_url = page_url(table, offset + limit, limit, filters) if offset + limit < page.total else None

    return render(request, "databrowser/table.html", {
        "table": table,
        "page": page,
        "column_names": [c["name"] for c in page.columns] if page else [],
        "error": error,
        "filters": filters,
        "limit": limit,
        "offset": offset,
        "prev_url": prev_url,
        "next_url": next_url,
        "protected": is_protection_enabled(),
    })


@admin_required
def row(request, table, row_id):
    source = get_source()
    if source is None:
        raise Http404("No storage backend configured")

    values, columns, error = None, [], None
    try:
        values, columns = source.fetch_row(table, row_id)
    except UnknownTable:
        raise Http404(f"Unknown table: {table}")
    except Exception as e:
        logger.exception("Fetching %s/%s failed", table, row_id)
        error = str(e)
    if values is None and error is None:
        raise Http404(f"Row not found: {row_id}")

    return render(request, "databrowser/row.html", {
        "table": table,
        "row_id": row_id,
        "values": values,
        "columns": columns,
        "error": error,
        "protected": is_protection_enabled(),
    })


@require_http_methods(["GET", "POST"])
def login(request):
    if not is_protection_enabled():
        return redirect("databrowser:index")

    if request.method == "POST":
        token = (request.POST.get("token") or "").strip()
        if not token_matches(token):
            logger.info("Rejected admin login")
            return redirect(f"{reverse('databrowser:login')}?error=invalid")
        return set_token_cookie(redirect("databrowser:index"), token)

    return render(request, "databrowser/login.html", {
        "invalid": request.GET.get("error") == "invalid",
    })


@require_http_methods(["POST"])
def logout(request):
    return clear_token_cookie(redirect("databrowser:login"))
