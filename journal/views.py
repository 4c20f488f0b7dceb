import logging

from django.http import Http404
from django.shortcuts import redirect, render
from django.views.decorators.http import require_http_methods

from logbook.backends import get_store
from logbook.conf import backend_config_hint, get_owner_key
from logbook.queries import journal_entries, journal_entry
from logbook.views import read

from .actions import create_journal, delete_journal, update_journal
from .attachments import format_attach_input

logger = logging.getLogger(__name__)

FIELDS = ["title", "details", "attach"]


def form_values(post):
    return {name: post.get(name, "") for name in FIELDS}


def entry_list(request):
    store = get_store()
    values, form_error = {"title": "", "details": "", "attach": ""}, None

    if request.method == "POST":
        values = form_values(request.POST)
        result = create_journal(store, values)
        if result["ok"]:
            return redirect("journal:detail", entry_id=result["data"]["id"])
        form_error = result["error"]

    entries, error, hint = [], None, None
    if store:
        entries, error = read(lambda: journal_entries(store, get_owner_key()), [])
    else:
        hint = backend_config_hint()

    return render(request, "journal/list.html", {
        "entries": entries,
        "values": values,
        "form_error": form_error,
        "error": error,
        "hint": hint,
    })


def load_entry(store, entry_id):
    if store is None:
        raise Http404("No storage backend configured")
    entry = journal_entry(store, get_owner_key(), entry_id)
    if entry is None:
        raise Http404("Journal entry not found")
    return entry


def entry_detail(request, entry_id):
    entry = load_entry(get_store(), entry_id)
    return render(request, "journal/detail.html", {"entry": entry})


def entry_edit(request, entry_id):
    store = get_store()
    entry = load_entry(store, entry_id)
    form_error = None

    if request.method == "POST":
        values = form_values(request.POST)
        result = update_journal(store, {"id": entry_id, **values})
        if result["ok"]:
            return redirect("journal:detail", entry_id=entry_id)
        form_error = result["error"]
    else:
        values = {
            "title": entry.fields.get("title", ""),
            "details": entry.fields.get("details", ""),
            "attach": format_attach_input(entry.fields.get("attach")),
        }

    return render(request, "journal/form.html", {
        "entry": entry,
        "values": values,
        "form_error": form_error,
    })


@require_http_methods(["POST"])
def entry_delete(request, entry_id):
    result = delete_journal(get_store(), {"id": entry_id})
    if not result["ok"]:
        logger.warning("Journal delete failed: %s", result["error"])
    return redirect("journal:list")
