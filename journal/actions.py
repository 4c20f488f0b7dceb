from django.core.exceptions import ValidationError

from logbook.actions import action
from logbook.cache import invalidate_journal_entry, invalidate_journal_list
from logbook.conf import get_owner_key
from logbook.validators import JournalInputForm, validate

from .attachments import normalize_attachments, parse_attach_input


def clean_input(args):
    attach = args.get("attach")
    if isinstance(attach, list):
        attach = normalize_attachments(attach)
    else:
        attach = parse_attach_input(attach)

    return validate(JournalInputForm, {
        "owner_key": get_owner_key(),
        "title": args.get("title"),
        "details": args.get("details"),
        "attach": attach,
    })


def require_id(args):
    entry_id = (args.get("id") or "").strip()
    if not entry_id:
        raise ValidationError({"id": ["This field is required."]})
    return entry_id


@action
def create_journal(store, args):
    data = clean_input(args)
    entry = store.journal.create(data["owner_key"], data["title"], data["details"], data["attach"])
    invalidate_journal_entry(data["owner_key"], entry.id)
    return {"id": entry.id}


@action
def update_journal(store, args):
    entry_id = require_id(args)
    data = clean_input(args)
    entry = store.journal.update(data["owner_key"], entry_id, data["title"], data["details"], data["attach"])
    invalidate_journal_entry(data["owner_key"], entry.id)
    return {"id": entry.id}


@action
def delete_journal(store, args):
    entry_id = require_id(args)
    owner_key = get_owner_key()
    store.journal.delete(owner_key, entry_id)
    invalidate_journal_entry(owner_key, entry_id)
    return {"id": entry_id}
