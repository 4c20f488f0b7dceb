"""Parsing and normalising journal attachment lists."""
import json

from django.core.exceptions import ValidationError


def normalize_attachments(raw) -> list[dict]:
    """
    Keep only well-formed ``{"url", "name"?, "mime"?}`` items, trimmed.

    Anything that is not a list, and items without a usable url, are dropped
    silently: stored rows may predate the current validation rules.
    """
    if not isinstance(raw, list):
        return []

    results = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        url = item.get("url")
        if not isinstance(url, str) or not url.strip():
            continue

        cleaned = {"url": url.strip()}
        for key in ("name", "mime"):
            value = item.get(key)
            if isinstance(value, str) and value.strip():
                cleaned[key] = value.strip()
        results.append(cleaned)

    return results


def parse_attach_input(raw) -> list[dict]:
    """
    Read the attachment textarea: a JSON array, a single JSON object, or one
    URL per line.
    """
    text = (raw or "").strip()
    if not text:
        return []

    if text.startswith("[") or text.startswith("{"):
        try:
            parsed = json.loads(text)
        except ValueError as e:
            raise ValidationError({"attach": [f"invalid JSON: {e}"]})
        if isinstance(parsed, dict):
            parsed = [parsed]
    else:
        parsed = [{"url": line.strip()} for line in text.splitlines() if line.strip()]

    if not isinstance(parsed, list):
        raise ValidationError({"attach": ["attach must be a list"]})

    return normalize_attachments(parsed)


def format_attach_input(attach) -> str:
    """Inverse of ``parse_attach_input`` for pre-filling the edit form."""
    items = normalize_attachments(attach)
    if not items:
        return ""
    if all(set(item) == {"url"} for item in items):
        return "\n".join(item["url"] for item in items)
    return json.dumps(items, ensure_ascii=False, indent=2)
