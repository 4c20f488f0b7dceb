"""Runtime configuration accessors (owner, timezone, backend hints)."""
from decouple import config
from django.conf import settings
from django.utils import timezone

OWNER_KEY_FALLBACK = "default"
APP_TZ_FALLBACK = "Asia/Tokyo"


def get_owner_key() -> str:
    raw = (getattr(settings, "OWNER_KEY", "") or "").strip()
    return raw or OWNER_KEY_FALLBACK


def get_app_tz() -> str:
    raw = (getattr(settings, "APP_TZ", "") or "").strip()
    return raw or APP_TZ_FALLBACK


def now_utc():
    return timezone.now()


def is_relational_configured() -> bool:
    return bool(getattr(settings, "RELATIONAL_DATABASE_URL", ""))


def relational_config_hint() -> str:
    keys = settings.RELATIONAL_URL_KEYS
    available = [k for k in keys if config(k, default="")]
    if available:
        return f"Using {available[0]}"
    return f"Set one of: {', '.join(keys)}"


def is_airtable_configured() -> bool:
    return bool(settings.AIRTABLE_API_KEY and settings.AIRTABLE_BASE_ID)


def airtable_config_hint() -> str:
    missing = []
    if not settings.AIRTABLE_API_KEY:
        missing.append("AIRTABLE_API_KEY")
    if not settings.AIRTABLE_BASE_ID:
        missing.append("AIRTABLE_BASE_ID")
    return f"Missing env: {', '.join(missing)}" if missing else "Airtable env OK"


def backend_config_hint() -> str:
    if is_relational_configured():
        return relational_config_hint()
    if is_airtable_configured():
        return airtable_config_hint()
    return (
        "No storage backend configured. "
        f"{relational_config_hint()}, or set AIRTABLE_API_KEY and AIRTABLE_BASE_ID."
    )


def is_ai_configured() -> bool:
    return bool(getattr(settings, "OPENAI_API_KEY", ""))
