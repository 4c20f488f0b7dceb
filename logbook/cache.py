"""
Tag-based invalidation on top of django.core.cache.

Django's cache has no notion of tags, so each tag owns a version token kept
in the cache itself. A cached read's key is a hash of its own parts plus the
current token of every tag it was registered under; invalidating a tag swaps
its token, which orphans every key built from the old one.
"""
import hashlib
import json
import logging
import uuid

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

TAG_PREFIX = "hl"
_MISSING = object()


def owner_tag(owner_key: str) -> str:
    return f"{TAG_PREFIX}:owner:{owner_key}"


def month_tag(owner_key: str, month: str) -> str:
    return f"{TAG_PREFIX}:month:{owner_key}:{month}"


def day_tag(owner_key: str, day_key: str) -> str:
    return f"{TAG_PREFIX}:day:{owner_key}:{day_key}"


def journal_list_tag(owner_key: str) -> str:
    return f"{TAG_PREFIX}:journal:{owner_key}"


def journal_entry_tag(owner_key: str, entry_id: str) -> str:
    return f"{TAG_PREFIX}:journal:{owner_key}:{entry_id}"


def tags_for_month(owner_key: str, month: str) -> list[str]:
    return [owner_tag(owner_key), month_tag(owner_key, month)]


def tags_for_day(owner_key: str, day_key: str) -> list[str]:
    return [owner_tag(owner_key), month_tag(owner_key, day_key[:7]), day_tag(owner_key, day_key)]


def tags_for_journal_entry(owner_key: str, entry_id: str) -> list[str]:
    return [owner_tag(owner_key), journal_list_tag(owner_key), journal_entry_tag(owner_key, entry_id)]


def _version_key(tag: str) -> str:
    return f"tagv:{tag}"


def _tag_versions(tags) -> list[str]:
    keys = [_version_key(t) for t in tags]
    found = cache.get_many(keys)
    versions = []
    for key in keys:
        version = found.get(key)
        if version is None:
            cache.add(key, uuid.uuid4().hex, None)
            version = cache.get(key)
        versions.append(version)
    return versions


def _read_key(name: str, parts, tags) -> str:
    payload = json.dumps([parts, _tag_versions(tags)], sort_keys=True, default=str)
    digest = hashlib.md5(payload.encode()).hexdigest()
    return f"{TAG_PREFIX}:read:{name}:{digest}"


def cached_read(name: str, parts, tags, loader, timeout=None):
    """
    Return ``loader()``, memoised under ``name``/``parts`` until any of
    ``tags`` is invalidated or ``timeout`` (default CACHE_TIMEOUT) passes.
    Exceptions from the loader are never cached.
    """
    key = _read_key(name, parts, tags)
    value = cache.get(key, _MISSING)
    if value is not _MISSING:
        return value

    value = loader()
    cache.set(key, value, settings.CACHE_TIMEOUT if timeout is None else timeout)
    return value


def invalidate_tag(tag: str) -> None:
    try:
        cache.set(_version_key(tag), uuid.uuid4().hex, None)
    except Exception:
        logger.exception("Cache invalidation failed for %s", tag)


def invalidate_owner(owner_key: str) -> None:
    invalidate_tag(owner_tag(owner_key))


def invalidate_month(owner_key: str, month: str) -> None:
    invalidate_tag(month_tag(owner_key, month))
    invalidate_tag(owner_tag(owner_key))


def invalidate_day(owner_key: str, day_key: str) -> None:
    invalidate_tag(day_tag(owner_key, day_key))
    invalidate_tag(month_tag(owner_key, day_key[:7]))
    invalidate_tag(owner_tag(owner_key))


def invalidate_journal_list(owner_key: str) -> None:
    invalidate_tag(journal_list_tag(owner_key))
    invalidate_tag(owner_tag(owner_key))


def invalidate_journal_entry(owner_key: str, entry_id: str) -> None:
    invalidate_tag(journal_entry_tag(owner_key, entry_id))
    invalidate_journal_list(owner_key)
