"""
Storage backend selection.

The backend is chosen once, when the app registry is ready: a relational
connection URL takes precedence over Airtable credentials. With neither, the
store is None and callers show the configuration hint instead.
"""
import logging

from django.apps import apps

from ..conf import is_airtable_configured, is_relational_configured
from .base import Record, RecordNotFound, Store

logger = logging.getLogger(__name__)

__all__ = ["Record", "RecordNotFound", "Store", "build_store", "get_store", "set_store"]


def build_store() -> Store | None:
    if is_relational_configured():
        from .relational import build_relational_store

        logger.info("Using relational storage backend")
        return build_relational_store()

    if is_airtable_configured():
        from .airtable import build_airtable_store

        logger.info("Using Airtable storage backend")
        return build_airtable_store()

    logger.warning("No storage backend configured")
    return None


def get_store() -> Store | None:
    return apps.get_app_config("logbook").store


def set_store(store: Store | None) -> None:
    apps.get_app_config("logbook").store = store
