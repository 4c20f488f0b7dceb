from django.apps import AppConfig


class LogbookConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'logbook'

    # backend handle, picked once per process from the configured credentials
    store = None

    def ready(self):
        from .backends import build_store
        self.store = build_store()
