from django.apps import AppConfig


class DatabrowserConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'databrowser'
    verbose_name = 'Data browser'
