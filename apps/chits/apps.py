from django.apps import AppConfig


class ChitsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.chits"
