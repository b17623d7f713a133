"""Django app configuration for the daemons app."""

from django.apps import AppConfig


class DaemonsConfig(AppConfig):
    """Configuration for the Pipeline Daemons app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.daemons"
    verbose_name = "Pipeline Daemons"
