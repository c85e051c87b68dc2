from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'FoodExpress'

    def ready(self):
        # Connect the line-item and review mutation hooks
        from . import signals  # noqa: F401
