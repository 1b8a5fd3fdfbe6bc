from django.apps import AppConfig


class BountiesConfig(AppConfig):
    name = "bounties"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        import bounties.signals  # noqa
