from django.apps import AppConfig


class AssetsConfig(AppConfig):
    name = 'assets'
    verbose_name = 'Assets'

    def ready(self):
        # QR label generation
        from . import signals  # noqa: F401
