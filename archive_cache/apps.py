from django.apps import AppConfig


class ArchiveCacheConfig(AppConfig):
    name = "archive_cache"
    verbose_name = "Archive resource cache"
    default_auto_field = "django.db.models.BigAutoField"
