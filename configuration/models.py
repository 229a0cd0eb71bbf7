from django.conf import settings
from django.db import models

DEFAULT_S3_REGION = "us-east-1"


class ArchiveConfiguration(models.Model):
    """
    A user's connection settings for the archive service and the S3 account
    files are imported from.

    Read these through ``configuration.utils.archive_configuration`` rather
    than querying the model; the cached copy is refreshed whenever a row is
    saved.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="archive_configuration",
    )
    archive_web_ui = models.URLField(
        max_length=2048,
        blank=True,
        default="",
        help_text="Base URL of the archive web interface",
    )
    api_token = models.TextField(
        blank=True, default="", help_text="Archive API token"
    )
    customer_guid = models.CharField(max_length=255, blank=True, default="")

    s3_access_key_id = models.CharField(max_length=255, blank=True, default="")
    s3_secret_access_key = models.CharField(max_length=255, blank=True, default="")
    s3_region = models.CharField(max_length=64, default=DEFAULT_S3_REGION)

    created = models.DateTimeField(auto_now_add=True)
    modified = models.DateTimeField(auto_now=True)

    def __str__(self):
        return "ArchiveConfiguration(user=%s, archive_web_ui=%s)" % (
            self.user_id,
            self.archive_web_ui,
        )
