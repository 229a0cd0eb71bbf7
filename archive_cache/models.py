from typing import Any

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from archive_cache.extraction import project_import_job, project_ingestion_point


class CachedResourceQuerySet(models.QuerySet):
    def for_user(self, user_id):
        return self.filter(user_id=user_id)

    def active(self):
        return self.filter(is_active=True)

    def fresh(self, now=None):
        return self.filter(expires_at__gt=now or timezone.now())

    def expired(self, now=None):
        return self.filter(expires_at__lte=now or timezone.now())


class CachedResource(models.Model):
    """
    One user's copy of a single resource fetched from the archive service.

    ``raw_data`` keeps the payload exactly as the archive returned it; the
    other columns are projections used for ordering and display.
    """

    RESOURCE_KIND: str = ""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="%(class)s_snapshots",
    )
    resource_id = models.CharField(
        max_length=255, help_text="Identifier assigned by the archive service"
    )
    name = models.CharField(max_length=255)
    status = models.CharField(max_length=255, null=True, blank=True)
    description = models.TextField(blank=True, default="")
    raw_data = models.JSONField(
        help_text="The payload as returned by the archive service",
        encoder=DjangoJSONEncoder,
    )
    last_fetched = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)

    objects = CachedResourceQuerySet.as_manager()

    class Meta:
        abstract = True
        constraints = [
            models.UniqueConstraint(
                fields=["user", "resource_id"],
                condition=models.Q(is_active=True),
                name="%(app_label)s_%(class)s_one_active_per_resource",
            )
        ]

    def __str__(self):
        return "%s(user=%s, resource_id=%s, active=%s)" % (
            self.__class__.__name__,
            self.user_id,
            self.resource_id,
            self.is_active,
        )

    @classmethod
    def project_payload(cls, payload) -> dict[str, Any]:
        raise NotImplementedError

    def is_expired(self, now=None) -> bool:
        return self.expires_at <= (now or timezone.now())

    def as_cached_payload(self) -> dict[str, Any]:
        """
        The original payload annotated with when it was cached and when the
        cached copy stops being served.
        """
        return {
            **self.raw_data,
            "_cached": True,
            "_cachedAt": self.last_fetched,
            "_expiresAt": self.expires_at,
        }


class IngestionPoint(CachedResource):
    RESOURCE_KIND = "ingestion_point"

    resource_type = models.CharField(max_length=255, default="unknown")
    type_details = models.JSONField(
        encoder=DjangoJSONEncoder, null=True, blank=True
    )

    class Meta(CachedResource.Meta):
        ordering = ["name", "id"]

    @classmethod
    def project_payload(cls, payload):
        return project_ingestion_point(payload)


class ImportJob(CachedResource):
    RESOURCE_KIND = "import_job"

    ingestion_point_id = models.CharField(max_length=255, null=True, blank=True)
    progress = models.IntegerField(null=True, blank=True)
    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)

    class Meta(CachedResource.Meta):
        ordering = ["-last_fetched", "id"]

    @classmethod
    def project_payload(cls, payload):
        return project_import_job(payload)
