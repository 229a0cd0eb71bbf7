from datetime import timedelta

from django.contrib.auth.models import User
from django.utils import timezone

from archive_cache.models import ImportJob, IngestionPoint


def create_user(username="tester", **kwargs):
    return User.objects.create_user(username=username, **kwargs)


def create_snapshot(model, *, user, resource_id="res-1", name=None, **kwargs):
    now = timezone.now()
    kwargs.setdefault("raw_data", {"id": resource_id, "name": name or resource_id})
    kwargs.setdefault("last_fetched", now)
    kwargs.setdefault("expires_at", now + timedelta(minutes=30))
    snapshot = model(
        user=user, resource_id=resource_id, name=name or resource_id, **kwargs
    )
    snapshot.save()
    return snapshot


def create_ingestion_point(*, user, **kwargs):
    return create_snapshot(IngestionPoint, user=user, **kwargs)


def create_import_job(*, user, **kwargs):
    return create_snapshot(ImportJob, user=user, **kwargs)
