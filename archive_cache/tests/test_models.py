from datetime import timedelta

from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone

from archive_cache.models import ImportJob, IngestionPoint

from .utils import create_import_job, create_ingestion_point, create_user


class CachedResourceModelTests(TestCase):
    def setUp(self):
        self.user = create_user()

    def test_one_active_row_per_resource(self):
        create_ingestion_point(user=self.user, resource_id="ip-1")
        with self.assertRaises(IntegrityError), transaction.atomic():
            create_ingestion_point(user=self.user, resource_id="ip-1")

    def test_inactive_rows_do_not_conflict(self):
        create_ingestion_point(user=self.user, resource_id="ip-1", is_active=False)
        create_ingestion_point(user=self.user, resource_id="ip-1", is_active=False)
        create_ingestion_point(user=self.user, resource_id="ip-1")
        self.assertEqual(
            IngestionPoint.objects.filter(resource_id="ip-1").count(), 3
        )

    def test_same_resource_for_different_users(self):
        other = create_user(username="other")
        create_import_job(user=self.user, resource_id="job-1")
        create_import_job(user=other, resource_id="job-1")
        self.assertEqual(ImportJob.objects.active().count(), 2)

    def test_is_expired(self):
        snapshot = create_ingestion_point(user=self.user)
        self.assertFalse(snapshot.is_expired())
        self.assertTrue(snapshot.is_expired(now=snapshot.expires_at))
        self.assertTrue(
            snapshot.is_expired(now=snapshot.expires_at + timedelta(seconds=1))
        )

    def test_as_cached_payload(self):
        snapshot = create_import_job(
            user=self.user, raw_data={"id": "job-1", "name": "Nightly", "extra": [1]}
        )
        payload = snapshot.as_cached_payload()
        self.assertEqual(payload["extra"], [1])
        self.assertIs(payload["_cached"], True)
        self.assertEqual(payload["_cachedAt"], snapshot.last_fetched)
        self.assertEqual(payload["_expiresAt"], snapshot.expires_at)
        self.assertNotIn("_cached", snapshot.raw_data)

    def test_queryset_freshness(self):
        now = timezone.now()
        fresh = create_import_job(user=self.user, resource_id="fresh")
        create_import_job(
            user=self.user, resource_id="stale", expires_at=now - timedelta(minutes=1)
        )
        self.assertEqual(list(ImportJob.objects.fresh(now=now)), [fresh])
        self.assertEqual(ImportJob.objects.expired(now=now).get().resource_id, "stale")

    def test_ordering(self):
        create_ingestion_point(user=self.user, resource_id="2", name="Zebra")
        create_ingestion_point(user=self.user, resource_id="1", name="Alpha")
        self.assertEqual(
            list(IngestionPoint.objects.values_list("name", flat=True)),
            ["Alpha", "Zebra"],
        )

        now = timezone.now()
        create_import_job(
            user=self.user, resource_id="old", last_fetched=now - timedelta(minutes=5)
        )
        create_import_job(user=self.user, resource_id="new", last_fetched=now)
        self.assertEqual(
            list(ImportJob.objects.values_list("resource_id", flat=True)),
            ["new", "old"],
        )

    def test_str(self):
        snapshot = create_import_job(user=self.user, resource_id="job-9")
        self.assertEqual(
            str(snapshot),
            "ImportJob(user=%s, resource_id=job-9, active=True)" % self.user.pk,
        )
