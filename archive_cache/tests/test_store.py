import json
from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from archive_cache.models import ImportJob, IngestionPoint
from archive_cache.store import PutResult, SnapshotStore

from .utils import create_import_job, create_user


class SnapshotStoreTests(TestCase):
    def setUp(self):
        self.user = create_user()
        self.store = SnapshotStore(ImportJob)

    def active_ids(self, user=None):
        return sorted(
            ImportJob.objects.for_user((user or self.user).pk)
            .active()
            .values_list("resource_id", flat=True)
        )

    def test_put_stores_items(self):
        result = self.store.put(
            self.user.pk,
            [{"id": "a", "name": "A"}, {"_id": "b", "title": "B"}],
            timeout=900,
        )
        self.assertEqual(result, PutResult(succeeded=2, failed=0))
        self.assertEqual(self.active_ids(), ["a", "b"])

        snapshot = ImportJob.objects.get(resource_id="b")
        self.assertEqual(snapshot.name, "B")
        self.assertEqual(snapshot.raw_data, {"_id": "b", "title": "B"})
        self.assertEqual(
            snapshot.expires_at - snapshot.last_fetched, timedelta(seconds=900)
        )

    def test_put_supersedes_previous_snapshots(self):
        self.store.put(self.user.pk, [{"id": "a"}, {"id": "b"}], timeout=900)
        self.store.put(self.user.pk, [{"id": "b"}, {"id": "c"}], timeout=900)

        self.assertEqual(self.active_ids(), ["b", "c"])
        # Superseded rows are kept, only deactivated
        self.assertEqual(ImportJob.objects.filter(resource_id="b").count(), 2)
        self.assertEqual(ImportJob.objects.count(), 4)

    def test_at_most_one_active_row_per_resource(self):
        for batch in (
            [{"id": "a"}, {"id": "b"}],
            [{"id": "a"}],
            [{"id": "b"}, {"id": "a"}, {"id": "a"}],
        ):
            self.store.put(self.user.pk, batch, timeout=900)
            for resource_id in ("a", "b"):
                self.assertLessEqual(
                    ImportJob.objects.active()
                    .filter(user=self.user, resource_id=resource_id)
                    .count(),
                    1,
                )

    def test_put_tolerates_malformed_items(self):
        items = [
            {"id": "a"},
            {"id": "b", "tags": {"not", "serializable"}},
            {"id": "c"},
        ]
        result = self.store.put(self.user.pk, items, timeout=900)
        self.assertEqual(result, PutResult(succeeded=2, failed=1))
        self.assertEqual(self.active_ids(), ["a", "c"])

    def test_put_tolerates_out_of_range_progress(self):
        items = json.loads(
            '[{"id": "a"}, {"id": "b", "progress": 1e999},'
            ' {"id": "c", "progress": 100000000000000000000}, {"id": "d"}]'
        )
        result = self.store.put(self.user.pk, items, timeout=900)
        self.assertEqual(result, PutResult(succeeded=4, failed=0))
        self.assertEqual(self.active_ids(), ["a", "b", "c", "d"])
        self.assertIsNone(ImportJob.objects.get(resource_id="b").progress)
        self.assertIsNone(ImportJob.objects.get(resource_id="c").progress)

    def test_put_counts_unexpected_errors_as_failures(self):
        real_write = self.store._write

        def write(user_id, item, **kwargs):
            if item["id"] == "b":
                raise OverflowError
            return real_write(user_id, item, **kwargs)

        with mock.patch.object(self.store, "_write", side_effect=write):
            result = self.store.put(
                self.user.pk, [{"id": "a"}, {"id": "b"}, {"id": "c"}], timeout=900
            )

        self.assertEqual(result, PutResult(succeeded=2, failed=1))
        self.assertEqual(self.active_ids(), ["a", "c"])

    @mock.patch("archive_cache.store.structured_logger")
    def test_failed_item_without_message_is_logged(self, logger_mock):
        with mock.patch.object(self.store, "_write", side_effect=RuntimeError()):
            result = self.store.put(self.user.pk, [{"id": "a"}], timeout=900)

        self.assertEqual(result, PutResult(succeeded=0, failed=1))
        logger_mock.warning.assert_called_once()
        kwargs = logger_mock.warning.call_args.kwargs
        self.assertEqual(kwargs["reason"], "RuntimeError")
        self.assertEqual(kwargs["reason_code"], "unexpected_error")

    def test_put_rejects_items_which_are_not_mappings(self):
        result = self.store.put(
            self.user.pk, [{"id": "a"}, "b", None, {"id": "c"}], timeout=900
        )
        self.assertEqual(result, PutResult(succeeded=2, failed=2))

    def test_duplicate_ids_in_one_put(self):
        result = self.store.put(
            self.user.pk, [{"id": "a", "name": "first"}, {"id": "a"}], timeout=900
        )
        self.assertEqual(result, PutResult(succeeded=1, failed=1))
        self.assertEqual(ImportJob.objects.active().get().name, "first")

    def test_items_without_identifiers_never_collide(self):
        result = self.store.put(
            self.user.pk, [{"name": "one"}, {"name": "two"}], timeout=900
        )
        self.assertEqual(result, PutResult(succeeded=2, failed=0))
        resource_ids = self.active_ids()
        self.assertEqual(len(set(resource_ids)), 2)
        self.assertTrue(all(i.startswith("unknown-") for i in resource_ids))

    def test_put_is_scoped_to_user(self):
        other = create_user(username="other")
        self.store.put(other.pk, [{"id": "a"}], timeout=900)
        self.store.put(self.user.pk, [{"id": "b"}], timeout=900)
        self.assertEqual(self.active_ids(other), ["a"])

    def test_put_one(self):
        self.store.put(self.user.pk, [{"id": "a", "name": "old"}], timeout=900)
        snapshot = self.store.put_one(self.user.pk, {"id": "a", "name": "new"}, 60)
        self.assertEqual(snapshot.name, "new")
        self.assertEqual(ImportJob.objects.active().get().pk, snapshot.pk)

    def test_put_one_raises(self):
        with self.assertRaises(TypeError):
            self.store.put_one(self.user.pk, ["not", "a", "mapping"], 60)

    def test_get_active_filters_expired_and_inactive(self):
        now = timezone.now()
        fresh = create_import_job(user=self.user, resource_id="fresh")
        create_import_job(
            user=self.user, resource_id="stale", expires_at=now - timedelta(seconds=1)
        )
        create_import_job(user=self.user, resource_id="old", is_active=False)

        snapshots = self.store.get_active(self.user.pk)
        self.assertEqual(snapshots, [fresh])
        for snapshot in snapshots:
            self.assertTrue(snapshot.is_active)
            self.assertGreater(snapshot.expires_at, now)

    def test_get_active_after_expiry(self):
        self.store.put(self.user.pk, [{"id": "a"}], timeout=60)
        later = timezone.now() + timedelta(seconds=61)
        with mock.patch("django.utils.timezone.now", return_value=later):
            self.assertEqual(self.store.get_active(self.user.pk), [])

    def test_get_active_orders_by_name_for_ingestion_points(self):
        store = SnapshotStore(IngestionPoint)
        store.put(
            self.user.pk,
            [{"id": 1, "name": "b"}, {"id": 2, "name": "a"}, {"id": 3, "name": "c"}],
            timeout=60,
        )
        self.assertEqual(
            [snapshot.name for snapshot in store.get_active(self.user.pk)],
            ["a", "b", "c"],
        )

    def test_get_one(self):
        self.store.put(self.user.pk, [{"id": "a"}, {"id": "b"}], timeout=60)
        self.assertEqual(self.store.get_one(self.user.pk, "b").resource_id, "b")
        self.assertIsNone(self.store.get_one(self.user.pk, "z"))

    def test_deactivate_expired(self):
        now = timezone.now()
        create_import_job(user=self.user, resource_id="fresh")
        create_import_job(
            user=self.user, resource_id="stale", expires_at=now - timedelta(seconds=1)
        )
        self.assertEqual(self.store.deactivate_expired(self.user.pk), 1)
        self.assertEqual(self.active_ids(), ["fresh"])

    def test_clear_all(self):
        now = timezone.now()
        create_import_job(user=self.user, resource_id="fresh")
        create_import_job(
            user=self.user, resource_id="stale", expires_at=now - timedelta(seconds=1)
        )
        self.assertEqual(self.store.clear_all(self.user.pk), 2)
        self.assertEqual(self.active_ids(), [])
        self.assertEqual(self.store.clear_all(self.user.pk), 0)

    def test_stats(self):
        now = timezone.now()
        create_import_job(user=self.user, resource_id="fresh")
        create_import_job(
            user=self.user, resource_id="stale", expires_at=now - timedelta(seconds=1)
        )
        create_import_job(user=self.user, resource_id="gone", is_active=False)
        self.assertEqual(
            self.store.stats(self.user.pk), {"active": 1, "expired": 1, "total": 2}
        )

    def test_stats_without_rows(self):
        self.assertEqual(
            self.store.stats(self.user.pk), {"active": 0, "expired": 0, "total": 0}
        )
