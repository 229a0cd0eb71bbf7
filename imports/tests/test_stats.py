import uuid

from django.test import TestCase

from imports.models import ImportFile
from imports.stats import queue_stats

from .utils import create_import_file


class QueueStatsTests(TestCase):
    def test_import_without_files(self):
        self.assertEqual(
            queue_stats(uuid.uuid4()),
            {
                "pending": 0,
                "queued": 0,
                "processing": 0,
                "ingested": 0,
                "failed": 0,
                "skipped_dedup": 0,
                "quarantined": 0,
                "total": 0,
            },
        )

    def test_counts_by_status(self):
        import_id = uuid.uuid4()
        statuses = [
            ImportFile.Status.PENDING,
            ImportFile.Status.PENDING,
            ImportFile.Status.QUEUED,
            ImportFile.Status.INGESTED,
            ImportFile.Status.INGESTED,
            ImportFile.Status.INGESTED,
            ImportFile.Status.FAILED,
            ImportFile.Status.QUARANTINED,
        ]
        for position, status in enumerate(statuses):
            create_import_file(
                import_id=import_id, path=f"file-{position}", status=status
            )
        # Files from another import are not counted
        create_import_file(path="elsewhere", status=ImportFile.Status.FAILED)

        stats = queue_stats(import_id)
        self.assertEqual(stats["pending"], 2)
        self.assertEqual(stats["queued"], 1)
        self.assertEqual(stats["processing"], 0)
        self.assertEqual(stats["ingested"], 3)
        self.assertEqual(stats["failed"], 1)
        self.assertEqual(stats["skipped_dedup"], 0)
        self.assertEqual(stats["quarantined"], 1)
        self.assertEqual(stats["total"], 8)

    def test_single_grouped_query(self):
        import_id = uuid.uuid4()
        create_import_file(import_id=import_id, path="a")
        create_import_file(import_id=import_id, path="b")
        with self.assertNumQueries(1):
            queue_stats(import_id)
