"""
Design
======

Tracks imports into the archive: batches of files, the attempts made to
process an import and the state of each individual file. This app holds the
data model and its state machine only; hashing and transferring files is done
elsewhere and reported back through the methods on these models.

* ``Batch`` and ``ImportAttempt`` share a five value status
  (``ImportStatus``). A batch can't be deleted while it is pending or
  running. An attempt finishes exactly once and records when it ended.
* ``ImportFile`` has its own seven value status. Every status is exactly one
  of "in queue" (pending, queued, processing), "completed" (ingested, skipped
  as a duplicate, quarantined) or failed.
* Files and attempts refer to their import by ``import_id`` rather than
  through a foreign key.
* Invalid statuses, digests and timestamps raise
  ``django.core.exceptions.ValidationError``. Operations which are well formed
  but not allowed in the record's current state raise
  ``importmachine.exceptions.StateConflictError`` subclasses.

``stats.queue_stats`` reports per-status file counts for an import.
"""
