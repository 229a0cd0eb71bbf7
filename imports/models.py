"""
See the module-level docstring for implementation details
"""

import uuid
from typing import Optional

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MaxLengthValidator, MinLengthValidator
from django.db import models
from django.db.models import Count
from django.utils import timezone

from importmachine.exceptions import AttemptAlreadyFinishedError, BatchInProgressError
from importmachine.logging import ImportMachineLogger
from imports.utils import (
    format_duration,
    format_size,
    sha256_from_hex,
    sha256_to_hex,
    validate_sha256_digest,
)

structured_logger = ImportMachineLogger.get_logger(__name__)

TEXT_MAX_LENGTH = 10_000


class ImportStatus(models.IntegerChoices):
    """
    Shared by batches and import attempts
    """

    PENDING = 0
    RUNNING = 1
    COMPLETED = 2
    FAILED = 3
    CANCELLED = 4


IN_PROGRESS_STATUSES = frozenset({ImportStatus.PENDING, ImportStatus.RUNNING})
FINISHED_STATUSES = frozenset(
    {ImportStatus.COMPLETED, ImportStatus.FAILED, ImportStatus.CANCELLED}
)


def validate_status(value, status_class, field="status"):
    # bool is an int subclass but True is not a status
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or value not in status_class.values
    ):
        raise ValidationError(
            {
                field: "Status must be one of %s, not %r"
                % (", ".join(map(str, status_class.values)), value)
            },
            code="invalid_status",
        )


def validate_count(value, field):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(
            {field: "Must be a non-negative integer, not %r" % (value,)},
            code="invalid_count",
        )


class StatusModel(models.Model):
    """
    Base for models with a closed, small-integer status domain.

    Statuses outside the domain are rejected when the record is saved rather
    than being stored and interpreted later.
    """

    STATUS_CLASS: type[models.IntegerChoices] = ImportStatus

    created = models.DateTimeField(auto_now_add=True)
    modified = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @property
    def status_name(self) -> str:
        return self.STATUS_CLASS(self.status).name

    def validate_invariants(self):
        validate_status(self.status, self.STATUS_CLASS)

    def clean(self):
        super().clean()
        self.validate_invariants()

    def save(self, *args, **kwargs):
        self.validate_invariants()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "modified" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "modified"]
        super().save(*args, **kwargs)


class LifecycleStatusModel(StatusModel):
    status = models.PositiveSmallIntegerField(
        choices=ImportStatus.choices, default=ImportStatus.PENDING
    )

    class Meta:
        abstract = True

    @property
    def is_in_progress(self) -> bool:
        return self.status in IN_PROGRESS_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status == ImportStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == ImportStatus.FAILED

    @property
    def is_cancelled(self) -> bool:
        return self.status == ImportStatus.CANCELLED

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES


class BatchQuerySet(models.QuerySet):
    def filter_listing(self, status=None, source_system=None, created_by=None):
        """
        Apply the optional filters offered when listing batches. Unset filters
        are ignored; an invalid status is rejected.
        """
        queryset = self
        if status is not None:
            validate_status(status, ImportStatus)
            queryset = queryset.filter(status=status)
        if source_system:
            queryset = queryset.filter(source_system=source_system)
        if created_by:
            queryset = queryset.filter(created_by=created_by)
        return queryset

    def in_progress(self):
        return self.filter(status__in=IN_PROGRESS_STATUSES)


class Batch(LifecycleStatusModel):
    """
    A set of files imported together, with the counters used to report
    progress.

    The counters are reported by whatever performs the import; nothing here
    checks that ingested <= discovered.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    source_system = models.CharField(max_length=255)
    created_by = models.CharField(max_length=255)
    manifest_sha256 = models.BinaryField(
        help_text="SHA256 digest of the batch manifest",
        max_length=32,
        null=True,
        blank=True,
    )
    file_count_expected = models.PositiveBigIntegerField(
        help_text="Number of files the batch should contain, if known",
        null=True,
        blank=True,
    )
    file_count_discovered = models.PositiveBigIntegerField(default=0)
    file_count_ingested = models.PositiveBigIntegerField(default=0)
    metadata = models.JSONField(encoder=DjangoJSONEncoder, default=dict, blank=True)

    objects = BatchQuerySet.as_manager()

    class Meta:
        ordering = ["-created"]
        verbose_name_plural = "batches"

    def __str__(self):
        return "Batch(id=%s, source_system=%s, status=%s)" % (
            self.pk,
            self.source_system,
            self.status_name,
        )

    def validate_invariants(self):
        super().validate_invariants()
        validate_count(self.file_count_discovered, "file_count_discovered")
        validate_count(self.file_count_ingested, "file_count_ingested")
        if self.file_count_expected is not None:
            validate_count(self.file_count_expected, "file_count_expected")
        if self.manifest_sha256 is not None:
            validate_sha256_digest(self.manifest_sha256, "manifest_sha256")

    @property
    def completion_percentage(self) -> int:
        if not self.file_count_expected:
            return 0
        # Round half up
        return (200 * self.file_count_ingested + self.file_count_expected) // (
            2 * self.file_count_expected
        )

    @property
    def manifest_sha256_hex(self) -> Optional[str]:
        return sha256_to_hex(self.manifest_sha256)

    def set_manifest_sha256_from_hex(self, value: str) -> None:
        self.manifest_sha256 = sha256_from_hex(value, field="manifest_sha256")

    def update_status(self, status: int) -> None:
        validate_status(status, ImportStatus)
        previous = self.status_name
        self.status = ImportStatus(status)
        self.save(update_fields=["status"])
        structured_logger.info(
            "Batch status updated.",
            event_code="batch_status_updated",
            batch=self,
            previous_status=previous,
        )

    def update_counters(
        self, discovered: Optional[int] = None, ingested: Optional[int] = None
    ) -> None:
        """
        Replace the discovered and/or ingested counts with the reported values.
        """
        update_fields = []
        if discovered is not None:
            validate_count(discovered, "file_count_discovered")
            self.file_count_discovered = discovered
            update_fields.append("file_count_discovered")
        if ingested is not None:
            validate_count(ingested, "file_count_ingested")
            self.file_count_ingested = ingested
            update_fields.append("file_count_ingested")

        if update_fields:
            self.save(update_fields=update_fields)

    def delete(self, *args, **kwargs):
        """
        Batches which are pending or running can't be deleted.

        Raises:
            BatchInProgressError: If the batch is still in progress.
        """
        if self.is_in_progress:
            structured_logger.warning(
                "Refused to delete an in-progress batch.",
                event_code="batch_delete_rejected",
                reason="Batch is still in progress.",
                reason_code="batch_in_progress",
                batch=self,
            )
            raise BatchInProgressError(
                "Cannot delete a batch which is %s" % self.status_name.lower(),
                details={"batch_id": str(self.pk), "status": self.status_name},
            )
        return super().delete(*args, **kwargs)


class ImportAttempt(LifecycleStatusModel):
    """
    One run of an import. An attempt finishes exactly once, as completed,
    failed or cancelled, and records when it did.
    """

    import_id = models.UUIDField(db_index=True)
    started_at = models.DateTimeField(default=timezone.now)
    ended_at = models.DateTimeField(null=True, blank=True)
    error_summary = models.TextField(
        blank=True, default="", validators=[MaxLengthValidator(TEXT_MAX_LENGTH)]
    )

    class Meta:
        ordering = ["-started_at"]

    def __str__(self):
        return "ImportAttempt(import_id=%s, status=%s, started_at=%s)" % (
            self.import_id,
            self.status_name,
            self.started_at,
        )

    def validate_invariants(self):
        super().validate_invariants()
        if self.ended_at is not None and self.ended_at <= self.started_at:
            raise ValidationError(
                {"ended_at": "End time must be after the start time"},
                code="ended_before_started",
            )
        if self.is_finished and self.ended_at is None:
            raise ValidationError(
                {"ended_at": "A finished attempt must have an end time"},
                code="missing_end_time",
            )

    def mark_running(self) -> None:
        if self.is_finished:
            raise AttemptAlreadyFinishedError(
                "Attempt has already finished as %s" % self.status_name,
                details={"status": self.status_name},
            )
        self.status = ImportStatus.RUNNING
        self.save(update_fields=["status"])

    def _finish(self, status, **fields) -> None:
        if self.is_finished:
            structured_logger.warning(
                "Attempt was already finished.",
                event_code="import_attempt_finish_rejected",
                reason="Attempt can only finish once.",
                reason_code="attempt_already_finished",
                import_attempt=self,
                requested_status=status.name,
            )
            raise AttemptAlreadyFinishedError(
                "Attempt has already finished as %s" % self.status_name,
                details={"status": self.status_name, "requested": status.name},
            )

        self.status = status
        self.ended_at = timezone.now()
        for field, value in fields.items():
            setattr(self, field, value)
        self.save(update_fields=["status", "ended_at", *fields])

        structured_logger.info(
            "Import attempt finished.",
            event_code="import_attempt_finished",
            import_attempt=self,
            duration=self.duration_formatted,
        )

    def mark_completed(self) -> None:
        self._finish(ImportStatus.COMPLETED)

    def mark_failed(self, error_summary: str) -> None:
        # Summaries usually come from exception text, so truncate rather than
        # fail to record the failure at all
        self._finish(
            ImportStatus.FAILED, error_summary=(error_summary or "")[:TEXT_MAX_LENGTH]
        )

    def mark_cancelled(self) -> None:
        self._finish(ImportStatus.CANCELLED)

    @property
    def duration(self):
        if self.started_at and self.ended_at:
            return self.ended_at - self.started_at
        return None

    @property
    def duration_formatted(self) -> Optional[str]:
        return format_duration(self.duration)


class ImportFileQuerySet(models.QuerySet):
    def for_import(self, import_id):
        return self.filter(import_id=import_id)

    def in_queue(self):
        """
        Files waiting to be processed, oldest first.
        """
        return self.filter(status__in=ImportFile.IN_QUEUE_STATUSES).order_by(
            "created", "id"
        )

    def with_sha256_hex(self, value: str):
        return self.filter(sha256=sha256_from_hex(value))

    def status_counts(self) -> dict[int, int]:
        rows = self.order_by().values("status").annotate(count=Count("id"))
        return {row["status"]: row["count"] for row in rows}


class ImportFile(StatusModel):
    """
    One file's ingestion state.

    A file starts PENDING and moves through QUEUED and PROCESSING before
    ending as INGESTED, SKIPPED_DEDUP or QUARANTINED. FAILED files stay
    retryable. The ``mark_*`` methods don't check the current status: a file
    may go straight from PENDING to a terminal state (for example when a
    duplicate is detected before it is queued), and marking it again simply
    re-applies the terminal state.
    """

    class Status(models.IntegerChoices):
        PENDING = 0
        QUEUED = 1
        PROCESSING = 2
        INGESTED = 3
        FAILED = 4
        SKIPPED_DEDUP = 5
        QUARANTINED = 6

    STATUS_CLASS = Status
    IN_QUEUE_STATUSES = frozenset({Status.PENDING, Status.QUEUED, Status.PROCESSING})
    COMPLETED_STATUSES = frozenset(
        {Status.INGESTED, Status.SKIPPED_DEDUP, Status.QUARANTINED}
    )

    import_id = models.UUIDField(db_index=True)
    path = models.TextField(
        validators=[MinLengthValidator(1), MaxLengthValidator(TEXT_MAX_LENGTH)]
    )
    size_bytes = models.PositiveBigIntegerField(null=True, blank=True)
    sha256 = models.BinaryField(max_length=32)
    status = models.PositiveSmallIntegerField(
        choices=Status.choices, default=Status.PENDING
    )
    ingested_at = models.DateTimeField(null=True, blank=True)
    attempt_count = models.PositiveIntegerField(default=0)
    last_error = models.TextField(
        blank=True, default="", validators=[MaxLengthValidator(TEXT_MAX_LENGTH)]
    )

    objects = ImportFileQuerySet.as_manager()

    class Meta:
        ordering = ["created", "id"]
        indexes = [
            models.Index(fields=["import_id", "status"], name="imports_file_status_idx")
        ]

    def __str__(self):
        return "ImportFile(import_id=%s, path=%s, status=%s)" % (
            self.import_id,
            self.path,
            self.status_name,
        )

    def validate_invariants(self):
        super().validate_invariants()
        if not self.path:
            raise ValidationError({"path": "Path is required"}, code="required")
        if len(self.path) > TEXT_MAX_LENGTH:
            raise ValidationError(
                {"path": f"Path can't be longer than {TEXT_MAX_LENGTH} characters"},
                code="max_length",
            )
        if self.size_bytes is not None:
            validate_count(self.size_bytes, "size_bytes")
        validate_sha256_digest(self.sha256)

    @property
    def is_in_queue(self) -> bool:
        return self.status in self.IN_QUEUE_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status in self.COMPLETED_STATUSES

    @property
    def is_failed(self) -> bool:
        return self.status == self.Status.FAILED

    @property
    def is_ingested(self) -> bool:
        return self.status == self.Status.INGESTED

    @property
    def is_skipped_dedup(self) -> bool:
        return self.status == self.Status.SKIPPED_DEDUP

    @property
    def is_quarantined(self) -> bool:
        return self.status == self.Status.QUARANTINED

    @property
    def sha256_hex(self) -> Optional[str]:
        return sha256_to_hex(self.sha256)

    def set_sha256_from_hex(self, value: str) -> None:
        self.sha256 = sha256_from_hex(value)

    @property
    def size_formatted(self) -> str:
        return format_size(self.size_bytes)

    def _transition(self, status, event_code, **fields) -> None:
        self.status = status
        for field, value in fields.items():
            setattr(self, field, value)
        self.save(update_fields=["status", *fields])
        structured_logger.debug(
            "Import file status changed.", event_code=event_code, import_file=self
        )

    def update_status(self, status: int) -> None:
        validate_status(status, self.Status)
        self._transition(self.Status(status), "import_file_status_updated")

    def mark_ingested(self) -> None:
        self._transition(
            self.Status.INGESTED, "import_file_ingested", ingested_at=timezone.now()
        )

    def mark_failed(self, error: Optional[str] = None) -> None:
        fields = {"attempt_count": self.attempt_count + 1}
        # Without a message the previous error is kept
        if error:
            fields["last_error"] = error[:TEXT_MAX_LENGTH]
        self._transition(self.Status.FAILED, "import_file_failed", **fields)

    def mark_skipped_dedup(self) -> None:
        self._transition(
            self.Status.SKIPPED_DEDUP,
            "import_file_skipped_dedup",
            ingested_at=timezone.now(),
        )

    def mark_quarantined(self, reason: Optional[str] = None) -> None:
        fields = {}
        if reason:
            fields["last_error"] = reason[:TEXT_MAX_LENGTH]
        self._transition(self.Status.QUARANTINED, "import_file_quarantined", **fields)

    def increment_attempt_count(self) -> None:
        self.attempt_count += 1
        self.save(update_fields=["attempt_count"])
