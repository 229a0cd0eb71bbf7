from datetime import timedelta
from logging import getLogger
from typing import Any, Iterable, NamedTuple, Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from archive_cache.extraction import ensure_payload, extract_resource_id
from importmachine.logging import ImportMachineLogger

logger = getLogger(__name__)
structured_logger = ImportMachineLogger.get_logger(__name__)

# Errors which mean the payload itself couldn't be stored
PAYLOAD_ERRORS = (ValidationError, TypeError, ValueError, OverflowError)


class DuplicateResourceError(ValueError):
    pass


class PutResult(NamedTuple):
    succeeded: int
    failed: int


def _failure_reason_code(exc: Exception) -> str:
    if isinstance(exc, DuplicateResourceError):
        return "duplicate_resource_id"
    if isinstance(exc, DatabaseError):
        return "storage_error"
    if isinstance(exc, PAYLOAD_ERRORS):
        return "invalid_payload"
    return "unexpected_error"


class SnapshotStore:
    """
    Persistence for one kind of cached archive resource.

    Every read is scoped to a single user and filtered on ``is_active``; reads
    that serve data also require ``expires_at`` to be in the future.
    """

    def __init__(self, model):
        self.model = model

    @property
    def kind(self) -> str:
        return self.model.RESOURCE_KIND

    def _snapshots(self, user_id):
        return self.model.objects.for_user(user_id)

    def _write(self, user_id, item, *, now, expires_at, seen_ids=None):
        payload = ensure_payload(item)
        resource_id = extract_resource_id(payload)

        if seen_ids is not None and resource_id in seen_ids:
            raise DuplicateResourceError(
                "Resource id %s appears more than once in this refresh" % resource_id
            )

        snapshot = self.model(
            user_id=user_id,
            resource_id=resource_id,
            raw_data=dict(payload),
            last_fetched=now,
            expires_at=expires_at,
            is_active=True,
            **self.model.project_payload(payload),
        )

        with transaction.atomic():
            # A concurrent refresh may already have activated this resource
            self._snapshots(user_id).active().filter(resource_id=resource_id).update(
                is_active=False
            )
            snapshot.save(force_insert=True)

        if seen_ids is not None:
            seen_ids.add(resource_id)

        return snapshot

    def put(self, user_id: int, items: Iterable[Any], timeout: int) -> PutResult:
        """
        Replace the user's active snapshots with ``items``.

        Everything active before the call is deactivated first, then each item
        is written in its own transaction so that one malformed item cannot
        prevent the others from being cached. Items that fail are counted and
        logged rather than raised.

        Args:
            user_id (int): The owner of the snapshots.
            items (Iterable[Any]): Payloads as returned by the archive service.
            timeout (int): Seconds until the new snapshots expire.

        Returns:
            PutResult: How many items were stored and how many failed.
        """
        now = timezone.now()
        expires_at = now + timedelta(seconds=timeout)

        deactivated = self._snapshots(user_id).active().update(is_active=False)
        logger.debug(
            "Deactivated %d %s snapshots for user %s", deactivated, self.kind, user_id
        )

        succeeded = failed = 0
        seen_ids = set()

        for position, item in enumerate(items):
            try:
                self._write(
                    user_id, item, now=now, expires_at=expires_at, seen_ids=seen_ids
                )
            except Exception as exc:
                failed += 1
                structured_logger.warning(
                    "Archive resource could not be cached.",
                    event_code="resource_cache_item_failed",
                    reason=str(exc) or exc.__class__.__name__,
                    reason_code=_failure_reason_code(exc),
                    user=user_id,
                    resource_kind=self.kind,
                    position=position,
                )
            else:
                succeeded += 1

        structured_logger.info(
            "Cached archive resources.",
            event_code="resource_cache_stored",
            user=user_id,
            resource_kind=self.kind,
            succeeded=succeeded,
            failed=failed,
        )

        return PutResult(succeeded=succeeded, failed=failed)

    def put_one(self, user_id: int, item: Any, timeout: int):
        """
        Cache a single resource, superseding any active snapshot with the same
        resource id. Unlike ``put`` errors are raised to the caller.
        """
        now = timezone.now()
        return self._write(
            user_id, item, now=now, expires_at=now + timedelta(seconds=timeout)
        )

    def get_active(self, user_id: int) -> list:
        return list(self._snapshots(user_id).active().fresh())

    def get_one(self, user_id: int, resource_id: str) -> Optional[Any]:
        return (
            self._snapshots(user_id)
            .active()
            .fresh()
            .filter(resource_id=resource_id)
            .first()
        )

    def deactivate_expired(self, user_id: int) -> int:
        return self._snapshots(user_id).active().expired().update(is_active=False)

    def clear_all(self, user_id: int) -> int:
        return self._snapshots(user_id).active().update(is_active=False)

    def stats(self, user_id: int) -> dict[str, int]:
        now = timezone.now()
        counts = (
            self._snapshots(user_id)
            .active()
            .aggregate(
                total=Count("pk"),
                active=Count("pk", filter=Q(expires_at__gt=now)),
                expired=Count("pk", filter=Q(expires_at__lte=now)),
            )
        )
        return {
            "active": counts["active"] or 0,
            "expired": counts["expired"] or 0,
            "total": counts["total"] or 0,
        }
