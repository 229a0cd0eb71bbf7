from logging import getLogger
from typing import Any, Callable, Iterable, Optional

from django.conf import settings
from django.db import transaction

from archive_cache.models import ImportJob, IngestionPoint
from archive_cache.store import PutResult, SnapshotStore
from importmachine.logging import ImportMachineLogger

logger = getLogger(__name__)
structured_logger = ImportMachineLogger.get_logger(__name__)


class ResourceCache:
    """
    Read-through cache of one kind of archive resource, per user.

    The archive service stays the source of truth: every method here degrades
    to "go ask the archive" instead of raising. Reads return ``None`` for a
    miss (including when the cache itself is broken) and writes report how
    many items they managed to store. Each store call runs in its own
    savepoint, so a failed cache query leaves the caller's transaction usable.

    Typical use from a caller which knows how to talk to the archive::

        items, cached = import_job_cache.fetch(
            user.pk, lambda: client.list_import_jobs(), force_refresh=refresh
        )
    """

    def __init__(self, model, timeout_setting: str):
        self.store = SnapshotStore(model)
        self.timeout_setting = timeout_setting

    def __repr__(self):
        return "ResourceCache(kind=%s, timeout=%s)" % (self.kind, self.timeout)

    @property
    def kind(self) -> str:
        return self.store.kind

    @property
    def timeout(self) -> int:
        return getattr(settings, self.timeout_setting)

    def _soft_failure(self, message, event_code, exc, user_id, **context):
        structured_logger.warning(
            message,
            event_code=event_code,
            reason=str(exc) or exc.__class__.__name__,
            reason_code="cache_unavailable",
            user=user_id,
            resource_kind=self.kind,
            **context,
        )

    def read(self, user_id: int, force_refresh: bool = False) -> Optional[list]:
        """
        Return the user's cached collection, or ``None`` on a miss.

        A forced refresh always misses. Before reporting the miss it
        deactivates expired rows, so that if the caller's refresh fails the
        stale rows are not left flagged as active.
        """
        try:
            with transaction.atomic():
                if force_refresh:
                    cleared = self.store.deactivate_expired(user_id)
                else:
                    snapshots = self.store.get_active(user_id)
        except Exception as exc:
            self._soft_failure(
                "Cached archive resources could not be read.",
                "resource_cache_read_failed",
                exc,
                user_id,
            )
            return None

        if force_refresh:
            logger.debug(
                "Forced refresh of %s for user %s cleared %d expired snapshots",
                self.kind,
                user_id,
                cleared,
            )
            return None

        if not snapshots:
            return None

        return [snapshot.as_cached_payload() for snapshot in snapshots]

    def refresh(self, user_id: int, items: Iterable[Any]) -> PutResult:
        items = list(items)
        try:
            with transaction.atomic():
                return self.store.put(user_id, items, self.timeout)
        except Exception as exc:
            self._soft_failure(
                "Archive resources could not be cached.",
                "resource_cache_refresh_failed",
                exc,
                user_id,
                item_count=len(items),
            )
            return PutResult(succeeded=0, failed=len(items))

    def read_one(
        self, user_id: int, resource_id: str, force_refresh: bool = False
    ) -> Optional[dict]:
        if force_refresh:
            return None

        try:
            with transaction.atomic():
                snapshot = self.store.get_one(user_id, str(resource_id))
        except Exception as exc:
            self._soft_failure(
                "Cached archive resource could not be read.",
                "resource_cache_read_failed",
                exc,
                user_id,
                resource_id=resource_id,
            )
            return None

        if snapshot is None:
            return None
        return snapshot.as_cached_payload()

    def refresh_one(self, user_id: int, item: Any) -> bool:
        try:
            with transaction.atomic():
                snapshot = self.store.put_one(user_id, item, self.timeout)
        except Exception as exc:
            self._soft_failure(
                "Archive resource could not be cached.",
                "resource_cache_refresh_failed",
                exc,
                user_id,
            )
            return False

        structured_logger.debug(
            "Cached archive resource.",
            event_code="resource_cache_item_stored",
            snapshot=snapshot,
        )
        return True

    def invalidate(self, user_id: int) -> int:
        try:
            with transaction.atomic():
                cleared = self.store.clear_all(user_id)
        except Exception as exc:
            self._soft_failure(
                "Cached archive resources could not be cleared.",
                "resource_cache_invalidate_failed",
                exc,
                user_id,
            )
            return 0

        structured_logger.info(
            "Cleared cached archive resources.",
            event_code="resource_cache_invalidated",
            user=user_id,
            resource_kind=self.kind,
            cleared=cleared,
        )
        return cleared

    def health(self, user_id: int) -> Optional[dict[str, int]]:
        try:
            with transaction.atomic():
                stats = self.store.stats(user_id)
        except Exception as exc:
            self._soft_failure(
                "Cache statistics could not be read.",
                "resource_cache_stats_failed",
                exc,
                user_id,
            )
            return None

        stats["cache_expiry_minutes"] = self.timeout // 60
        return stats

    def fetch(
        self,
        user_id: int,
        fetcher: Callable[[], Iterable[Any]],
        force_refresh: bool = False,
    ) -> tuple[list, bool]:
        """
        Return ``(items, cached)`` for the user, calling ``fetcher`` on a miss.

        Freshly fetched items are cached (softly) and returned as the fetcher
        produced them, without the ``_cached`` annotations. Exceptions raised
        by ``fetcher`` propagate: an unavailable archive is not something the
        cache can hide.
        """
        cached_items = self.read(user_id, force_refresh=force_refresh)
        if cached_items is not None:
            return cached_items, True

        items = list(fetcher())
        result = self.refresh(user_id, items)
        if result.failed:
            logger.info(
                "%d of %d %s items were not cached for user %s",
                result.failed,
                len(items),
                self.kind,
                user_id,
            )
        return items, False


ingestion_point_cache = ResourceCache(IngestionPoint, "INGESTION_POINT_CACHE_TIMEOUT")
import_job_cache = ResourceCache(ImportJob, "IMPORT_JOB_CACHE_TIMEOUT")

RESOURCE_CACHES = {
    cache.kind: cache for cache in (ingestion_point_cache, import_job_cache)
}
