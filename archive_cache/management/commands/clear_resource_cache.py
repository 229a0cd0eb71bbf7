"""
Deactivate a user's cached archive resources.

By default every active snapshot of every kind is cleared. ``--expired-only``
restricts this to snapshots which have already passed their expiry time.
"""

from django.core.management.base import BaseCommand

from archive_cache.cache import RESOURCE_CACHES


class Command(BaseCommand):
    help = "Clear a user's cached ingestion points and import jobs."  # NOQA: A003

    def add_arguments(self, parser):
        parser.add_argument("--user", type=int, required=True, help="User id")
        parser.add_argument(
            "--kind",
            choices=sorted(RESOURCE_CACHES),
            help="Only clear this kind of resource",
        )
        parser.add_argument(
            "--expired-only",
            action="store_true",
            help="Only clear snapshots which have already expired",
        )

    def handle(self, *, user, kind, expired_only, **options):
        kinds = [kind] if kind else sorted(RESOURCE_CACHES)

        for resource_kind in kinds:
            cache = RESOURCE_CACHES[resource_kind]
            if expired_only:
                cleared = cache.store.deactivate_expired(user)
            else:
                cleared = cache.invalidate(user)
            self.stdout.write(
                self.style.SUCCESS(
                    f"Cleared {cleared} {resource_kind} snapshot(s) for user {user}"
                )
            )
