from django.core.management.base import BaseCommand

from archive_cache.cache import RESOURCE_CACHES


class Command(BaseCommand):
    help = "Show cache statistics for a user's archive resources."  # NOQA: A003

    def add_arguments(self, parser):
        parser.add_argument("--user", type=int, required=True, help="User id")
        parser.add_argument("--kind", choices=sorted(RESOURCE_CACHES))

    def handle(self, *, user, kind, **options):
        kinds = [kind] if kind else sorted(RESOURCE_CACHES)

        for resource_kind in kinds:
            stats = RESOURCE_CACHES[resource_kind].health(user)
            if stats is None:
                self.stdout.write(
                    self.style.WARNING(f"{resource_kind}: statistics unavailable")
                )
                continue

            self.stdout.write(
                f"{resource_kind}: active={stats['active']} "
                f"expired={stats['expired']} total={stats['total']} "
                f"expiry={stats['cache_expiry_minutes']}m"
            )
