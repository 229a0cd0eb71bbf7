from django.core.cache import caches
from django.core.management.base import BaseCommand

from configuration.utils import CONFIGURATION_KEY_PREFIX

SECRET_FIELDS = ("api_token", "secret_access_key")


def _mask(value):
    if not value:
        return value
    return "*" * 8 + value[-4:]


class Command(BaseCommand):
    help = "Show the cached archive configuration for a user."  # NOQA: A003

    def add_arguments(self, parser):
        parser.add_argument("user_id", type=int, help="The user to look up")

    def handle(self, *args, **options):
        config_cache = caches["configuration_cache"]
        user_id = options["user_id"]
        value = config_cache.get(f"{CONFIGURATION_KEY_PREFIX}_{user_id}")

        if value is None:
            self.stdout.write(
                self.style.WARNING(f"No cached configuration for user {user_id}.")
            )
            return

        self.stdout.write(self.style.SUCCESS(f"Configuration for user {user_id}:"))
        for key, field_value in value.items():
            if isinstance(field_value, dict):
                for sub_key, sub_value in field_value.items():
                    if sub_key in SECRET_FIELDS:
                        sub_value = _mask(sub_value)
                    self.stdout.write(f"  {key}.{sub_key}: {sub_value}")
            else:
                if key in SECRET_FIELDS:
                    field_value = _mask(field_value)
                self.stdout.write(f"  {key}: {field_value}")
