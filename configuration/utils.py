import re
from typing import Any, Optional

from django.conf import settings
from django.core.cache import caches

from configuration.models import DEFAULT_S3_REGION, ArchiveConfiguration

CONFIGURATION_KEY_PREFIX = "archive_config"

TOKEN_SCHEME_RE = re.compile(r"^PWSAK2\s+")


def _cache_key(user_id: int) -> str:
    return f"{CONFIGURATION_KEY_PREFIX}_{user_id}"


def clean_api_token(token: Optional[str]) -> str:
    """
    Strip the ``PWSAK2`` authorization scheme from a token which was pasted
    together with it, leaving the bare token.
    """
    return TOKEN_SCHEME_RE.sub("", (token or "").strip())


def serialize_archive_configuration(
    config: Optional[ArchiveConfiguration],
) -> dict[str, Any]:
    """
    Convert a configuration row into the plain dictionary which is cached.

    A missing row produces the same shape with empty values, so callers never
    need to distinguish "no configuration" from "empty configuration".
    """
    if config is None:
        config = ArchiveConfiguration()

    return {
        "archive_web_ui": config.archive_web_ui,
        "api_token": clean_api_token(config.api_token),
        "customer_guid": config.customer_guid,
        "s3_settings": {
            "access_key_id": config.s3_access_key_id,
            "secret_access_key": config.s3_secret_access_key,
            "region": config.s3_region or DEFAULT_S3_REGION,
        },
    }


def archive_configuration(user_id: int) -> dict[str, Any]:
    """
    Retrieve a user's archive configuration, from the cache when possible.

    Behavior:
        - Look up the configuration in the ``configuration_cache`` using a
          per-user cache key.
        - If it is missing, delegate to ``cache_archive_configuration`` to
          load, normalise, cache and return it.

    Caching:
        - Values are stored in the cache alias ``configuration_cache``.
        - Cache entries expire according to
          ``settings.CONFIGURATION_CACHE_TIMEOUT``.
        - Saving or deleting an ``ArchiveConfiguration`` refreshes the entry
          (see ``configuration.signals``).

    Args:
        user_id (int): The user whose configuration should be returned.

    Returns:
        dict[str, Any]: ``archive_web_ui``, ``api_token``, ``customer_guid``
        and an ``s3_settings`` dictionary. Values are empty strings when the
        user hasn't configured them.
    """
    value = caches["configuration_cache"].get(_cache_key(user_id))

    if value is None:
        value = cache_archive_configuration(user_id)

    return value


def cache_archive_configuration(
    user_id: int, value: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    """
    Populate or refresh the cached configuration for a user.

    Args:
        user_id (int): The user whose configuration should be cached.
        value (dict[str, Any] | None): An already serialized configuration to
            cache. If ``None``, the configuration is loaded from the database.

    Returns:
        dict[str, Any]: The value that was stored in the cache.
    """
    if value is None:
        config = ArchiveConfiguration.objects.filter(user_id=user_id).first()
        value = serialize_archive_configuration(config)

    caches["configuration_cache"].set(
        _cache_key(user_id), value, timeout=settings.CONFIGURATION_CACHE_TIMEOUT
    )
    return value


def forget_archive_configuration(user_id: int) -> None:
    caches["configuration_cache"].delete(_cache_key(user_id))


def is_configuration_complete(user_id: int) -> bool:
    """
    A user can talk to the archive once both its URL and an API token are set.
    """
    config = archive_configuration(user_id)
    return bool(config["archive_web_ui"] and config["api_token"])
