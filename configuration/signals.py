from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from configuration.models import ArchiveConfiguration
from configuration.utils import (
    cache_archive_configuration,
    forget_archive_configuration,
    serialize_archive_configuration,
)
from importmachine.logging import ImportMachineLogger
from importmachine.storage import storage_clients

structured_logger = ImportMachineLogger.get_logger(__name__)


@receiver(post_save, sender=ArchiveConfiguration)
def update_cached_archive_configuration(
    sender: type[ArchiveConfiguration], *, instance: ArchiveConfiguration, **kwargs
) -> None:
    """
    Post-save signal handler that refreshes the user's cached configuration.

    Behavior:
        - Serialize the saved instance and write it to the configuration
          cache, replacing whatever was cached before.
        - Drop the user's cached S3 client so the next request builds one from
          the new credentials.

    Args:
        sender (type[ArchiveConfiguration]): The model class that sent the
            signal.
        instance (ArchiveConfiguration): The saved configuration.

    Returns:
        None
    """
    cache_archive_configuration(
        instance.user_id, serialize_archive_configuration(instance)
    )
    storage_clients.invalidate(instance.user_id)
    structured_logger.info(
        "Archive configuration saved.",
        event_code="archive_configuration_saved",
        user=instance.user_id,
    )


@receiver(post_delete, sender=ArchiveConfiguration)
def forget_cached_archive_configuration(
    sender: type[ArchiveConfiguration], *, instance: ArchiveConfiguration, **kwargs
) -> None:
    forget_archive_configuration(instance.user_id)
    storage_clients.invalidate(instance.user_id)
