"""
Per-user object-storage clients.

Clients are built from each user's stored S3 credentials and kept in a small
in-process cache. Entries expire after ``STORAGE_CLIENT_CACHE_TIMEOUT`` seconds,
the cache never holds more than ``STORAGE_CLIENT_CACHE_SIZE`` clients, and an
entry is only reused while the credentials it was built from are unchanged.
Saving a user's configuration also invalidates their entry explicitly (see
``configuration.signals``).
"""

import hashlib
import threading
import time
from collections import OrderedDict
from logging import getLogger
from typing import Any, Callable, NamedTuple, Optional

import boto3
from django.conf import settings

from importmachine.exceptions import StorageNotConfiguredError
from importmachine.logging import ImportMachineLogger

logger = getLogger(__name__)
structured_logger = ImportMachineLogger.get_logger(__name__)

DEFAULT_REGION = "us-east-1"


class StorageCredentials(NamedTuple):
    access_key_id: str
    secret_access_key: str
    region: str = DEFAULT_REGION

    @property
    def is_complete(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    def fingerprint(self) -> str:
        # The secret never leaves this process, but there's no reason to keep
        # it around in plain text as a dictionary key either
        material = "\x00".join(
            (self.access_key_id, self.secret_access_key, self.region)
        )
        return hashlib.sha256(material.encode("utf-8")).hexdigest()


class _CachedClient(NamedTuple):
    client: Any
    fingerprint: str
    expires: float


def load_storage_credentials(user_id: int) -> StorageCredentials:
    from configuration.utils import archive_configuration

    s3_settings = archive_configuration(user_id)["s3_settings"]
    return StorageCredentials(
        access_key_id=s3_settings.get("access_key_id") or "",
        secret_access_key=s3_settings.get("secret_access_key") or "",
        region=s3_settings.get("region") or DEFAULT_REGION,
    )


def build_s3_client(credentials: StorageCredentials):
    return boto3.client(
        "s3",
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        region_name=credentials.region,
    )


class StorageClientFactory:
    """
    Bounded, time-aware cache of S3 clients keyed by user.

    Both the credential lookup and the client construction are injectable so
    callers (and tests) can supply their own without patching boto3.
    """

    def __init__(
        self,
        credentials_loader: Optional[Callable[[int], StorageCredentials]] = None,
        client_builder: Optional[Callable[[StorageCredentials], Any]] = None,
        max_size: Optional[int] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._credentials_loader = credentials_loader or load_storage_credentials
        self._client_builder = client_builder or build_s3_client
        self._max_size = max_size
        self._timeout = timeout
        self._clock = clock
        self._clients: OrderedDict[int, _CachedClient] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        if self._max_size is not None:
            return self._max_size
        return settings.STORAGE_CLIENT_CACHE_SIZE

    @property
    def timeout(self) -> float:
        if self._timeout is not None:
            return self._timeout
        return settings.STORAGE_CLIENT_CACHE_TIMEOUT

    def __len__(self):
        with self._lock:
            return len(self._clients)

    def get_client(self, user_id: int):
        """
        Return an S3 client for the user, building a new one if there is no
        usable cached client.

        Raises:
            StorageNotConfiguredError: If the user has no S3 credentials.
        """
        credentials = self._credentials_loader(user_id)
        if not credentials.is_complete:
            raise StorageNotConfiguredError(
                "S3 credentials not configured. Please configure your AWS "
                "credentials first."
            )

        fingerprint = credentials.fingerprint()
        now = self._clock()

        with self._lock:
            entry = self._clients.get(user_id)
            if entry and entry.fingerprint == fingerprint and entry.expires > now:
                self._clients.move_to_end(user_id)
                return entry.client

        if entry is not None and entry.fingerprint != fingerprint:
            structured_logger.info(
                "Stored credentials changed, rebuilding storage client.",
                event_code="storage_client_credentials_changed",
                user=user_id,
            )

        client = self._client_builder(credentials)

        with self._lock:
            self._clients[user_id] = _CachedClient(
                client=client, fingerprint=fingerprint, expires=now + self.timeout
            )
            self._clients.move_to_end(user_id)
            while len(self._clients) > self.max_size:
                evicted_user_id, _ = self._clients.popitem(last=False)
                logger.debug("Evicted storage client for user %s", evicted_user_id)

        return client

    def invalidate(self, user_id: int) -> bool:
        with self._lock:
            removed = self._clients.pop(user_id, None) is not None

        if removed:
            structured_logger.debug(
                "Storage client invalidated.",
                event_code="storage_client_invalidated",
                user=user_id,
            )
        return removed

    def clear(self) -> None:
        with self._lock:
            self._clients.clear()


storage_clients = StorageClientFactory()
