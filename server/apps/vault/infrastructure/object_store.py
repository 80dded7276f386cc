"""Object store facade for file bytes.

The vault never talks to a storage backend directly. Operations that
store, read or release bytes receive an ``ObjectStore`` explicitly, so
callers decide which backend (S3 bucket, in-memory storage) is used.
"""

import logging
import posixpath
from collections.abc import Iterator
from datetime import datetime
from typing import final

from django.core.files.base import ContentFile
from django.core.files.storage import Storage, storages

from server.apps.vault.exceptions import ObjectNotFoundError, ObjectStoreError

logger = logging.getLogger(__name__)


@final
class ObjectStore:
    """Binary object store addressed by opaque storage keys."""

    def __init__(self, storage: Storage) -> None:
        """Initialize the object store.

        Args:
            storage: Django storage backend holding the bytes.
        """
        self.storage = storage

    @classmethod
    def from_settings(cls, alias: str = 'default') -> 'ObjectStore':
        """Build an object store from the ``STORAGES`` setting.

        Args:
            alias: Storage alias in ``STORAGES``.

        Returns:
            ObjectStore over the configured backend.
        """
        return cls(storages[alias])

    def put(self, content: bytes, suggested_name: str) -> str:
        """Store bytes durably.

        Args:
            content: Raw bytes.
            suggested_name: Preferred storage key.

        Returns:
            Actual storage key (backend may pick another free key).

        Raises:
            ObjectStoreError: If the backend fails.
        """
        try:
            return self.storage.save(suggested_name, ContentFile(content))
        except Exception as error:
            raise ObjectStoreError(
                suggested_name,
                f'Failed to store object: {suggested_name}',
            ) from error

    def get(self, storage_key: str) -> bytes:
        """Read bytes by key.

        Args:
            storage_key: Key returned by ``put``.

        Returns:
            Stored bytes.

        Raises:
            ObjectNotFoundError: If nothing is stored under the key.
            ObjectStoreError: If the backend fails.
        """
        if not self.exists(storage_key):
            raise ObjectNotFoundError(storage_key)

        try:
            with self.storage.open(storage_key, 'rb') as stored:
                return stored.read()
        except FileNotFoundError as error:
            raise ObjectNotFoundError(storage_key) from error
        except OSError as error:
            raise ObjectStoreError(
                storage_key,
                f'Failed to read object: {storage_key}',
            ) from error

    def exists(self, storage_key: str) -> bool:
        """Check whether bytes are stored under a key.

        Raises:
            ObjectStoreError: If the backend fails.
        """
        try:
            return self.storage.exists(storage_key)
        except Exception as error:
            raise ObjectStoreError(storage_key) from error

    def delete(self, storage_key: str) -> bool:
        """Release bytes by key.

        Idempotent: deleting an absent key succeeds.

        Args:
            storage_key: Key to release.

        Returns:
            True if the bytes are gone (removed or already absent),
            False for an empty key.

        Raises:
            ObjectStoreError: If the backend fails.
        """
        if not storage_key:
            return False

        try:
            self.storage.delete(storage_key)
        except FileNotFoundError:
            logger.debug('Object already absent: %s', storage_key)
        except Exception as error:
            raise ObjectStoreError(
                storage_key,
                f'Failed to delete object: {storage_key}',
            ) from error
        return True

    def discard(self, storage_key: str) -> None:
        """Delete bytes whose metadata record was never created.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, the bytes become an orphan for
        ``cleanup_orphans``.

        Args:
            storage_key: Key to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting object: %s', storage_key)
            self.delete(storage_key)
        except ObjectStoreError:
            logger.exception(
                'Failed to roll back upload, orphaned object: %s',
                storage_key,
            )

    def modified_at(self, storage_key: str) -> datetime:
        """Last write time of the bytes under a key.

        Raises:
            ObjectNotFoundError: If nothing is stored under the key.
            ObjectStoreError: If the backend fails.
        """
        if not self.exists(storage_key):
            raise ObjectNotFoundError(storage_key)
        try:
            return self.storage.get_modified_time(storage_key)
        except Exception as error:
            raise ObjectStoreError(storage_key) from error

    def iter_keys(self, prefix: str = '') -> Iterator[str]:
        """Walk every key below a prefix.

        Args:
            prefix: Directory-like prefix ('' walks everything).

        Yields:
            Storage keys.
        """
        directories, filenames = self.storage.listdir(prefix)
        for filename in filenames:
            yield posixpath.join(prefix, filename) if prefix else filename
        for directory in directories:
            yield from self.iter_keys(
                posixpath.join(prefix, directory) if prefix else directory,
            )
