"""S3-compatible storage backend holding vault file bytes."""

import logging
from typing import Any, final, override

from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


@final
class FileStorage(S3Storage):
    """S3 bucket addressed by vault storage keys.

    Keys are never overwritten (``file_overwrite=False`` in settings),
    a taken key gets a random suffix. Every write and delete is
    logged; backend failures are logged and re-raised unchanged so
    ``ObjectStore`` can wrap them.
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Upload bytes under ``name`` or a free variant of it.

        Args:
            name: Suggested storage key.
            content: File-like object with the bytes.
            max_length: Optional maximum key length.

        Returns:
            Storage key actually written.
        """
        size = getattr(content, 'size', None)
        try:
            saved_key = super().save(name, content, max_length)
        except Exception:
            logger.exception('Upload to bucket failed: %s', name)
            raise
        logger.info('Stored object: %s (%s bytes)', saved_key, size)
        return saved_key

    @override
    def delete(self, name: str) -> None:
        """Remove the object under a storage key.

        S3 treats deleting an absent key as success.

        Args:
            name: Storage key.
        """
        try:
            super().delete(name)
        except Exception:
            logger.exception('Delete from bucket failed: %s', name)
            raise
        logger.info('Removed object: %s', name)

    @override
    def listdir(self, path: str) -> tuple[list[str], list[str]]:
        """List prefixes and keys directly below ``path``."""
        directories, keys = super().listdir(path)
        logger.debug(
            'Listed %r: %d prefixes, %d keys',
            path,
            len(directories),
            len(keys),
        )
        return directories, keys
