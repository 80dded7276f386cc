"""Exceptions for vault app.

Missing or foreign records are reported with the model's own
``DoesNotExist`` (a subclass of ``ObjectDoesNotExist``), malformed
input with Django's ``ValidationError``.
"""

from django.core.exceptions import ValidationError


class CycleError(Exception):
    """Raised when reparenting would make a folder its own ancestor."""

    def __init__(self, folder_id: int, parent_id: int) -> None:
        """Initialize CycleError.

        Args:
            folder_id: Folder being moved.
            parent_id: Requested new parent.
        """
        self.folder_id = folder_id
        self.parent_id = parent_id
        super().__init__(
            f'Cannot move folder {folder_id} under {parent_id}: '
            f'{parent_id} is the folder itself or one of its descendants',
        )


class ObjectStoreError(Exception):
    """Raised when bytes cannot be stored, read or released."""

    def __init__(self, storage_key: str, message: str = '') -> None:
        """Initialize ObjectStoreError.

        Args:
            storage_key: Key of the affected object.
            message: Optional detail.
        """
        self.storage_key = storage_key
        super().__init__(message or f'Object store failure: {storage_key}')


class ObjectNotFoundError(ObjectStoreError):
    """Raised when the object store holds no bytes for a key."""

    def __init__(self, storage_key: str) -> None:
        """Initialize ObjectNotFoundError.

        Args:
            storage_key: Key that was looked up.
        """
        super().__init__(storage_key, f'Object not found: {storage_key}')


class QuotaExceededError(ValidationError):
    """Raised when a new file would exceed user's storage quota."""

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes

        available = max(0, quota_bytes - used_bytes)
        super().__init__(
            f'Quota exceeded: need {required_bytes} bytes, '
            f'only {available} bytes available '
            f'(quota: {quota_bytes}, used: {used_bytes})',
            code='quota_exceeded',
        )
