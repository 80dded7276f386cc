"""Business logic for storage statistics and quota checks."""

import logging
from dataclasses import dataclass
from typing import Final, final

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db.models import Sum

from server.apps.vault.exceptions import QuotaExceededError
from server.apps.vault.models import File

logger = logging.getLogger(__name__)

_PERCENT: Final = 100


@final
@dataclass(frozen=True)
class StorageStats:
    """Storage usage of one user.

    ``percent_used`` is the raw ratio and exceeds 100 when the user
    is over quota, ``display_percent`` is clamped for display.
    """

    used_space: int
    total_space: int
    percent_used: float

    @property
    def display_percent(self) -> float:
        """Usage percentage clamped to [0, 100]."""
        return min(max(self.percent_used, 0.0), float(_PERCENT))

    @property
    def available_space(self) -> int:
        """Free bytes (never negative)."""
        return max(0, self.total_space - self.used_space)


def calculate_used_space(owner_id: int) -> int:
    """Sum sizes of all files of a user.

    Includes files in trash since they still count against quota.
    Purged files have no record left and drop out automatically.

    Args:
        owner_id: User to sum usage for.

    Returns:
        Used bytes.
    """
    return File.all_objects.filter(user_id=owner_id).aggregate(
        total=Sum('size_bytes'),
    )['total'] or 0


def get_storage_stats(owner_id: int) -> StorageStats:
    """Compute storage statistics of a user.

    Computed fresh on every call, nothing is cached.

    Args:
        owner_id: User to report on.

    Returns:
        StorageStats for the user.
    """
    used_space = calculate_used_space(owner_id)
    total_space = settings.VAULT_QUOTA_BYTES
    if total_space > 0:
        percent_used = used_space / total_space * _PERCENT
    else:
        percent_used = 0.0 if used_space == 0 else float(_PERCENT)

    logger.debug(
        'Storage stats for user %d: %d/%d bytes',
        owner_id,
        used_space,
        total_space,
    )
    return StorageStats(
        used_space=used_space,
        total_space=total_space,
        percent_used=percent_used,
    )


def check_quota(owner_id: int, size_bytes: int) -> None:
    """Check if user has enough quota for a new file.

    Args:
        owner_id: User to check quota for.
        size_bytes: Size of the new file in bytes.

    Raises:
        QuotaExceededError: If the file would exceed quota.
    """
    quota_bytes = settings.VAULT_QUOTA_BYTES
    used_bytes = calculate_used_space(owner_id)

    if used_bytes + size_bytes > quota_bytes:
        logger.warning(
            'Quota exceeded for user %d: need %d, have %d available',
            owner_id,
            size_bytes,
            max(0, quota_bytes - used_bytes),
        )
        raise QuotaExceededError(
            quota_bytes=quota_bytes,
            used_bytes=used_bytes,
            required_bytes=size_bytes,
        )


def check_upload_policy(size_bytes: int, mime_type: str) -> None:
    """Check a new file against the configured upload policy.

    Args:
        size_bytes: Size of the new file in bytes.
        mime_type: MIME type of the new file.

    Raises:
        ValidationError: If the file is too large or its type is not
            allowed.
    """
    max_size = settings.VAULT_MAX_FILE_SIZE
    if max_size and size_bytes > max_size:
        raise ValidationError(
            f'File size {size_bytes} exceeds the maximum of {max_size} bytes',
            code='file_too_large',
        )

    allowed_types = settings.VAULT_ALLOWED_MIME_TYPES
    if allowed_types and mime_type not in allowed_types:
        raise ValidationError(
            f'Unsupported file type: {mime_type}. '
            f'Allowed types are: {", ".join(allowed_types)}',
            code='unsupported_type',
        )


def lock_owner(owner_id: int) -> None:
    """Lock the owner's user row until the transaction ends.

    Concurrent creates of one user queue up here, so each quota check
    sees the sizes committed before it. Call inside a transaction.

    Args:
        owner_id: User whose quota is about to be checked.
    """
    list(
        get_user_model().objects.select_for_update().filter(
            id=owner_id,
        ).values_list('id', flat=True),
    )
