"""Database models for vault app."""

from typing import Final, final, override

from django.conf import settings
from django.db import models

from server.apps.vault.infrastructure.metadata import (
    COLOR_MAX_LENGTH,
    MIME_TYPE_MAX_LENGTH,
    NAME_MAX_LENGTH,
    STORAGE_KEY_MAX_LENGTH,
    get_file_extension,
    validate_color,
    validate_name,
)

DEFAULT_FOLDER_COLOR: Final = '#0A84FF'

_SHARED_BY_MAX_LENGTH: Final = 150


class ActiveManager(models.Manager):
    """Manager that hides trashed records.

    Trashed rows stay reachable through ``all_objects``.
    """

    @override
    def get_queryset(self) -> models.QuerySet:
        """Exclude soft-deleted records."""
        return super().get_queryset().filter(is_deleted=False)


def _trash_state_constraint(name: str) -> models.CheckConstraint:
    """deleted_at is set exactly when is_deleted is true."""
    return models.CheckConstraint(
        condition=(
            models.Q(is_deleted=True, deleted_at__isnull=False)
            | models.Q(is_deleted=False, deleted_at__isnull=True)
        ),
        name=name,
    )


@final
class Folder(models.Model):
    """Named container in a user's folder tree.

    Folders form a forest per user: ``parent`` is either null (root)
    or another folder of the same user. Children are protected, a
    folder can only be removed after its subtree is gone.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='vault_folders',
        db_index=True,
    )

    name = models.CharField(
        max_length=NAME_MAX_LENGTH,
        validators=[validate_name],
    )

    color = models.CharField(
        max_length=COLOR_MAX_LENGTH,
        default=DEFAULT_FOLDER_COLOR,
        validators=[validate_color],
        help_text='Hex color code for UI display (e.g., #0A84FF)',
    )

    parent = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        related_name='children',
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)

    # Trash state
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ActiveManager()
    all_objects = models.Manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        default_manager_name = 'all_objects'
        ordering = ['id']

        indexes = [
            # Optimize directory listing queries
            models.Index(
                fields=['user', 'parent'],
                name='vault_folder_user_parent_idx',
            ),
        ]

        constraints = [
            _trash_state_constraint('vault_folder_trash_state'),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}:{self.name}'


@final
class File(models.Model):
    """Metadata of a file whose bytes live in the object store.

    ``storage_key`` is the opaque key of the bytes. ``folder`` is null
    for files in the user's root.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='vault_files',
        db_index=True,
    )

    folder = models.ForeignKey(
        Folder,
        on_delete=models.PROTECT,
        related_name='files',
        null=True,
        blank=True,
    )

    name = models.CharField(
        max_length=NAME_MAX_LENGTH,
        validators=[validate_name],
    )

    mime_type = models.CharField(max_length=MIME_TYPE_MAX_LENGTH)

    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    storage_key = models.CharField(
        max_length=STORAGE_KEY_MAX_LENGTH,
        unique=True,
        help_text='Object store key: {user_id}/{uuid}.ext',
    )

    # Sharing is a display flag only
    is_shared = models.BooleanField(default=False)
    shared_by = models.CharField(
        max_length=_SHARED_BY_MAX_LENGTH,
        null=True,
        blank=True,
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Trash state
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ActiveManager()
    all_objects = models.Manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        default_manager_name = 'all_objects'
        ordering = ['id']

        indexes = [
            # Optimize directory listing queries
            models.Index(
                fields=['user', 'folder'],
                name='vault_file_user_folder_idx',
            ),
            # Optimize recent files queries
            models.Index(
                fields=['user', '-updated_at'],
                name='vault_file_user_recent_idx',
            ),
        ]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(size_bytes__gte=0),
                name='vault_file_size_non_negative',
            ),
            _trash_state_constraint('vault_file_trash_state'),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}:{self.name}'

    def get_extension(self) -> str:
        """Extract file extension.

        Example: 'report.PDF' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        return get_file_extension(self.name)
