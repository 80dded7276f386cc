"""Business logic for file operations."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet

from server.apps.vault.exceptions import ObjectStoreError
from server.apps.vault.infrastructure.metadata import (
    build_storage_key,
    detect_mime_type,
    validate_name,
    validate_size,
    validate_storage_key,
)
from server.apps.vault.infrastructure.object_store import ObjectStore
from server.apps.vault.logic.commands import FileUpdate
from server.apps.vault.logic.stats_operations import (
    check_quota,
    check_upload_policy,
    lock_owner,
)
from server.apps.vault.models import File, Folder

logger = logging.getLogger(__name__)


@dataclass
class PurgeReport:
    """Outcome of a permanent deletion.

    ``failed_keys`` lists storage keys whose bytes could not be
    released; their metadata is gone and the bytes are orphans.
    """

    folders: int = 0
    files: int = 0
    failed_keys: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of records removed."""
        return self.folders + self.files

    def merge(self, other: 'PurgeReport') -> None:
        """Add counts of another report."""
        self.folders += other.folders
        self.files += other.files
        self.failed_keys.extend(other.failed_keys)


def file_not_found(file_id: int) -> File.DoesNotExist:
    """Build the single not-found error for missing and foreign files."""
    return File.DoesNotExist(f'File {file_id} not found')


def get_file(file_id: int) -> File:
    """Get file by ID, active or trashed.

    No ownership check: callers compare ``user_id`` themselves and
    answer "not found" to anyone but the owner.

    Raises:
        File.DoesNotExist: If file not found.
    """
    try:
        return File.all_objects.get(id=file_id)
    except File.DoesNotExist:
        raise file_not_found(file_id) from None


def get_owned_file(
    file_id: int,
    owner_id: int,
    *,
    include_trashed: bool = True,
    for_update: bool = False,
) -> File:
    """Get file by ID if owned by ``owner_id``.

    Args:
        file_id: File ID.
        owner_id: Acting user ID.
        include_trashed: Whether trashed files are found.
        for_update: Lock the row (call inside a transaction).

    Returns:
        File instance.

    Raises:
        File.DoesNotExist: If file not found or owned by another user.
    """
    manager = File.all_objects if include_trashed else File.objects
    queryset = manager.select_for_update() if for_update else manager.all()
    try:
        return queryset.get(id=file_id, user_id=owner_id)
    except File.DoesNotExist:
        raise file_not_found(file_id) from None


def resolve_folder(owner_id: int, folder_id: int | None) -> Folder | None:
    """Resolve a target folder for placing an item.

    Only active folders of the owner can receive new children.

    Args:
        owner_id: Acting user ID.
        folder_id: Target folder ID, None for root.

    Returns:
        Folder instance or None for root.

    Raises:
        Folder.DoesNotExist: If folder not found, trashed or foreign.
    """
    if folder_id is None:
        return None
    try:
        return Folder.objects.get(id=folder_id, user_id=owner_id)
    except Folder.DoesNotExist:
        raise Folder.DoesNotExist(f'Folder {folder_id} not found') from None


def create_file(  # noqa: WPS211
    owner_id: int,
    name: str,
    mime_type: str,
    size_bytes: int,
    storage_key: str,
    folder_id: int | None = None,
    *,
    is_shared: bool = False,
    shared_by: str | None = None,
) -> File:
    """Create file record for bytes already held by the object store.

    Args:
        owner_id: Owner of the file.
        name: Display filename.
        mime_type: MIME type string.
        size_bytes: Size of the bytes.
        storage_key: Object store key of the bytes.
        folder_id: Target folder, None for root.
        is_shared: Sharing flag.
        shared_by: Display name of the sharer.

    Returns:
        Created File instance.

    Raises:
        ValidationError: If name, size, key or upload policy is invalid.
        QuotaExceededError: If the file does not fit into the quota.
        Folder.DoesNotExist: If folder not found or not owned.
    """
    validate_name(name)
    validate_size(size_bytes)
    validate_storage_key(owner_id, storage_key)
    check_upload_policy(size_bytes, mime_type)

    with transaction.atomic():
        folder = resolve_folder(owner_id, folder_id)
        lock_owner(owner_id)
        check_quota(owner_id, size_bytes)
        file_instance = File.objects.create(
            user_id=owner_id,
            folder=folder,
            name=name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            storage_key=storage_key,
            is_shared=is_shared,
            shared_by=shared_by,
        )

    logger.info(
        'File record created: %s (ID: %d, size: %d)',
        storage_key,
        file_instance.id,
        size_bytes,
    )
    return file_instance


def upload_file(
    owner_id: int,
    name: str,
    content: bytes,
    object_store: ObjectStore,
    folder_id: int | None = None,
) -> File:
    """Store bytes and create the file record.

    Transaction safety: store bytes first, then create the record.
    If the record cannot be created, the stored bytes are deleted
    again (rollback).

    Args:
        owner_id: Owner of the file.
        name: Original filename.
        content: Raw bytes.
        object_store: Where the bytes go.
        folder_id: Target folder, None for root.

    Returns:
        Created File instance.
    """
    validate_name(name)
    mime_type = detect_mime_type(name)
    check_upload_policy(len(content), mime_type)

    storage_key = object_store.put(content, build_storage_key(owner_id, name))

    try:
        return create_file(
            owner_id,
            name,
            mime_type,
            len(content),
            storage_key,
            folder_id,
        )
    except Exception:
        logger.exception(
            'Creating file record failed, rolling back upload: %s',
            storage_key,
        )
        object_store.discard(storage_key)
        raise


def read_file_content(
    file_id: int,
    owner_id: int,
    object_store: ObjectStore,
) -> bytes:
    """Read the bytes of an active file.

    Raises:
        File.DoesNotExist: If file not found, trashed or foreign.
        ObjectNotFoundError: If the bytes are missing from the store.
    """
    file_instance = get_owned_file(file_id, owner_id, include_trashed=False)
    return object_store.get(file_instance.storage_key)


def list_files_by_folder(
    owner_id: int,
    folder_id: int | None = None,
) -> QuerySet[File]:
    """List active files directly inside a folder.

    Args:
        owner_id: Owner of files.
        folder_id: Folder ID, None lists root files.

    Returns:
        QuerySet of File objects ordered by ID.
    """
    logger.debug('Listing files: user=%d folder=%s', owner_id, folder_id)
    return File.objects.filter(
        user_id=owner_id,
        folder_id=folder_id,
    ).order_by('id')


def list_recent_files(owner_id: int, limit: int | None = None) -> list[File]:
    """List most recently updated active files.

    Args:
        owner_id: Owner of files.
        limit: Maximum number of files (``VAULT_RECENT_FILES_LIMIT``
            when omitted).

    Returns:
        Files ordered by updated_at desc, ties by ID desc.
    """
    if limit is None:
        limit = settings.VAULT_RECENT_FILES_LIMIT
    if limit <= 0:
        return []
    return list(
        File.objects.filter(user_id=owner_id).order_by(
            '-updated_at',
            '-id',
        )[:limit],
    )


def list_shared_files(owner_id: int) -> QuerySet[File]:
    """List active files the owner marked as shared."""
    return File.objects.filter(
        user_id=owner_id,
        is_shared=True,
    ).order_by('id')


def update_file(
    file_id: int,
    owner_id: int,
    update: FileUpdate | Mapping[str, Any],
) -> File:
    """Apply an update command to a file.

    Changing ``is_deleted`` goes through the trash lifecycle, so the
    same rules apply as for ``move_file_to_trash`` / ``restore_file``.

    Args:
        file_id: ID of file to update.
        owner_id: Acting user ID.
        update: FileUpdate or a patch mapping.

    Returns:
        Updated File instance.

    Raises:
        ValidationError: If the patch is invalid or re-dates an item
            already in trash.
        File.DoesNotExist: If file not found or not owned.
        Folder.DoesNotExist: If target folder not found or not owned.
    """
    from server.apps.vault.logic.trash_operations import (  # noqa: WPS433
        move_file_to_trash,
        restore_file,
    )

    command = update if isinstance(update, FileUpdate) else (
        FileUpdate.from_patch(update)
    )
    changes = command.changes()
    changes.pop('is_deleted', None)
    deleted_at = changes.pop('deleted_at', None)

    with transaction.atomic():
        file_instance = get_owned_file(file_id, owner_id, for_update=True)
        command.check_trash_timestamp(file_instance.is_deleted)

        if 'folder_id' in changes:
            file_instance.folder = resolve_folder(
                owner_id,
                changes.pop('folder_id'),
            )
            changes['folder'] = file_instance.folder

        for field_name, field_value in changes.items():
            setattr(file_instance, field_name, field_value)

        if changes:
            file_instance.save(update_fields=[*changes, 'updated_at'])
            logger.info(
                'File updated: ID=%d fields=%s',
                file_id,
                ', '.join(sorted(changes)),
            )

        if command.changes_trash_state:
            if command.is_deleted and not file_instance.is_deleted:
                file_instance = move_file_to_trash(
                    file_id,
                    owner_id,
                    deleted_at=deleted_at,
                )
            elif not command.is_deleted and file_instance.is_deleted:
                file_instance = restore_file(file_id, owner_id)

    return file_instance


def release_bytes(
    object_store: ObjectStore,
    file_instance: File,
    report: PurgeReport,
) -> None:
    """Release bytes of a file that is about to be removed.

    Best effort: a failure is logged as a warning and recorded in the
    report, metadata removal proceeds regardless.
    """
    try:
        object_store.delete(file_instance.storage_key)
    except ObjectStoreError:
        logger.warning(
            'Failed to release bytes (orphaned): %s (file ID: %d)',
            file_instance.storage_key,
            file_instance.id,
            exc_info=True,
        )
        report.failed_keys.append(file_instance.storage_key)


def remove_file_record(
    file_instance: File,
    object_store: ObjectStore,
    report: PurgeReport,
) -> None:
    """Release bytes, then delete the metadata record."""
    release_bytes(object_store, file_instance, report)
    file_instance.delete()
    report.files += 1


def delete_file(
    file_id: int,
    owner_id: int,
    object_store: ObjectStore,
) -> bool:
    """Permanently delete a file, active or trashed.

    Idempotent: a missing or foreign file returns False.

    Args:
        file_id: ID of file to delete.
        owner_id: Acting user ID.
        object_store: Store holding the bytes.

    Returns:
        True if the file was deleted.
    """
    report = PurgeReport()
    with transaction.atomic():
        try:
            file_instance = get_owned_file(file_id, owner_id, for_update=True)
        except File.DoesNotExist:
            logger.debug('Delete skipped, file not found: ID=%d', file_id)
            return False
        remove_file_record(file_instance, object_store, report)

    logger.info('File deleted: ID=%d', file_id)
    return True
