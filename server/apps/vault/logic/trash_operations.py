"""Business logic for trash (soft delete) operations.

Lifecycle of every folder and file::

    Active --move_*_to_trash--> Trashed --purge_* / empty_trash--> Purged
           <------restore_*----

Folder transitions cascade over the whole subtree inside one
transaction. Trashed files still count toward quota, only purging
frees space.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from itertools import chain

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from server.apps.vault.infrastructure.object_store import ObjectStore
from server.apps.vault.logic.file_operations import (
    PurgeReport,
    file_not_found,
    get_owned_file,
    remove_file_record,
)
from server.apps.vault.logic.folder_operations import (
    collect_subtree,
    delete_subtree,
    folder_not_found,
    get_owned_folder,
    iter_ancestors,
)
from server.apps.vault.models import File, Folder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrashListing:
    """Trashed folders and files of one user."""

    folders: list[Folder]
    files: list[File]


def _cascade_trash_state(
    subtree_ids: list[int],
    deleted_at: datetime | None,
) -> tuple[int, int]:
    """Set trash state of folders and their files in bulk.

    Args:
        subtree_ids: IDs of the affected folders.
        deleted_at: Trash timestamp, None restores.

    Returns:
        Numbers of updated folders and files.
    """
    is_deleted = deleted_at is not None
    folders_count = Folder.all_objects.filter(id__in=subtree_ids).update(
        is_deleted=is_deleted,
        deleted_at=deleted_at,
    )
    files_count = File.all_objects.filter(
        folder_id__in=subtree_ids,
    ).update(
        is_deleted=is_deleted,
        deleted_at=deleted_at,
        updated_at=timezone.now(),
    )
    return folders_count, files_count


def _restore_folder_chain(folder: Folder | None) -> int:
    """Restore a folder and its trashed ancestors, not their contents.

    An active item never sits below a trashed folder, so restoring
    an item re-activates the path leading to it.

    Args:
        folder: Innermost folder of the chain, None for root.

    Returns:
        Number of restored folders.
    """
    if folder is None:
        return 0
    chain_ids = [
        ancestor.id
        for ancestor in chain([folder], iter_ancestors(folder))
        if ancestor.is_deleted
    ]
    if not chain_ids:
        return 0

    restored = Folder.all_objects.filter(id__in=chain_ids).update(
        is_deleted=False,
        deleted_at=None,
    )
    logger.info('Restored parent folders: %s', chain_ids)
    return restored


def move_folder_to_trash(
    folder_id: int,
    owner_id: int,
    *,
    deleted_at: datetime | None = None,
) -> Folder:
    """Move folder with its whole subtree to trash.

    Every descendant folder and file gets the same ``deleted_at``.
    The nesting is preserved.

    Args:
        folder_id: ID of folder to trash.
        owner_id: Acting user ID.
        deleted_at: Trash timestamp, now when omitted.

    Returns:
        Updated Folder instance.

    Raises:
        Folder.DoesNotExist: If folder not found, not owned or already
            in trash.
    """
    deleted_at = deleted_at or timezone.now()

    with transaction.atomic():
        folder = get_owned_folder(
            folder_id,
            owner_id,
            include_trashed=False,
            for_update=True,
        )
        subtree_ids = [
            subfolder.id for subfolder in collect_subtree(folder, lock=True)
        ]
        folders_count, files_count = _cascade_trash_state(
            subtree_ids,
            deleted_at,
        )

    logger.info(
        'Folder moved to trash: ID=%d (%d folders, %d files)',
        folder_id,
        folders_count,
        files_count,
    )
    folder.refresh_from_db()
    return folder


def move_file_to_trash(
    file_id: int,
    owner_id: int,
    *,
    deleted_at: datetime | None = None,
) -> File:
    """Move file to trash (soft delete).

    Quota is NOT affected - trash files count toward quota.

    Args:
        file_id: ID of file to trash.
        owner_id: Acting user ID.
        deleted_at: Trash timestamp, now when omitted.

    Returns:
        Updated File instance.

    Raises:
        File.DoesNotExist: If file not found, not owned or already
            in trash.
    """
    with transaction.atomic():
        file_instance = get_owned_file(
            file_id,
            owner_id,
            include_trashed=False,
            for_update=True,
        )
        file_instance.is_deleted = True
        file_instance.deleted_at = deleted_at or timezone.now()
        file_instance.save(update_fields=[
            'is_deleted',
            'deleted_at',
            'updated_at',
        ])

    logger.info('File moved to trash: %s (ID: %d)', file_instance.name, file_id)
    return file_instance


def restore_folder(folder_id: int, owner_id: int) -> Folder:
    """Restore folder with its whole subtree from trash.

    Trashed ancestors of the folder are restored as well.

    Args:
        folder_id: ID of folder to restore.
        owner_id: Acting user ID.

    Returns:
        Updated Folder instance.

    Raises:
        Folder.DoesNotExist: If folder not found, not owned or not
            in trash.
    """
    with transaction.atomic():
        folder = get_owned_folder(folder_id, owner_id, for_update=True)
        if not folder.is_deleted:
            raise folder_not_found(folder_id)

        subtree_ids = [
            subfolder.id for subfolder in collect_subtree(folder, lock=True)
        ]
        folders_count, files_count = _cascade_trash_state(subtree_ids, None)
        _restore_folder_chain(folder.parent)

    logger.info(
        'Folder restored: ID=%d (%d folders, %d files)',
        folder_id,
        folders_count,
        files_count,
    )
    folder.refresh_from_db()
    return folder


def restore_file(file_id: int, owner_id: int) -> File:
    """Restore file from trash.

    If its folder is still in trash, that folder and its trashed
    ancestors are restored too (without their other contents).

    Args:
        file_id: ID of file to restore.
        owner_id: Acting user ID.

    Returns:
        Updated File instance.

    Raises:
        File.DoesNotExist: If file not found, not owned or not in trash.
    """
    with transaction.atomic():
        file_instance = get_owned_file(file_id, owner_id, for_update=True)
        if not file_instance.is_deleted:
            raise file_not_found(file_id)

        _restore_folder_chain(file_instance.folder)

        file_instance.is_deleted = False
        file_instance.deleted_at = None
        file_instance.save(update_fields=[
            'is_deleted',
            'deleted_at',
            'updated_at',
        ])

    logger.info('File restored: %s (ID: %d)', file_instance.name, file_id)
    return file_instance


def purge_folder(
    folder_id: int,
    owner_id: int,
    object_store: ObjectStore,
) -> PurgeReport:
    """Permanently delete a trashed folder with its whole subtree.

    Args:
        folder_id: ID of trashed folder.
        owner_id: Acting user ID.
        object_store: Store holding the bytes.

    Returns:
        PurgeReport of removed records.

    Raises:
        Folder.DoesNotExist: If folder not found, not owned or not
            in trash.
    """
    with transaction.atomic():
        folder = get_owned_folder(folder_id, owner_id, for_update=True)
        if not folder.is_deleted:
            raise folder_not_found(folder_id)
        report = delete_subtree(folder, object_store)

    logger.info(
        'Folder purged: ID=%d (%d folders, %d files)',
        folder_id,
        report.folders,
        report.files,
    )
    return report


def purge_file(
    file_id: int,
    owner_id: int,
    object_store: ObjectStore,
) -> PurgeReport:
    """Permanently delete a trashed file and release its bytes.

    Args:
        file_id: ID of trashed file.
        owner_id: Acting user ID.
        object_store: Store holding the bytes.

    Returns:
        PurgeReport of removed records.

    Raises:
        File.DoesNotExist: If file not found, not owned or not in trash.
    """
    report = PurgeReport()
    with transaction.atomic():
        file_instance = get_owned_file(file_id, owner_id, for_update=True)
        if not file_instance.is_deleted:
            raise file_not_found(file_id)
        file_size = file_instance.size_bytes
        remove_file_record(file_instance, object_store, report)

    logger.info(
        'File permanently deleted: ID=%d (size: %d)',
        file_id,
        file_size,
    )
    return report


def list_trashed_folders(owner_id: int) -> QuerySet[Folder]:
    """List all folders in user's trash, newest first."""
    return Folder.all_objects.filter(
        user_id=owner_id,
        is_deleted=True,
    ).order_by('-deleted_at', 'id')


def list_trashed_files(owner_id: int) -> QuerySet[File]:
    """List all files in user's trash, newest first."""
    return File.all_objects.filter(
        user_id=owner_id,
        is_deleted=True,
    ).order_by('-deleted_at', 'id')


def list_trash(owner_id: int) -> TrashListing:
    """List trashed folders and files of a user."""
    return TrashListing(
        folders=list(list_trashed_folders(owner_id)),
        files=list(list_trashed_files(owner_id)),
    )


def empty_trash(owner_id: int, object_store: ObjectStore) -> PurgeReport:
    """Permanently delete everything in user's trash.

    Trashed folders are purged with their whole subtree, then the
    remaining trashed files one by one.

    Args:
        owner_id: User whose trash to empty.
        object_store: Store holding the bytes.

    Returns:
        PurgeReport of removed records.
    """
    report = PurgeReport()

    with transaction.atomic():
        trashed_folders = list(
            Folder.all_objects.select_for_update().filter(
                user_id=owner_id,
                is_deleted=True,
            ).order_by('id'),
        )
        trashed_ids = {folder.id for folder in trashed_folders}
        for folder in trashed_folders:
            if folder.parent_id not in trashed_ids:
                report.merge(delete_subtree(folder, object_store))

        trashed_files = File.all_objects.select_for_update().filter(
            user_id=owner_id,
            is_deleted=True,
        ).order_by('id')
        for file_instance in trashed_files:
            remove_file_record(file_instance, object_store, report)

    logger.info(
        'Trash emptied for user %d: %d folders, %d files deleted',
        owner_id,
        report.folders,
        report.files,
    )
    return report


def list_expired_trash(
    cutoff: datetime,
    limit: int | None = None,
) -> list[Folder | File]:
    """List trash roots of all users trashed before ``cutoff``.

    A trash root is a trashed item whose folder is not trashed
    itself; purging the roots purges everything below them.

    Args:
        cutoff: Items with ``deleted_at`` up to this moment qualify.
        limit: Maximum number of items.

    Returns:
        Folders and files, oldest first.
    """
    folders = Folder.all_objects.filter(
        is_deleted=True,
        deleted_at__lte=cutoff,
    ).exclude(parent__is_deleted=True).order_by('deleted_at', 'id')
    files = File.all_objects.filter(
        is_deleted=True,
        deleted_at__lte=cutoff,
    ).exclude(folder__is_deleted=True).order_by('deleted_at', 'id')

    if limit is not None:
        folders = folders[:limit]
        files = files[:limit]

    expired: list[Folder | File] = sorted(
        chain(folders, files),
        key=lambda item: item.deleted_at,
    )
    return expired[:limit] if limit is not None else expired


def purge_trash_item(
    item: Folder | File,
    object_store: ObjectStore,
) -> PurgeReport:
    """Purge a trashed folder or file on behalf of its owner."""
    if isinstance(item, Folder):
        return purge_folder(item.id, item.user_id, object_store)
    return purge_file(item.id, item.user_id, object_store)
