"""Business logic for folder tree operations."""

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from django.db import transaction
from django.db.models import QuerySet

from server.apps.vault.exceptions import CycleError
from server.apps.vault.infrastructure.metadata import (
    validate_color,
    validate_name,
)
from server.apps.vault.infrastructure.object_store import ObjectStore
from server.apps.vault.logic.commands import FolderUpdate
from server.apps.vault.logic.file_operations import (
    PurgeReport,
    remove_file_record,
    resolve_folder,
)
from server.apps.vault.models import DEFAULT_FOLDER_COLOR, File, Folder

logger = logging.getLogger(__name__)


@dataclass
class FolderNode:
    """Folder with its active children and files."""

    folder: Folder
    children: list['FolderNode'] = field(default_factory=list)
    files: list[File] = field(default_factory=list)


@dataclass
class FolderTree:
    """Whole active tree of one user."""

    roots: list[FolderNode] = field(default_factory=list)
    root_files: list[File] = field(default_factory=list)


def folder_not_found(folder_id: int) -> Folder.DoesNotExist:
    """Build the single not-found error for missing and foreign folders."""
    return Folder.DoesNotExist(f'Folder {folder_id} not found')


def get_folder(folder_id: int) -> Folder:
    """Get folder by ID, active or trashed.

    No ownership check: callers compare ``user_id`` themselves and
    answer "not found" to anyone but the owner.

    Raises:
        Folder.DoesNotExist: If folder not found.
    """
    try:
        return Folder.all_objects.get(id=folder_id)
    except Folder.DoesNotExist:
        raise folder_not_found(folder_id) from None


def get_owned_folder(
    folder_id: int,
    owner_id: int,
    *,
    include_trashed: bool = True,
    for_update: bool = False,
) -> Folder:
    """Get folder by ID if owned by ``owner_id``.

    Args:
        folder_id: Folder ID.
        owner_id: Acting user ID.
        include_trashed: Whether trashed folders are found.
        for_update: Lock the row (call inside a transaction).

    Returns:
        Folder instance.

    Raises:
        Folder.DoesNotExist: If folder not found or owned by another user.
    """
    manager = Folder.all_objects if include_trashed else Folder.objects
    queryset = manager.select_for_update() if for_update else manager.all()
    try:
        return queryset.get(id=folder_id, user_id=owner_id)
    except Folder.DoesNotExist:
        raise folder_not_found(folder_id) from None


def iter_ancestors(folder: Folder) -> Iterator[Folder]:
    """Walk from the parent of a folder up to its root.

    Args:
        folder: Starting folder (not yielded).

    Yields:
        Parent, grandparent and so on.

    Raises:
        CycleError: If the stored parent chain loops.
    """
    seen = {folder.id}
    parent_id = folder.parent_id
    while parent_id is not None:
        if parent_id in seen:
            raise CycleError(folder.id, parent_id)
        seen.add(parent_id)
        parent = Folder.all_objects.get(id=parent_id)
        yield parent
        parent_id = parent.parent_id


def check_no_cycle(folder_id: int | None, new_parent: Folder) -> None:
    """Make sure ``new_parent`` is not the folder or its descendant.

    Args:
        folder_id: Folder being placed, None for a folder not yet saved.
        new_parent: Requested parent.

    Raises:
        CycleError: If the move would make the folder its own ancestor.
    """
    if new_parent.id == folder_id:
        raise CycleError(new_parent.id, new_parent.id)
    for ancestor in iter_ancestors(new_parent):
        if ancestor.id == folder_id:
            raise CycleError(folder_id, new_parent.id)


def collect_subtree(root: Folder, *, lock: bool = False) -> list[Folder]:
    """Collect a folder and all its descendants, active or trashed.

    Uses an explicit worklist, one query per tree level.

    Args:
        root: Subtree root.
        lock: Lock the rows (call inside a transaction).

    Returns:
        Folders in breadth-first order, root first.
    """
    subtree = [root]
    seen = {root.id}
    frontier = [root.id]
    while frontier:
        queryset = Folder.all_objects.filter(parent_id__in=frontier)
        if lock:
            queryset = queryset.select_for_update()
        children = [
            child for child in queryset.order_by('id')
            if child.id not in seen
        ]
        seen.update(child.id for child in children)
        subtree.extend(children)
        frontier = [child.id for child in children]
    return subtree


def delete_subtree(root: Folder, object_store: ObjectStore) -> PurgeReport:
    """Permanently delete a folder subtree with its files.

    Post-order: every folder is removed only after its children and
    its files are gone. Bytes are released before each file record is
    removed. Call inside a transaction.

    Args:
        root: Subtree root.
        object_store: Store holding the bytes.

    Returns:
        PurgeReport of removed records.
    """
    report = PurgeReport()
    for folder in reversed(collect_subtree(root, lock=True)):
        folder_files = File.all_objects.filter(
            folder_id=folder.id,
        ).order_by('id')
        for file_instance in folder_files:
            remove_file_record(file_instance, object_store, report)
        folder.delete()
        report.folders += 1
    return report


def create_folder(
    owner_id: int,
    name: str,
    parent_id: int | None = None,
    color: str | None = None,
) -> Folder:
    """Create a folder.

    Args:
        owner_id: Owner of the folder.
        name: Folder name.
        parent_id: Parent folder, None for root.
        color: Swatch color, default when omitted.

    Returns:
        Created Folder instance.

    Raises:
        ValidationError: If name or color is invalid.
        Folder.DoesNotExist: If parent not found, trashed or foreign.
        CycleError: If the parent chain is corrupted.
    """
    validate_name(name)
    if color is None:
        color = DEFAULT_FOLDER_COLOR
    validate_color(color)

    with transaction.atomic():
        parent = resolve_folder(owner_id, parent_id)
        if parent is not None:
            check_no_cycle(None, parent)
        folder = Folder.objects.create(
            user_id=owner_id,
            name=name,
            color=color,
            parent=parent,
        )

    logger.info(
        'Folder created: %s (ID: %d, parent: %s)',
        name,
        folder.id,
        parent_id,
    )
    return folder


def list_folders(
    owner_id: int,
    parent_id: int | None = None,
) -> QuerySet[Folder]:
    """List active folders directly inside a parent.

    Args:
        owner_id: Owner of folders.
        parent_id: Parent folder ID, None lists root folders.

    Returns:
        QuerySet of Folder objects ordered by ID.
    """
    logger.debug('Listing folders: user=%d parent=%s', owner_id, parent_id)
    return Folder.objects.filter(
        user_id=owner_id,
        parent_id=parent_id,
    ).order_by('id')


def update_folder(
    folder_id: int,
    owner_id: int,
    update: FolderUpdate | Mapping[str, Any],
) -> Folder:
    """Apply an update command to a folder.

    Reparenting re-runs the cycle check. Changing ``is_deleted`` goes
    through the cascading trash lifecycle.

    Args:
        folder_id: ID of folder to update.
        owner_id: Acting user ID.
        update: FolderUpdate or a patch mapping.

    Returns:
        Updated Folder instance.

    Raises:
        ValidationError: If the patch is invalid or re-dates an item
            already in trash.
        Folder.DoesNotExist: If folder or new parent not found.
        CycleError: If the new parent is inside the folder's subtree.
    """
    from server.apps.vault.logic.trash_operations import (  # noqa: WPS433
        move_folder_to_trash,
        restore_folder,
    )

    command = update if isinstance(update, FolderUpdate) else (
        FolderUpdate.from_patch(update)
    )
    changes = command.changes()
    changes.pop('is_deleted', None)
    deleted_at = changes.pop('deleted_at', None)

    with transaction.atomic():
        folder = get_owned_folder(folder_id, owner_id, for_update=True)
        command.check_trash_timestamp(folder.is_deleted)

        if 'parent_id' in changes:
            new_parent = resolve_folder(owner_id, changes.pop('parent_id'))
            if new_parent is not None:
                check_no_cycle(folder.id, new_parent)
            changes['parent'] = new_parent

        for field_name, field_value in changes.items():
            setattr(folder, field_name, field_value)

        if changes:
            folder.save(update_fields=list(changes))
            logger.info(
                'Folder updated: ID=%d fields=%s',
                folder_id,
                ', '.join(sorted(changes)),
            )

        if command.changes_trash_state:
            if command.is_deleted and not folder.is_deleted:
                folder = move_folder_to_trash(
                    folder_id,
                    owner_id,
                    deleted_at=deleted_at,
                )
            elif not command.is_deleted and folder.is_deleted:
                folder = restore_folder(folder_id, owner_id)

    return folder


def delete_folder(
    folder_id: int,
    owner_id: int,
    object_store: ObjectStore,
) -> bool:
    """Permanently delete a folder with its whole subtree.

    Args:
        folder_id: ID of folder to delete.
        owner_id: Acting user ID.
        object_store: Store holding the bytes of contained files.

    Returns:
        True if deleted, False if folder not found or not owned.
    """
    with transaction.atomic():
        try:
            folder = get_owned_folder(folder_id, owner_id, for_update=True)
        except Folder.DoesNotExist:
            logger.debug('Delete skipped, folder not found: ID=%d', folder_id)
            return False
        report = delete_subtree(folder, object_store)

    logger.info(
        'Folder deleted: ID=%d (%d folders, %d files, %d orphaned)',
        folder_id,
        report.folders,
        report.files,
        len(report.failed_keys),
    )
    return True


def get_folder_tree(owner_id: int) -> FolderTree:
    """Build the active folder and file tree of a user.

    Args:
        owner_id: Owner of the tree.

    Returns:
        FolderTree with nested nodes ordered by ID.
    """
    folders = list(Folder.objects.filter(user_id=owner_id).order_by('id'))
    files = File.objects.filter(user_id=owner_id).order_by('id')

    nodes = {folder.id: FolderNode(folder=folder) for folder in folders}
    tree = FolderTree()

    for file_instance in files:
        if file_instance.folder_id is None:
            tree.root_files.append(file_instance)
        elif file_instance.folder_id in nodes:
            nodes[file_instance.folder_id].files.append(file_instance)

    for folder in folders:
        node = nodes[folder.id]
        if folder.parent_id is None:
            tree.roots.append(node)
        elif folder.parent_id in nodes:
            nodes[folder.parent_id].children.append(node)

    return tree
