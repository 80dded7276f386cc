"""Tests for folder operations business logic."""

from datetime import timedelta

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from server.apps.vault.exceptions import CycleError
from server.apps.vault.logic.folder_operations import (
    collect_subtree,
    create_folder,
    delete_folder,
    get_folder,
    get_folder_tree,
    get_owned_folder,
    list_folders,
    update_folder,
)
from server.apps.vault.logic.trash_operations import move_folder_to_trash
from server.apps.vault.models import DEFAULT_FOLDER_COLOR, File, Folder


@pytest.mark.django_db
class TestCreateFolder:
    """Tests for create_folder function."""

    def test_create_root_folder(self, user):
        """Test folder without parent lands in root with default color."""
        folder = create_folder(user.id, 'Documents')

        assert folder.parent_id is None
        assert folder.user_id == user.id
        assert folder.color == DEFAULT_FOLDER_COLOR
        assert folder.is_deleted is False

    def test_create_nested_folder(self, user):
        """Test folder inside another folder."""
        parent = create_folder(user.id, 'Documents')

        child = create_folder(user.id, 'Invoices', parent.id, color='#FF0000')

        assert child.parent_id == parent.id
        assert child.color == '#FF0000'

    def test_invalid_name_or_color(self, user):
        """Test validation errors are raised before anything is written."""
        with pytest.raises(ValidationError):
            create_folder(user.id, '')
        with pytest.raises(ValidationError):
            create_folder(user.id, 'Docs', color='blue')

        assert not Folder.all_objects.exists()

    def test_explicit_empty_color(self, user):
        """Test an empty color is refused instead of replaced by the default."""
        with pytest.raises(ValidationError):
            create_folder(user.id, 'Docs', color='')

        assert not Folder.all_objects.exists()

    def test_parent_of_other_user(self, user, other_user):
        """Test foreign parent is reported as not found."""
        foreign = create_folder(other_user.id, 'Theirs')

        with pytest.raises(Folder.DoesNotExist):
            create_folder(user.id, 'Mine', foreign.id)

    def test_trashed_parent(self, user):
        """Test trashed folders cannot receive children."""
        parent = create_folder(user.id, 'Old')
        move_folder_to_trash(parent.id, user.id)

        with pytest.raises(Folder.DoesNotExist):
            create_folder(user.id, 'New', parent.id)


@pytest.mark.django_db
class TestGetFolder:
    """Tests for folder lookups."""

    def test_get_folder_missing(self):
        """Test missing folder raises DoesNotExist."""
        with pytest.raises(Folder.DoesNotExist, match='Folder 999 not found'):
            get_folder(999)

    def test_owned_folder_hides_foreign(self, user, other_user):
        """Test foreign and missing folders look the same."""
        foreign = create_folder(other_user.id, 'Theirs')

        with pytest.raises(Folder.DoesNotExist) as foreign_error:
            get_owned_folder(foreign.id, user.id)
        with pytest.raises(Folder.DoesNotExist) as missing_error:
            get_owned_folder(foreign.id + 100, user.id)

        assert 'not found' in str(foreign_error.value)
        assert 'not found' in str(missing_error.value)


@pytest.mark.django_db
def test_list_folders(user, other_user):
    """Test listing is scoped to owner, parent and active folders."""
    root_a = create_folder(user.id, 'A')
    root_b = create_folder(user.id, 'B')
    child = create_folder(user.id, 'C', root_a.id)
    create_folder(other_user.id, 'Theirs')
    trashed = create_folder(user.id, 'Trashed')
    move_folder_to_trash(trashed.id, user.id)

    assert list(list_folders(user.id)) == [root_a, root_b]
    assert list(list_folders(user.id, root_a.id)) == [child]


@pytest.mark.django_db
class TestUpdateFolder:
    """Tests for update_folder function."""

    def test_rename_and_recolor(self, user):
        """Test plain field updates."""
        folder = create_folder(user.id, 'Old')

        updated = update_folder(
            folder.id,
            user.id,
            {'name': 'New', 'color': '#00FF00'},
        )

        assert updated.name == 'New'
        assert updated.color == '#00FF00'

    def test_move_to_other_parent_and_back_to_root(self, user):
        """Test reparenting."""
        first = create_folder(user.id, 'First')
        second = create_folder(user.id, 'Second')

        moved = update_folder(second.id, user.id, {'parent_id': first.id})
        assert moved.parent_id == first.id

        moved = update_folder(second.id, user.id, {'parent_id': None})
        assert moved.parent_id is None

    def test_move_into_itself(self, user):
        """Test a folder cannot become its own parent."""
        folder = create_folder(user.id, 'Loop')

        with pytest.raises(CycleError):
            update_folder(folder.id, user.id, {'parent_id': folder.id})

    def test_move_into_descendant(self, user):
        """Test a folder cannot move below its own subtree."""
        top = create_folder(user.id, 'Top')
        middle = create_folder(user.id, 'Middle', top.id)
        bottom = create_folder(user.id, 'Bottom', middle.id)

        with pytest.raises(CycleError) as exc_info:
            update_folder(top.id, user.id, {'parent_id': bottom.id})

        assert exc_info.value.folder_id == top.id
        top.refresh_from_db()
        assert top.parent_id is None

    def test_update_foreign_folder(self, user, other_user):
        """Test foreign folder cannot be changed."""
        foreign = create_folder(other_user.id, 'Theirs')

        with pytest.raises(Folder.DoesNotExist):
            update_folder(foreign.id, user.id, {'name': 'Mine now'})

    def test_owner_cannot_change(self, user, other_user):
        """Test ownership is not patchable."""
        folder = create_folder(user.id, 'Mine')

        with pytest.raises(ValidationError):
            update_folder(folder.id, user.id, {'user_id': other_user.id})

    def test_trash_through_update(self, user):
        """Test is_deleted goes through the cascading trash."""
        parent = create_folder(user.id, 'Parent')
        child = create_folder(user.id, 'Child', parent.id)

        updated = update_folder(parent.id, user.id, {'is_deleted': True})

        child.refresh_from_db()
        assert updated.is_deleted is True
        assert child.is_deleted is True
        assert child.deleted_at == updated.deleted_at

        restored = update_folder(parent.id, user.id, {'is_deleted': False})

        child.refresh_from_db()
        assert restored.is_deleted is False
        assert child.is_deleted is False

    def test_redating_trashed_folder_refused(self, user):
        """Test a new deleted_at for a folder already in trash is refused."""
        folder = create_folder(user.id, 'Old')
        trashed = move_folder_to_trash(folder.id, user.id)

        with pytest.raises(ValidationError) as exc_info:
            update_folder(folder.id, user.id, {
                'is_deleted': True,
                'deleted_at': timezone.now() - timedelta(days=5),
            })

        assert exc_info.value.code == 'already_trashed'
        folder.refresh_from_db()
        assert folder.deleted_at == trashed.deleted_at


@pytest.mark.django_db
def test_collect_subtree_breadth_first(user):
    """Test subtree walk returns root first, then level by level."""
    root = create_folder(user.id, 'Root')
    left = create_folder(user.id, 'Left', root.id)
    right = create_folder(user.id, 'Right', root.id)
    leaf = create_folder(user.id, 'Leaf', left.id)
    create_folder(user.id, 'Outside')

    assert collect_subtree(root) == [root, left, right, leaf]


@pytest.mark.django_db
class TestDeleteFolder:
    """Tests for delete_folder function."""

    def test_delete_subtree_with_bytes(self, user, object_store):
        """Test the whole subtree goes, bytes included."""
        root = create_folder(user.id, 'Root')
        child = create_folder(user.id, 'Child', root.id)
        key = object_store.put(b'data', f'{user.id}/data.bin')
        File.objects.create(
            user=user,
            folder=child,
            name='data.bin',
            mime_type='application/octet-stream',
            size_bytes=4,
            storage_key=key,
        )

        assert delete_folder(root.id, user.id, object_store) is True

        assert not Folder.all_objects.filter(user=user).exists()
        assert not File.all_objects.filter(user=user).exists()
        assert not object_store.exists(key)

    def test_delete_missing_or_foreign(self, user, other_user, object_store):
        """Test deleting an unknown folder reports False."""
        foreign = create_folder(other_user.id, 'Theirs')

        assert delete_folder(foreign.id, user.id, object_store) is False
        assert delete_folder(foreign.id + 100, user.id, object_store) is False
        assert Folder.all_objects.filter(id=foreign.id).exists()

    def test_delete_keeps_going_on_release_failure(
        self,
        user,
        make_file,
        object_store,
        monkeypatch,
    ):
        """Test metadata is removed even if bytes cannot be released."""
        folder = create_folder(user.id, 'Root')
        make_file(folder=folder)

        def broken_delete(name):
            raise RuntimeError('backend down')

        monkeypatch.setattr(object_store.storage, 'delete', broken_delete)

        assert delete_folder(folder.id, user.id, object_store) is True
        assert not File.all_objects.filter(user=user).exists()


@pytest.mark.django_db
def test_get_folder_tree(user, make_file):
    """Test tree nests active folders and files."""
    docs = create_folder(user.id, 'Docs')
    invoices = create_folder(user.id, 'Invoices', docs.id)
    trashed = create_folder(user.id, 'Trashed')
    move_folder_to_trash(trashed.id, user.id)
    root_file = make_file(name='root.txt')
    invoice = make_file(name='invoice.pdf', folder=invoices)

    tree = get_folder_tree(user.id)

    assert [node.folder for node in tree.roots] == [docs]
    assert tree.root_files == [root_file]
    docs_node = tree.roots[0]
    assert [node.folder for node in docs_node.children] == [invoices]
    assert docs_node.children[0].files == [invoice]
