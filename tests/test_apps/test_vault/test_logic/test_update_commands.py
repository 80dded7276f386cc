"""Tests for folder and file update commands."""

from datetime import datetime, timezone

import pytest
from django.core.exceptions import ValidationError

from server.apps.vault.logic.commands import UNSET, FileUpdate, FolderUpdate


def test_changes_lists_only_set_fields():
    """Test unset fields are left out of the changes."""
    command = FolderUpdate(name='Renamed', parent_id=None)

    assert command.changes() == {'name': 'Renamed', 'parent_id': None}
    assert command.color is UNSET
    assert not command.changes_trash_state


def test_from_patch():
    """Test building a command from a partial mapping."""
    command = FileUpdate.from_patch({'is_shared': True, 'shared_by': 'Alice'})

    assert command.changes() == {'is_shared': True, 'shared_by': 'Alice'}


@pytest.mark.parametrize('key', ['id', 'user', 'user_id', 'owner_id'])
def test_ownership_fields_rejected(key):
    """Test identity and ownership cannot be patched."""
    with pytest.raises(ValidationError) as exc_info:
        FolderUpdate.from_patch({key: 2})

    assert exc_info.value.code == 'forbidden_field'


@pytest.mark.parametrize('key', ['storage_key', 'size_bytes', 'mime_type', 'created_at'])
def test_immutable_file_fields_rejected(key):
    """Test file fields outside the command are refused."""
    with pytest.raises(ValidationError) as exc_info:
        FileUpdate.from_patch({key: 'x'})

    assert exc_info.value.code == 'unknown_field'


@pytest.mark.parametrize('patch', [
    {'name': ''},
    {'color': 'red'},
    {'parent_id': 'abc'},
    {'parent_id': True},
    {'is_deleted': 'yes'},
])
def test_invalid_folder_values(patch):
    """Test malformed folder values are refused."""
    with pytest.raises(ValidationError):
        FolderUpdate.from_patch(patch)


@pytest.mark.parametrize('patch', [
    {'name': '   '},
    {'folder_id': 1.5},
    {'is_shared': 1},
    {'shared_by': 42},
])
def test_invalid_file_values(patch):
    """Test malformed file values are refused."""
    with pytest.raises(ValidationError):
        FileUpdate.from_patch(patch)


def test_deleted_at_requires_trashing():
    """Test deleted_at only travels with is_deleted=True."""
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)

    command = FileUpdate(is_deleted=True, deleted_at=moment)
    assert command.changes_trash_state

    with pytest.raises(ValidationError):
        FileUpdate(deleted_at=moment)
    with pytest.raises(ValidationError):
        FolderUpdate(is_deleted=False, deleted_at=moment)
