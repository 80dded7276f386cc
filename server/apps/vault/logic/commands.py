"""Update commands for folders and files.

A patch coming from the request layer is turned into an explicit
command listing exactly which fields change. Unknown keys and
ownership fields are rejected here, before any record is touched.
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Final, Self, final, override

from django.core.exceptions import ValidationError

from server.apps.vault.infrastructure.metadata import (
    validate_color,
    validate_name,
)

_FORBIDDEN_FIELDS: Final = frozenset(('id', 'user', 'user_id', 'owner_id'))


@final
class _Unset:
    """Marker for fields a command leaves untouched."""

    @override
    def __repr__(self) -> str:
        return 'UNSET'


UNSET: Final = _Unset()


def _clean_patch(
    patch: Mapping[str, Any],
    allowed: frozenset[str],
) -> dict[str, Any]:
    """Reject forbidden and unknown keys of a patch.

    Args:
        patch: Partial update as received from the caller.
        allowed: Field names the command accepts.

    Returns:
        Copy of the patch.

    Raises:
        ValidationError: If the patch contains other keys.
    """
    forbidden = sorted(_FORBIDDEN_FIELDS.intersection(patch))
    if forbidden:
        raise ValidationError(
            f'Fields cannot be changed: {", ".join(forbidden)}',
            code='forbidden_field',
        )

    unknown = sorted(set(patch) - allowed)
    if unknown:
        raise ValidationError(
            f'Unknown or immutable fields: {", ".join(unknown)}',
            code='unknown_field',
        )
    return dict(patch)


def _validate_trash_fields(is_deleted: Any, deleted_at: Any) -> None:
    if is_deleted is not UNSET and not isinstance(is_deleted, bool):
        raise ValidationError('is_deleted must be a boolean', code='invalid')
    if deleted_at is UNSET or deleted_at is None:
        return
    if not isinstance(deleted_at, datetime):
        raise ValidationError('deleted_at must be a datetime', code='invalid')
    if is_deleted is not True:
        raise ValidationError(
            'deleted_at can only be set together with is_deleted=True',
            code='invalid',
        )


def _validate_optional_id(value: Any, field_name: str) -> None:
    if value is UNSET or value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{field_name} must be an integer or null')


class _UpdateCommand:
    """Shared behaviour of update commands."""

    @classmethod
    def allowed_fields(cls) -> frozenset[str]:
        """Names of the fields the command may change."""
        return frozenset(field.name for field in fields(cls))  # type: ignore[arg-type]

    @classmethod
    def from_patch(cls, patch: Mapping[str, Any]) -> Self:
        """Build the command from a partial update mapping.

        Raises:
            ValidationError: If the patch has forbidden, unknown or
                invalid values.
        """
        return cls(**_clean_patch(patch, cls.allowed_fields()))

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set by the command."""
        return {
            field.name: getattr(self, field.name)
            for field in fields(self)  # type: ignore[arg-type]
            if getattr(self, field.name) is not UNSET
        }

    def check_trash_timestamp(self, is_trashed: bool) -> None:
        """Refuse to re-date an item that is already in trash.

        Args:
            is_trashed: Current trash state of the target record.

        Raises:
            ValidationError: If the command carries ``deleted_at`` for
                a trashed record.
        """
        deleted_at = getattr(self, 'deleted_at')
        if is_trashed and deleted_at is not UNSET and deleted_at is not None:
            raise ValidationError(
                'deleted_at cannot change for an item already in trash',
                code='already_trashed',
            )

    @property
    def changes_trash_state(self) -> bool:
        """Whether the command moves the record in or out of trash."""
        return getattr(self, 'is_deleted') is not UNSET


@final
@dataclass(frozen=True)
class FolderUpdate(_UpdateCommand):
    """Mutable folder fields: name, color, parent, trash state."""

    name: Any = UNSET
    color: Any = UNSET
    parent_id: Any = UNSET
    is_deleted: Any = UNSET
    deleted_at: Any = UNSET

    def __post_init__(self) -> None:
        """Validate every explicitly set field."""
        if self.name is not UNSET:
            validate_name(self.name)
        if self.color is not UNSET:
            validate_color(self.color)
        _validate_optional_id(self.parent_id, 'parent_id')
        _validate_trash_fields(self.is_deleted, self.deleted_at)


@final
@dataclass(frozen=True)
class FileUpdate(_UpdateCommand):
    """Mutable file fields: name, folder, sharing, trash state."""

    name: Any = UNSET
    folder_id: Any = UNSET
    is_shared: Any = UNSET
    shared_by: Any = UNSET
    is_deleted: Any = UNSET
    deleted_at: Any = UNSET

    def __post_init__(self) -> None:
        """Validate every explicitly set field."""
        if self.name is not UNSET:
            validate_name(self.name)
        _validate_optional_id(self.folder_id, 'folder_id')
        if self.is_shared is not UNSET and not isinstance(self.is_shared, bool):
            raise ValidationError('is_shared must be a boolean', code='invalid')
        shared_by = self.shared_by
        if shared_by is not UNSET and shared_by is not None and not isinstance(
            shared_by,
            str,
        ):
            raise ValidationError('shared_by must be a string or null')
        _validate_trash_fields(self.is_deleted, self.deleted_at)
