"""Validation predicates and metadata helpers for vault entities."""

import mimetypes
import re
import uuid
from pathlib import Path
from typing import Final

from django.core.exceptions import ValidationError

NAME_MAX_LENGTH: Final = 255
COLOR_MAX_LENGTH: Final = 7  # Hex color: #RRGGBB
MIME_TYPE_MAX_LENGTH: Final = 255
STORAGE_KEY_MAX_LENGTH: Final = 1024

_COLOR_PATTERN: Final = re.compile(r'^#[0-9A-Fa-f]{6}$')
_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'


def validate_name(name: str) -> None:
    """Validate folder or file name.

    Args:
        name: Proposed name.

    Raises:
        ValidationError: If name is blank or too long.
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Name cannot be empty', code='blank')
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(
            f'Name cannot be longer than {NAME_MAX_LENGTH} characters',
            code='max_length',
        )


def validate_size(size_bytes: int) -> None:
    """Validate file size.

    Args:
        size_bytes: Proposed size in bytes.

    Raises:
        ValidationError: If size is not a non-negative integer.
    """
    if isinstance(size_bytes, bool) or not isinstance(size_bytes, int):
        raise ValidationError('Size must be an integer', code='invalid')
    if size_bytes < 0:
        raise ValidationError('Size cannot be negative', code='min_value')


def validate_color(color: str) -> None:
    """Validate folder swatch color.

    Args:
        color: Hex color code (e.g., '#0A84FF').

    Raises:
        ValidationError: If color is not in #RRGGBB format.
    """
    if not isinstance(color, str) or not _COLOR_PATTERN.match(color):
        raise ValidationError(
            f'Invalid color {color!r}, expected #RRGGBB',
            code='invalid',
        )


def validate_storage_key(user_id: int, storage_key: str) -> None:
    """Validate storage key follows user isolation rules.

    Every key starts with the owner's ID so bytes of different users
    never share a prefix in the object store.

    Args:
        user_id: Owner's user ID.
        storage_key: Proposed storage key.

    Raises:
        ValidationError: If key doesn't start with user_id or is invalid.
    """
    if not storage_key:
        raise ValidationError('Storage key cannot be empty')
    if len(storage_key) > STORAGE_KEY_MAX_LENGTH:
        raise ValidationError('Storage key is too long')

    path_parts = Path(storage_key).parts
    if len(path_parts) < 2:
        raise ValidationError('Storage key must have a user prefix')

    try:
        key_user_id = int(path_parts[0])
    except ValueError as error:
        raise ValidationError(
            'Storage key must start with user ID',
        ) from error

    if key_user_id != user_id:
        raise ValidationError(
            f'Storage key user ID ({key_user_id}) does not match '
            f'owner ({user_id})',
        )


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename extension.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = Path(filename).suffix
    return extension.lstrip('.').lower()


def build_storage_key(user_id: int, filename: str) -> str:
    """Generate a fresh storage key for uploaded bytes.

    The original filename only contributes its extension, the key
    itself never changes when the file is renamed or moved.

    Args:
        user_id: Owner's user ID.
        filename: Original filename.

    Returns:
        Key like '7/3f2a...c1.pdf'.
    """
    suffix = Path(filename).suffix.lower()
    return f'{user_id}/{uuid.uuid4().hex}{suffix}'
