"""Tests for metadata utilities."""

import pytest
from django.core.exceptions import ValidationError

from server.apps.vault.infrastructure.metadata import (
    NAME_MAX_LENGTH,
    build_storage_key,
    detect_mime_type,
    get_file_extension,
    validate_color,
    validate_name,
    validate_size,
    validate_storage_key,
)


def test_detect_mime_type():
    """Test MIME type detection from filename."""
    assert detect_mime_type('test.pdf') == 'application/pdf'
    assert detect_mime_type('test.txt') == 'text/plain'
    assert detect_mime_type('test.jpg') == 'image/jpeg'
    assert detect_mime_type('test.png') == 'image/png'


def test_detect_mime_type_unknown():
    """Test MIME type detection for unknown extension."""
    assert detect_mime_type('test.unknown') == 'application/octet-stream'
    assert detect_mime_type('README') == 'application/octet-stream'


def test_get_file_extension():
    """Test file extension extraction."""
    assert get_file_extension('test.pdf') == 'pdf'
    assert get_file_extension('test.PDF') == 'pdf'
    assert get_file_extension('archive.tar.gz') == 'gz'
    assert get_file_extension('noextension') == ''


@pytest.mark.parametrize('name', ['a', 'Quarterly report.pdf', 'x' * NAME_MAX_LENGTH])
def test_validate_name_accepts(name):
    """Test valid names pass."""
    validate_name(name)


@pytest.mark.parametrize('name', ['', '   ', None, 42, 'x' * (NAME_MAX_LENGTH + 1)])
def test_validate_name_rejects(name):
    """Test blank, non-string and overlong names fail."""
    with pytest.raises(ValidationError):
        validate_name(name)


def test_validate_size():
    """Test size must be a non-negative integer."""
    validate_size(0)
    validate_size(1024 ** 4)

    for invalid in (-1, 1.5, '10', True):
        with pytest.raises(ValidationError):
            validate_size(invalid)


def test_validate_color():
    """Test color must be #RRGGBB."""
    validate_color('#0A84FF')
    validate_color('#ff00aa')

    for invalid in ('0A84FF', '#0A84F', '#GGGGGG', 'blue', None):
        with pytest.raises(ValidationError):
            validate_color(invalid)


def test_validate_storage_key():
    """Test storage key validation."""
    validate_storage_key(1, '1/abc.pdf')
    validate_storage_key(42, '42/nested/key')

    with pytest.raises(ValidationError, match='does not match'):
        validate_storage_key(1, '2/abc.pdf')

    with pytest.raises(ValidationError, match='must start with user ID'):
        validate_storage_key(1, 'abc/file.pdf')

    with pytest.raises(ValidationError, match='user prefix'):
        validate_storage_key(1, 'file.pdf')

    with pytest.raises(ValidationError):
        validate_storage_key(1, '')


def test_build_storage_key():
    """Test generated keys are unique, prefixed and keep the extension."""
    first = build_storage_key(7, 'Report.PDF')
    second = build_storage_key(7, 'Report.PDF')

    assert first != second
    assert first.startswith('7/')
    assert first.endswith('.pdf')
    validate_storage_key(7, first)
