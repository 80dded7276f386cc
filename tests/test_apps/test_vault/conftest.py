"""Shared fixtures for vault app tests."""

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

from server.apps.vault.infrastructure.object_store import ObjectStore
from server.apps.vault.models import File, Folder

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with file-vault bucket.

    Yields:
        boto3 S3 resource with file-vault bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket='file-vault')
        yield conn


@pytest.fixture
def object_store(mock_s3):
    """Object store over the mocked bucket.

    Returns:
        ObjectStore built from the ``STORAGES`` setting.
    """
    return ObjectStore.from_settings()


@pytest.fixture
def make_folder(user):
    """Factory for folder records.

    Returns:
        Callable creating a Folder (defaults to ``user`` and root).
    """
    def factory(name='Folder', parent=None, owner=None, **kwargs):
        return Folder.objects.create(
            user=owner or user,
            name=name,
            parent=parent,
            **kwargs,
        )
    return factory


@pytest.fixture
def make_file(user):
    """Factory for file records without stored bytes.

    Returns:
        Callable creating a File (defaults to ``user`` and root).
    """
    counter = iter(range(1, 10_000))

    def factory(name='test.txt', folder=None, owner=None, size_bytes=100, **kwargs):
        owner = owner or user
        return File.objects.create(
            user=owner,
            folder=folder,
            name=name,
            mime_type=kwargs.pop('mime_type', 'text/plain'),
            size_bytes=size_bytes,
            storage_key=kwargs.pop(
                'storage_key',
                f'{owner.id}/fixture-{next(counter)}.txt',
            ),
            **kwargs,
        )
    return factory
