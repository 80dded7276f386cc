"""Management command to delete bytes no file record references."""

import logging
from datetime import timedelta
from typing import Any, Final

from django.core.management.base import BaseCommand
from django.utils import timezone

from server.apps.vault.exceptions import ObjectStoreError
from server.apps.vault.infrastructure.object_store import ObjectStore
from server.apps.vault.models import File

_DEFAULT_MIN_AGE_MINUTES: Final = 60

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Delete orphaned objects left behind by failed releases."""

    help = 'Delete objects in the object store that no file references'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )
        parser.add_argument(
            '--prefix',
            default='',
            help='Only scan keys below this prefix (e.g. a user ID)',
        )
        parser.add_argument(
            '--min-age',
            type=int,
            default=_DEFAULT_MIN_AGE_MINUTES,
            help=(
                'Skip objects written in the last N minutes, their upload '
                f'may still be in progress (default: {_DEFAULT_MIN_AGE_MINUTES})'
            ),
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        object_store = ObjectStore.from_settings()
        cutoff = timezone.now() - timedelta(minutes=options['min_age'])

        known_keys = set(
            File.all_objects.values_list('storage_key', flat=True),
        )

        count = 0
        failed = 0

        for storage_key in object_store.iter_keys(options['prefix']):
            if storage_key in known_keys:
                continue

            # Record of a fresh upload may not be committed yet
            if object_store.modified_at(storage_key) > cutoff:
                logger.debug('Skipping recent object: %s', storage_key)
                continue

            if dry_run:
                self.stdout.write(f'Would delete orphan: {storage_key}')
                count += 1
                continue

            try:
                object_store.delete(storage_key)
            except ObjectStoreError as exc:
                self.stderr.write(f'Failed to delete {storage_key}: {exc}')
                logger.exception('Failed to delete orphan: %s', storage_key)
                failed += 1
                continue

            logger.info('Deleted orphaned object: %s', storage_key)
            count += 1

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would delete {count} orphaned objects'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Deleted {count} orphaned objects, {failed} failed',
                ),
            )
