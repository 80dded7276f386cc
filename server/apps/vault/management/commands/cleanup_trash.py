"""Management command to purge old items from trash."""

import logging
from datetime import timedelta
from typing import Any, Final

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from server.apps.vault.infrastructure.object_store import ObjectStore
from server.apps.vault.logic.trash_operations import (
    list_expired_trash,
    purge_trash_item,
)
from server.apps.vault.models import Folder

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Permanently delete items that have been in trash too long."""

    help = 'Purge trashed folders and files older than the retention window'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be purged without deleting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max items to process (default: {_DEFAULT_BATCH_SIZE})',
        )
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help='Retention in days (default: VAULT_TRASH_RETENTION_DAYS)',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        retention_days = options['days']
        if retention_days is None:
            retention_days = settings.VAULT_TRASH_RETENTION_DAYS

        cutoff = timezone.now() - timedelta(days=retention_days)

        self.stdout.write(
            f'Looking for items deleted before {cutoff} '
            f'(older than {retention_days} days)',
        )

        expired = list_expired_trash(cutoff, limit=options['batch_size'])
        object_store = ObjectStore.from_settings()

        count = 0
        failed = 0

        for item in expired:
            kind = 'folder' if isinstance(item, Folder) else 'file'
            if dry_run:
                self.stdout.write(
                    f'Would purge {kind}: {item.name} '
                    f'(user: {item.user_id}, deleted: {item.deleted_at})',
                )
                count += 1
                continue

            try:
                report = purge_trash_item(item, object_store)
            except Exception as exc:
                self.stderr.write(f'Failed to purge {kind} {item.id}: {exc}')
                logger.exception('Failed to purge %s from trash: %d', kind, item.id)
                failed += 1
                continue

            count += 1
            logger.info(
                'Purged %s from trash: %s (ID: %d, %d records)',
                kind,
                item.name,
                item.id,
                report.total,
            )

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {count} items from trash'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Purged {count} items from trash, {failed} failed',
                ),
            )
