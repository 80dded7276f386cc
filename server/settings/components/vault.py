"""File vault settings: quota, upload policy and trash retention."""

from decouple import Csv

from server.settings.components import config

# Storage ceiling reported as ``total_space`` for every user (100 TiB)
VAULT_QUOTA_BYTES = config(
    'VAULT_QUOTA_BYTES',
    cast=int,
    default=100 * 1024 ** 4,
)

# Largest accepted file in bytes, 0 disables the check
VAULT_MAX_FILE_SIZE = config('VAULT_MAX_FILE_SIZE', cast=int, default=0)

# Accepted MIME types, empty accepts everything
VAULT_ALLOWED_MIME_TYPES = config(
    'VAULT_ALLOWED_MIME_TYPES',
    cast=Csv(),
    default='',
)

# Trashed entries older than this are purged by `cleanup_trash`
VAULT_TRASH_RETENTION_DAYS = config(
    'VAULT_TRASH_RETENTION_DAYS',
    cast=int,
    default=30,
)

VAULT_RECENT_FILES_LIMIT = config(
    'VAULT_RECENT_FILES_LIMIT',
    cast=int,
    default=8,
)
