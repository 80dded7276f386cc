"""Django app configuration for vault app."""

from django.apps import AppConfig


class VaultConfig(AppConfig):
    """Configuration for vault app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.vault'
    verbose_name = 'File Vault'
