import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import server.apps.vault.infrastructure.metadata


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, validators=[server.apps.vault.infrastructure.metadata.validate_name])),
                ('color', models.CharField(default='#0A84FF', help_text='Hex color code for UI display (e.g., #0A84FF)', max_length=7, validators=[server.apps.vault.infrastructure.metadata.validate_color])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='children', to='vault.folder')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vault_folders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['id'],
                'default_manager_name': 'all_objects',
                'indexes': [models.Index(fields=['user', 'parent'], name='vault_folder_user_parent_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(models.Q(('deleted_at__isnull', False), ('is_deleted', True)), models.Q(('deleted_at__isnull', True), ('is_deleted', False)), _connector='OR'), name='vault_folder_trash_state')],
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, validators=[server.apps.vault.infrastructure.metadata.validate_name])),
                ('mime_type', models.CharField(max_length=255)),
                ('size_bytes', models.BigIntegerField(help_text='File size in bytes')),
                ('storage_key', models.CharField(help_text='Object store key: {user_id}/{uuid}.ext', max_length=1024, unique=True)),
                ('is_shared', models.BooleanField(default=False)),
                ('shared_by', models.CharField(blank=True, max_length=150, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('folder', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='files', to='vault.folder')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vault_files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['id'],
                'default_manager_name': 'all_objects',
                'indexes': [models.Index(fields=['user', 'folder'], name='vault_file_user_folder_idx'), models.Index(fields=['user', '-updated_at'], name='vault_file_user_recent_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(('size_bytes__gte', 0)), name='vault_file_size_non_negative'), models.CheckConstraint(condition=models.Q(models.Q(('deleted_at__isnull', False), ('is_deleted', True)), models.Q(('deleted_at__isnull', True), ('is_deleted', False)), _connector='OR'), name='vault_file_trash_state')],
            },
        ),
    ]
