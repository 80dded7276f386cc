"""Business logic layer for vault app.

This package contains the metadata engine of the vault:
- Folder tree operations (create, move, list, delete)
- File operations (upload, download, list, update, delete)
- Trash lifecycle (move to trash, restore, purge)
- Storage statistics and quota checks

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
