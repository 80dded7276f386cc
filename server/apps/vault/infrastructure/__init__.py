"""Infrastructure layer for vault app.

This package contains integrations with external systems:
- S3-compatible storage backend for file bytes
- Object store facade used by the business logic
- Validation predicates and metadata helpers

Keep infrastructure concerns separate from business logic.
"""
