"""Clipvault helpers shared across services.

Submodules:
- aws: thin boto3 wrapper used by the S3 object-storage backend
"""

__all__: list[str] = []
