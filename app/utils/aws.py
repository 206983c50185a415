# app/utils/aws.py
from __future__ import annotations

"""
🧊 Clipvault • S3 Utilities
===========================

Thin boto3 wrapper backing `app.services.storage.S3ObjectStorage`:
- Video uploads from the server (`put_bytes`)
- Ranged reads for streaming delivery (`iter_range`)
- Short-lived signed GET for signed delivery (`presigned_get`)
- Deletes when a video is removed (`delete`)

Implementation notes
--------------------
- Keys are normalized defensively (no leading slash, no `..`).
- Explicit timeouts + bounded retries; S3 errors bubble as `S3StorageError`.
- "Not found" is a value (`head` → None), never an exception.
"""

from typing import Any, Dict, Iterator, Optional
import logging
import re

import boto3
import botocore.exceptions
from botocore.config import Config as BotoConfig

from app.core.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class S3StorageError(RuntimeError):
    """Raised when a storage operation fails (network, auth, policy, etc.)."""


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Key validation
# ─────────────────────────────────────────────────────────────────────────────

_KEY_ALLOWED_RE = re.compile(r"[A-Za-z0-9._\-/+=@() ]+")
_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _normalize_key(key: str) -> str:
    """
    Normalize and validate S3 object keys.

    Steps
    -----
    1) Coerce to str, strip whitespace
    2) Remove leading '/'
    3) Collapse '//' runs
    4) Reject path traversal ('..') and disallowed characters
    """
    k = str(key or "").strip().lstrip("/")
    k = re.sub(r"/{2,}", "/", k)
    if not k:
        raise S3StorageError("Invalid storage key: empty")
    if ".." in k:
        raise S3StorageError("Invalid storage key: path traversal detected")
    if not _KEY_ALLOWED_RE.fullmatch(k):
        raise S3StorageError("Invalid storage key: contains forbidden characters")
    return k


def _error_code(exc: botocore.exceptions.ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


# ─────────────────────────────────────────────────────────────────────────────
# 📦 S3 Client
# ─────────────────────────────────────────────────────────────────────────────

class S3Client:
    """
    High-level S3 wrapper with safe defaults.

    Credentials come from settings when both key id and secret are present,
    otherwise from the standard AWS chain (env, profile, instance role).
    """

    def __init__(self, bucket: Optional[str] = None, *, region_name: Optional[str] = None, client: Any = None) -> None:
        self.bucket = bucket or settings.AWS_BUCKET_NAME
        if not self.bucket:
            raise S3StorageError("AWS_BUCKET_NAME not configured")

        if client is not None:
            self.client = client
            return

        cfg = BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": 5, "mode": "standard"},
            connect_timeout=3,
            read_timeout=10,
        )
        client_kwargs: Dict[str, Any] = {"config": cfg, "region_name": region_name or settings.AWS_REGION}
        secret = settings.AWS_SECRET_ACCESS_KEY
        if settings.AWS_ACCESS_KEY_ID and secret:
            client_kwargs["aws_access_key_id"] = settings.AWS_ACCESS_KEY_ID
            client_kwargs["aws_secret_access_key"] = secret.get_secret_value()

        try:
            self.client = boto3.client("s3", **client_kwargs)
        except botocore.exceptions.BotoCoreError as e:  # pragma: no cover
            raise S3StorageError(f"Failed to create S3 client: {e}") from e

    # ────────────────────────────────────────────────────────────────────────
    # 🔐 Signed URL
    # ────────────────────────────────────────────────────────────────────────

    def presigned_get(self, key: str, *, expires_in: int = 3600, response_content_type: Optional[str] = None) -> str:
        """Generate a time-bound **presigned GET** URL."""
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": _normalize_key(key)}
        if response_content_type:
            params["ResponseContentType"] = response_content_type
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params=params,
                ExpiresIn=int(expires_in),
            )
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise S3StorageError(f"Failed to create presigned GET: {e}") from e

    # ────────────────────────────────────────────────────────────────────────
    # 🚀 Object ops
    # ────────────────────────────────────────────────────────────────────────

    def put_bytes(self, key: str, data: bytes, *, content_type: str) -> None:
        """Upload a payload from the server."""
        try:
            self.client.put_object(Bucket=self.bucket, Key=_normalize_key(key), Body=data, ContentType=content_type)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise S3StorageError(f"Failed to upload object: {e}") from e

    def delete(self, key: str) -> None:
        """Delete an object; a missing object counts as deleted."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=_normalize_key(key))
        except botocore.exceptions.ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return
            raise S3StorageError(f"Failed to delete object: {e}") from e
        except botocore.exceptions.BotoCoreError as e:
            raise S3StorageError(f"Failed to delete object: {e}") from e

    def head(self, key: str) -> Optional[Dict[str, Any]]:
        """HEAD the object; None when it does not exist."""
        try:
            return dict(self.client.head_object(Bucket=self.bucket, Key=_normalize_key(key)) or {})
        except botocore.exceptions.ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return None
            raise S3StorageError(f"Failed to stat object: {e}") from e
        except botocore.exceptions.BotoCoreError as e:
            raise S3StorageError(f"Failed to stat object: {e}") from e

    def iter_range(self, key: str, start: int, end: int, *, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """
        Yield bytes ``start..end`` (inclusive) of an object.

        The body stream is closed when the generator finishes or is closed
        early (client disconnect).
        """
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=_normalize_key(key), Range=f"bytes={start}-{end}")
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise S3StorageError(f"Failed to read object: {e}") from e
        body = resp["Body"]
        try:
            for chunk in body.iter_chunks(chunk_size):
                if chunk:
                    yield chunk
        finally:
            body.close()

    def __repr__(self) -> str:  # pragma: no cover
        return f"S3Client(bucket={self.bucket})"
