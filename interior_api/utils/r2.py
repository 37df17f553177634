"""Cloudflare R2 client wrapper for S3-compatible object storage.

Provides upload, URL generation, existence checks, deletion and listing for
uploaded images. Storage keys follow the upload folder convention:
    interior-design/designs/{uuid}.jpg
    interior-design/team/{uuid}.jpg
    etc.
"""

from __future__ import annotations

from typing import Any

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import ClientError

from interior_api.config import settings

logger = structlog.get_logger()


def _build_client() -> Any:
    """Create an S3 client pointed at Cloudflare R2."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{settings.r2_account_id}.r2.cloudflarestorage.com",
        aws_access_key_id=settings.r2_access_key_id,
        aws_secret_access_key=settings.r2_secret_access_key,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


_client: Any = None


def _get_client() -> Any:
    """Lazy-init singleton client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = _build_client()
    return _client


def reset_client() -> None:
    """Reset the singleton client (for testing)."""
    global _client  # noqa: PLW0603
    _client = None


def upload_object(key: str, data: bytes, content_type: str = "image/jpeg") -> str:
    """Upload bytes to R2. Returns the storage key."""
    client = _get_client()
    client.put_object(
        Bucket=settings.r2_bucket_name,
        Key=key,
        Body=data,
        ContentType=content_type,
    )
    logger.info("r2_upload", key=key, size=len(data), content_type=content_type)
    return key


def generate_presigned_url(key: str) -> str:
    """Generate a pre-signed GET URL, valid for `settings.presigned_url_expiry_seconds`."""
    client = _get_client()
    try:
        url: str = client.generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.r2_bucket_name, "Key": key},
            ExpiresIn=settings.presigned_url_expiry_seconds,
        )
    except ClientError as e:
        logger.error("r2_presign_failed", key=key, error=str(e))
        raise
    return url


def public_url(key: str) -> str:
    """Public URL for a key when the bucket has a public domain, else a presigned URL."""
    if settings.r2_public_base_url:
        return f"{settings.r2_public_base_url.rstrip('/')}/{key}"
    return generate_presigned_url(key)


def head_object(key: str) -> bool:
    """Check if an object exists in R2. Returns True if found."""
    client = _get_client()
    try:
        client.head_object(Bucket=settings.r2_bucket_name, Key=key)
        return True
    except ClientError as e:
        if e.response["Error"]["Code"] in ("404", "NoSuchKey"):
            return False
        logger.error("r2_head_failed", key=key, error=str(e))
        raise


def delete_object(key: str) -> None:
    """Delete a single object from R2."""
    client = _get_client()
    client.delete_object(Bucket=settings.r2_bucket_name, Key=key)
    logger.info("r2_delete", key=key)


def usage(prefix: str) -> tuple[int, int]:
    """Count objects and total bytes under a prefix."""
    client = _get_client()
    paginator = client.get_paginator("list_objects_v2")
    count = 0
    total = 0
    for page in paginator.paginate(Bucket=settings.r2_bucket_name, Prefix=prefix):
        for obj in page.get("Contents", []):
            count += 1
            total += obj.get("Size", 0)
    return count, total
