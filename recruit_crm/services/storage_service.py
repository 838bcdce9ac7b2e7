"""Blob storage for uploaded files (local filesystem or S3-compatible).

Import uploads only need store/fetch; delete and signed URLs serve batch
cleanup and attachment downloads.
"""

import logging
import os

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from recruit_crm.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Blob backend failure (missing object, I/O or S3 error)."""

    pass


def get_s3_client() -> BaseClient:
    """S3 client for the configured bucket (S3-compatible endpoints such as R2 work too)."""
    style = (settings.S3_URL_STYLE or "").strip().lower()
    return boto3.client(
        "s3",
        region_name=settings.S3_REGION or None,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=settings.S3_ENDPOINT_URL.rstrip("/") or None,
        config=Config(s3={"addressing_style": style}) if style in {"path", "virtual"} else None,
    )


def _get_storage_backend() -> str:
    """Get configured storage backend."""
    return (settings.STORAGE_BACKEND or "local").strip().lower()


def _get_local_storage_path() -> str:
    """Get local storage directory path."""
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def _local_path(storage_key: str) -> str:
    root = os.path.realpath(_get_local_storage_path())
    path = os.path.realpath(os.path.join(root, storage_key))
    if os.path.commonpath([root, path]) != root:
        raise StorageError(f"Invalid storage key: {storage_key}")
    return path


def store(storage_key: str, data: bytes, content_type: str | None = None) -> str:
    """Store bytes under storage_key. Returns the key."""
    backend = _get_storage_backend()

    if backend == "s3":
        extra = {"ContentType": content_type} if content_type else {}
        try:
            get_s3_client().put_object(
                Bucket=settings.S3_BUCKET, Key=storage_key, Body=data, **extra
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 upload failed for %s: %s", storage_key, exc)
            raise StorageError(f"Failed to store {storage_key}") from exc
    else:
        path = _local_path(storage_key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as exc:
            logger.error("Local store failed for %s: %s", storage_key, exc)
            raise StorageError(f"Failed to store {storage_key}") from exc

    return storage_key


def fetch(storage_key: str) -> bytes:
    """Load stored bytes."""
    backend = _get_storage_backend()

    if backend == "s3":
        try:
            response = get_s3_client().get_object(Bucket=settings.S3_BUCKET, Key=storage_key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to fetch {storage_key}") from exc

    path = _local_path(storage_key)
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise StorageError(f"Failed to fetch {storage_key}") from exc


def delete(storage_key: str) -> None:
    """Delete a stored object. Missing objects are ignored."""
    backend = _get_storage_backend()

    if backend == "s3":
        try:
            get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete {storage_key}") from exc
        return

    path = _local_path(storage_key)
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.error("Local delete failed for %s: %s", storage_key, exc)
        raise StorageError(f"Failed to delete {storage_key}") from exc


def signed_download_url(storage_key: str, ttl_seconds: int | None = None) -> str:
    """Generate a time-limited download URL."""
    expires_in = ttl_seconds or settings.SIGNED_URL_EXPIRY_SECONDS
    backend = _get_storage_backend()

    if backend == "s3":
        try:
            return get_s3_client().generate_presigned_url(
                "get_object",
                Params={"Bucket": settings.S3_BUCKET, "Key": storage_key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to sign {storage_key}") from exc

    # Local: direct file URL (dev only, no expiry)
    return f"file://{_local_path(storage_key)}"
