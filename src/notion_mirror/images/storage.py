"""Blob storage backends for uploaded images.

S3 (or any S3-compatible endpoint such as MinIO) for production, and a local
directory that the app serves under /images for single-host setups.
boto3 and file I/O are blocking, so both stores run in a worker thread.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path

import boto3
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from notion_mirror.config import Settings
from notion_mirror.errors import BlobStoreError

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Destination for image bytes, addressed by storage key."""

    @abstractmethod
    async def put_object(self, key: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``key``, replacing any existing object."""


def create_s3_client(settings: Settings) -> BaseClient:
    """Create a boto3 S3 client; explicit keys win over the ambient credential chain."""
    client_kwargs: dict = {}
    if settings.s3_endpoint_url:
        client_kwargs["endpoint_url"] = settings.s3_endpoint_url
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
    return boto3.client("s3", region_name=settings.s3_region or "us-east-1", **client_kwargs)


class S3BlobStore(BlobStore):
    """Uploads objects to an S3 bucket, optionally under a key prefix."""

    def __init__(self, client: BaseClient, bucket: str, prefix: str = ""):
        if not bucket:
            raise ValueError("S3 bucket is not configured")
        self._client = client
        self._bucket = bucket
        self._prefix = prefix.strip("/")

    def object_key(self, key: str) -> str:
        return f"{self._prefix}/{key}" if self._prefix else key

    async def put_object(self, key: str, data: bytes, content_type: str) -> None:
        """Upload ``data`` under the prefixed key.

        Raises:
            BlobStoreError: S3 rejected the upload or could not be reached.
        """
        object_key = self.object_key(key)
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=object_key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("Failed to upload object to s3://%s/%s: %s", self._bucket, object_key, exc)
            raise BlobStoreError(object_key, str(exc)) from exc
        logger.info("Upload success: s3://%s/%s", self._bucket, object_key)


class LocalBlobStore(BlobStore):
    """Writes objects as flat files under ``root``."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    async def put_object(self, key: str, data: bytes, content_type: str) -> None:
        destination = self.root / Path(key).name
        try:
            await asyncio.to_thread(destination.write_bytes, data)
        except OSError as exc:
            raise BlobStoreError(key, str(exc)) from exc
        logger.info("Wrote %s (%s, %d bytes)", destination, content_type, len(data))


def create_blob_store(settings: Settings) -> BlobStore:
    """Pick the backend named by ``settings.blob_backend``."""
    if settings.blob_backend == "local":
        return LocalBlobStore(Path(settings.local_blob_dir))
    return S3BlobStore(
        create_s3_client(settings),
        bucket=settings.s3_bucket,
        prefix=settings.s3_key_prefix,
    )
