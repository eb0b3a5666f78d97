"""Image pipeline: download, hash, normalize, upload."""

from notion_mirror.images.processor import (
    ImageProcessor,
    content_hash,
    convert_to_webp,
    inspect_image,
    storage_key,
)
from notion_mirror.images.storage import (
    BlobStore,
    LocalBlobStore,
    S3BlobStore,
    create_blob_store,
    create_s3_client,
)

__all__ = [
    "BlobStore",
    "content_hash",
    "convert_to_webp",
    "create_blob_store",
    "create_s3_client",
    "ImageProcessor",
    "inspect_image",
    "LocalBlobStore",
    "S3BlobStore",
    "storage_key",
]
