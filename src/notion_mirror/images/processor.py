"""Image download, content addressing, normalization and upload.

Each image goes through one attempt pipeline:
1. Download the raw bytes (rate limited)
2. md5 the bytes -> content hash
3. Inspect with Pillow -> format and pixel dimensions
4. Derive the storage key ``{hash}.{ext}`` and the content type
5. Re-encode to WebP when the format is in the conversion set
6. Upload to blob storage (rate limited)

The whole attempt is retried as a unit by tenacity with no wait between
attempts; the rate limiter already spaces the underlying calls.
"""

import asyncio
import hashlib
import logging
from io import BytesIO

import httpx
from PIL import Image, UnidentifiedImageError
from tenacity import AsyncRetrying, RetryCallState, RetryError, stop_after_attempt

from notion_mirror.config import Settings
from notion_mirror.errors import ImageProcessingError, ImageProcessingExhausted, UnrecognizedFormat
from notion_mirror.images.storage import BlobStore
from notion_mirror.models import ImageAsset
from notion_mirror.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

WEBP_CONTENT_TYPE = "image/webp"

# Pillow names JPEGs carrying MPF multi-picture markers "MPO".
_FORMAT_ALIASES = {"jpg": "jpeg", "tif": "tiff", "mpo": "jpeg"}


def normalize_format(name: str) -> str:
    """Lowercase a format or extension name and fold common aliases (jpg -> jpeg)."""
    lowered = name.strip().lower().lstrip(".")
    return _FORMAT_ALIASES.get(lowered, lowered)


def content_hash(data: bytes) -> str:
    """Lowercase md5 hex digest of the raw bytes."""
    return hashlib.md5(data).hexdigest()


def storage_key(digest: str, image_format: str, convert_formats: frozenset[str]) -> str:
    """Deterministic key for an image: same bytes and same conversion set, same key."""
    ext = "webp" if image_format in convert_formats else image_format
    return f"{digest}.{ext}"


def inspect_image(data: bytes, source_url: str = "") -> tuple[str, int, int]:
    """Return (format, width, height) for image bytes.

    Raises UnrecognizedFormat when Pillow cannot identify the bytes or the
    reported dimensions are not positive.
    """
    try:
        with Image.open(BytesIO(data)) as image:
            image_format = image.format
            width, height = image.size
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise UnrecognizedFormat(source_url, str(exc)) from exc
    if not image_format or width <= 0 or height <= 0:
        raise UnrecognizedFormat(source_url, f"format={image_format} size={width}x{height}")
    return normalize_format(image_format), width, height


def convert_to_webp(data: bytes, quality: int = 80) -> bytes:
    """Re-encode image bytes as WebP, keeping every frame of animated images.

    Multi-picture JPEGs keep only their primary image.
    """
    with Image.open(BytesIO(data)) as image:
        animated = getattr(image, "is_animated", False) and image.format != "MPO"
        if not animated and image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA")
        buffer = BytesIO()
        image.save(buffer, format="WEBP", quality=quality, save_all=animated)
    return buffer.getvalue()


def mime_type_for(image_format: str) -> str:
    """Pillow's MIME type for a normalized format name."""
    Image.init()  # MIME registry fills as format plugins load
    return Image.MIME.get(image_format.upper(), "application/octet-stream")


class ImageProcessor:
    """Turns a source image URL into an uploaded, content-addressed ImageAsset."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: BlobStore,
        limiter: RateLimiter,
        settings: Settings,
    ):
        self._http = http
        self._store = store
        self._limiter = limiter
        self._attempts = max(1, settings.image_retry_attempts)
        self._webp_quality = settings.webp_quality
        self._convert_formats = frozenset(
            normalize_format(fmt) for fmt in settings.convert_to_webp_formats
        )

    async def process(self, source_url: str) -> ImageAsset:
        """Run the attempt pipeline under the retry budget.

        Raises:
            ImageProcessingExhausted: every attempt failed; chained to the last error.
        """

        def log_failed_attempt(retry_state: RetryCallState) -> None:
            logger.warning(
                "Image attempt %d/%d failed for %s: %s",
                retry_state.attempt_number,
                self._attempts,
                source_url,
                retry_state.outcome.exception(),
                extra={"source_url": source_url, "attempt": retry_state.attempt_number},
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._attempts),
            after=log_failed_attempt,
        )
        try:
            return await retrying(self._process_once, source_url)
        except RetryError as exc:
            raise ImageProcessingExhausted(source_url, self._attempts) from (
                exc.last_attempt.exception()
            )

    async def _process_once(self, source_url: str) -> ImageAsset:
        data = await self._download(source_url)
        digest = content_hash(data)
        image_format, width, height = await asyncio.to_thread(inspect_image, data, source_url)

        key = storage_key(digest, image_format, self._convert_formats)
        if image_format in self._convert_formats:
            body = await asyncio.to_thread(convert_to_webp, data, self._webp_quality)
            content_type = WEBP_CONTENT_TYPE
        else:
            body = data
            content_type = mime_type_for(image_format)

        await self._limiter.acquire()
        await self._store.put_object(key, body, content_type)

        return ImageAsset(
            content_hash=digest,
            format=image_format,
            width=width,
            height=height,
            storage_key=key,
            content_type=content_type,
        )

    async def _download(self, url: str) -> bytes:
        await self._limiter.acquire()
        try:
            response = await self._http.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ImageProcessingError(f"Download failed for {url}: {exc}") from exc
        return response.content
