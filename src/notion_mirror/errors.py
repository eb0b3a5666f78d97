"""Typed exception hierarchy for the page mirror.

Library errors (notion-client, httpx, botocore, Pillow) are translated into
these at the module that talks to the library, chained with ``raise ... from``.
"""


class MirrorError(Exception):
    """Base exception for all notion-mirror errors."""


class ContentApiError(MirrorError):
    """Raised when a Notion API call returns a non-success response or fails in transport."""

    def __init__(
        self,
        operation: str,
        status: int | None = None,
        code: str | None = None,
        body: str | None = None,
    ):
        detail = f"status={status}" if status is not None else "no response"
        if code:
            detail += f", code={code}"
        super().__init__(f"Notion {operation} failed ({detail}): {body or ''}".rstrip(": "))
        self.operation = operation
        self.status = status
        self.code = code
        self.body = body


class ImageProcessingError(MirrorError):
    """Raised when an image cannot be downloaded, inspected or uploaded."""


class UnrecognizedFormat(ImageProcessingError):
    """Raised when image bytes do not yield a known format with pixel dimensions."""

    def __init__(self, source_url: str, reason: str = ""):
        super().__init__(f"Unrecognized image format for {source_url}: {reason}".rstrip(": "))
        self.source_url = source_url


class ImageProcessingExhausted(ImageProcessingError):
    """Raised when every attempt in the retry budget failed."""

    def __init__(self, source_url: str, attempts: int):
        super().__init__(f"Image processing failed after {attempts} attempt(s): {source_url}")
        self.source_url = source_url
        self.attempts = attempts


class BlobStoreError(MirrorError):
    """Raised when an object cannot be written to blob storage."""

    def __init__(self, key: str, reason: str = ""):
        super().__init__(f"Upload failed for {key}: {reason}".rstrip(": "))
        self.key = key


class PageSyncFailure(MirrorError):
    """Raised when one page's sync aborts. Chained to the underlying cause."""

    def __init__(self, page_id: str, state: str, reason: str = ""):
        super().__init__(f"Sync failed for page {page_id} while {state}: {reason}".rstrip(": "))
        self.page_id = page_id
        self.state = state
