"""Tests for the exception hierarchy."""

from notion_mirror.errors import (
    BlobStoreError,
    ContentApiError,
    ImageProcessingError,
    ImageProcessingExhausted,
    MirrorError,
    PageSyncFailure,
    UnrecognizedFormat,
)


def test_hierarchy():
    """Every domain error derives from MirrorError; image errors share a base."""
    assert issubclass(ContentApiError, MirrorError)
    assert issubclass(UnrecognizedFormat, ImageProcessingError)
    assert issubclass(ImageProcessingExhausted, ImageProcessingError)
    assert issubclass(BlobStoreError, MirrorError)
    assert issubclass(PageSyncFailure, MirrorError)


def test_content_api_error_carries_upstream_details():
    """Status, code and body are kept as attributes and shown in the message."""
    err = ContentApiError("delete_block", status=409, code="conflict_error", body="Conflict")
    assert err.status == 409
    assert err.code == "conflict_error"
    assert str(err) == "Notion delete_block failed (status=409, code=conflict_error): Conflict"


def test_content_api_error_without_response():
    """Transport failures have no status."""
    err = ContentApiError("list_pages")
    assert err.status is None
    assert str(err) == "Notion list_pages failed (no response)"


def test_exhausted_reports_attempts():
    err = ImageProcessingExhausted("http://x/img.png", 3)
    assert err.attempts == 3
    assert "3 attempt(s)" in str(err)


def test_page_sync_failure_names_page_and_state():
    err = PageSyncFailure("page-1", "replacing", "boom")
    assert err.page_id == "page-1"
    assert str(err) == "Sync failed for page page-1 while replacing: boom"
