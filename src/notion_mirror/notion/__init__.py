"""Notion access: rate-limited client and block helpers."""

from notion_mirror.notion.blocks import (
    MAX_BLOCKS_PER_APPEND,
    VOLATILE_BLOCK_FIELDS,
    build_external_image_block,
    chunk_blocks,
    image_caption,
    image_source_url,
    is_image_block,
    page_title,
    strip_volatile_fields,
)
from notion_mirror.notion.client import ContentApiClient, create_notion_client

__all__ = [
    "build_external_image_block",
    "chunk_blocks",
    "ContentApiClient",
    "create_notion_client",
    "image_caption",
    "image_source_url",
    "is_image_block",
    "MAX_BLOCKS_PER_APPEND",
    "page_title",
    "strip_volatile_fields",
    "VOLATILE_BLOCK_FIELDS",
]
