"""Block rewriting: pass-through copies and re-hosted image blocks."""

import asyncio
import logging

from notion_mirror.config import Settings
from notion_mirror.errors import ImageProcessingExhausted
from notion_mirror.images.processor import ImageProcessor
from notion_mirror.models import ImageAsset
from notion_mirror.notion.blocks import (
    build_external_image_block,
    image_caption,
    image_source_url,
    is_image_block,
    strip_volatile_fields,
)

logger = logging.getLogger(__name__)


def asset_url(base_url: str, asset: ImageAsset | None) -> str:
    """External URL for an uploaded asset; the zero-size placeholder when there is none."""
    base = base_url.rstrip("/")
    if asset is None:
        return f"{base}/?w=0&h=0"
    return f"{base}/{asset.storage_key}?w={asset.width}&h={asset.height}"


class BlockRewriter:
    """Produces the block list that replaces a page's original content.

    Non-image blocks are copied without their volatile fields. Image blocks
    are re-hosted through the ImageProcessor and replaced with an external
    image block. Image blocks without any source URL are dropped.
    """

    def __init__(self, processor: ImageProcessor, settings: Settings):
        self._processor = processor
        self._image_base_url = settings.image_base_url
        self._strict_images = settings.strict_image_failures

    async def rewrite(self, block: dict) -> dict | None:
        if not is_image_block(block):
            return strip_volatile_fields(block)

        source_url = image_source_url(block)
        if not source_url:
            logger.info("Dropping image block %s with no source URL", block.get("id"))
            return None

        try:
            asset = await self._processor.process(source_url)
        except ImageProcessingExhausted as exc:
            if self._strict_images:
                raise
            logger.error(
                "Image left as placeholder after %d attempt(s): %s",
                exc.attempts,
                source_url,
                extra={"block_id": block.get("id")},
            )
            asset = None

        return build_external_image_block(
            asset_url(self._image_base_url, asset),
            image_caption(block),
        )

    async def rewrite_all(self, blocks: list[dict]) -> list[dict]:
        """Rewrite every block concurrently; keep original order and omit dropped blocks.

        The first failure cancels the remaining rewrites and is raised as-is.
        """
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(self.rewrite(block)) for block in blocks]
        except ExceptionGroup as failures:
            raise failures.exceptions[0] from None
        rewritten = (task.result() for task in tasks)
        return [block for block in rewritten if block is not None]
