"""Rate-limited Notion client for reading and rewriting database pages.

Wraps the official async SDK. Every HTTP call waits for a token from the
shared RateLimiter first, and every failure comes out as ContentApiError.
No retries happen here: listing failures are one-shot by design of the
caller, and the image pipeline retries at its own level.
"""

import logging
from collections.abc import Awaitable, Callable

import httpx
from notion_client import AsyncClient
from notion_client import errors as notion_errors

from notion_mirror.config import Settings
from notion_mirror.errors import ContentApiError
from notion_mirror.models import Page
from notion_mirror.notion.blocks import MAX_BLOCKS_PER_APPEND, page_title
from notion_mirror.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

_PAGE_SIZE = 100


def create_notion_client(settings: Settings) -> AsyncClient:
    """Build the SDK client; it sends the bearer token and Notion-Version header on every call."""
    return AsyncClient(
        auth=settings.notion_api_key,
        base_url=settings.notion_base_url,
        notion_version=settings.notion_version,
    )


def _error_code(exc: Exception) -> str | None:
    code = getattr(exc, "code", None)
    if code is None:
        return None
    return getattr(code, "value", str(code))


class ContentApiClient:
    """Paginated read/write access to a Notion database's pages and blocks."""

    def __init__(self, notion: AsyncClient, limiter: RateLimiter, settings: Settings):
        self._notion = notion
        self._limiter = limiter
        self._settings = settings

    async def aclose(self) -> None:
        await self._notion.aclose()

    async def _call(self, operation: str, request: Callable[[], Awaitable[dict]]) -> dict:
        """Acquire a token, run one SDK request, translate failures to ContentApiError."""
        await self._limiter.acquire()
        try:
            return await request()
        except notion_errors.HTTPResponseError as exc:
            body = getattr(exc, "body", None)
            raise ContentApiError(
                operation,
                status=getattr(exc, "status", None),
                code=_error_code(exc),
                body=str(body) if body else str(exc),
            ) from exc
        except (notion_errors.RequestTimeoutError, httpx.HTTPError) as exc:
            raise ContentApiError(operation, body=str(exc) or type(exc).__name__) from exc

    async def _collect(
        self,
        operation: str,
        fetch: Callable[[str | None], Awaitable[dict]],
    ) -> list[dict]:
        """Follow has_more/next_cursor until exhausted, concatenating every page of results."""
        results: list[dict] = []
        cursor: str | None = None
        while True:
            response = await self._call(operation, lambda: fetch(cursor))
            results.extend(response.get("results", []))
            if not response.get("has_more") or not response.get("next_cursor"):
                break
            cursor = response["next_cursor"]
        return results

    def _query_filter(self) -> dict:
        published = {
            "property": self._settings.published_property,
            "checkbox": {"equals": True},
        }
        if not self._settings.filter_unsynchronized:
            return published
        unsynchronized = {
            "property": self._settings.synchronized_property,
            "checkbox": {"equals": False},
        }
        return {"and": [published, unsynchronized]}

    async def list_pages(self, database_id: str) -> list[Page]:
        """Return every published, not-yet-synchronized page, newest publish date first."""
        body: dict = {
            "filter": self._query_filter(),
            "sorts": [
                {
                    "property": self._settings.published_at_property,
                    "direction": "descending",
                }
            ],
            "page_size": _PAGE_SIZE,
        }

        async def fetch(cursor: str | None) -> dict:
            payload = dict(body, start_cursor=cursor) if cursor else body
            return await self._notion.request(
                path=f"databases/{database_id}/query",
                method="POST",
                body=payload,
            )

        raw_pages = await self._collect("list_pages", fetch)
        synced_prop = self._settings.synchronized_property
        pages = [
            Page(
                id=raw["id"],
                title=page_title(raw),
                synchronized=bool(
                    (raw.get("properties") or {}).get(synced_prop, {}).get("checkbox", False)
                ),
            )
            for raw in raw_pages
        ]
        logger.info("Listed %d page(s) from database %s", len(pages), database_id)
        return pages

    async def list_blocks(self, page_id: str) -> list[dict]:
        """Return every top-level child block of a page, in document order."""

        async def fetch(cursor: str | None) -> dict:
            kwargs: dict = {"block_id": page_id, "page_size": _PAGE_SIZE}
            if cursor:
                kwargs["start_cursor"] = cursor
            return await self._notion.blocks.children.list(**kwargs)

        return await self._collect("list_blocks", fetch)

    async def append_blocks(self, page_id: str, blocks: list[dict]) -> dict:
        """Append up to 100 blocks to the end of a page in one call."""
        if len(blocks) > MAX_BLOCKS_PER_APPEND:
            raise ValueError(
                f"Cannot append {len(blocks)} blocks in one call (limit {MAX_BLOCKS_PER_APPEND})"
            )
        return await self._call(
            "append_blocks",
            lambda: self._notion.blocks.children.append(block_id=page_id, children=blocks),
        )

    async def delete_block(self, block_id: str) -> bool:
        """Delete one block. Returns False when it was already gone (not an error)."""
        try:
            await self._call("delete_block", lambda: self._notion.blocks.delete(block_id=block_id))
        except ContentApiError as exc:
            if exc.status == 404 or exc.code == "object_not_found":
                logger.info("Block %s already deleted", block_id)
                return False
            raise
        return True

    async def mark_synchronized(self, page_id: str) -> None:
        """Flip the page's synchronized checkbox so later runs skip it."""
        await self._call(
            "mark_synchronized",
            lambda: self._notion.pages.update(
                page_id=page_id,
                properties={self._settings.synchronized_property: {"checkbox": True}},
            ),
        )
