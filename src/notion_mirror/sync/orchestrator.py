"""Page sync orchestrator: one run over every eligible page in the database.

Per page, in order:
1. Fetch all child blocks
2. Rewrite them (images re-hosted concurrently)
3. Delete every original block, waiting for all deletes
4. Append the rewritten blocks in chunks of 100, one chunk at a time
5. Mark the page as synchronized

A failure at any step stops that page only. Pages run concurrently and the
shared rate limiter is the only throttle.
"""

import asyncio
import logging
from contextlib import suppress
from datetime import datetime, timezone

from notion_mirror.config import Settings
from notion_mirror.errors import PageSyncFailure
from notion_mirror.models import Page, PageOutcome, PageState, SyncRun
from notion_mirror.notion.blocks import chunk_blocks
from notion_mirror.notion.client import ContentApiClient
from notion_mirror.sync.rewriter import BlockRewriter

logger = logging.getLogger(__name__)


class PageSyncOrchestrator:
    """Drives sync runs. Runs are serialized: a second call waits for the first."""

    def __init__(self, api: ContentApiClient, rewriter: BlockRewriter, settings: Settings):
        self._api = api
        self._rewriter = rewriter
        self._database_id = settings.notion_database_id
        self._strict_deletes = settings.strict_deletes
        self._run_lock = asyncio.Lock()
        self._background: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        """True while a run holds the lock or a background run is scheduled."""
        if self._background is not None and not self._background.done():
            return True
        return self._run_lock.locked()

    def start_background_run(self) -> bool:
        """Schedule a run as a task unless one is already running or scheduled.

        Returns False when busy. The check and the scheduling happen without
        yielding, so concurrent triggers cannot both start a run.
        """
        if self.is_running:
            return False
        self._background = asyncio.create_task(self.run_sync())
        return True

    async def stop(self) -> None:
        """Cancel a scheduled background run and wait for it to unwind."""
        if self._background is not None and not self._background.done():
            self._background.cancel()
            with suppress(asyncio.CancelledError):
                await self._background

    async def run_sync(self) -> SyncRun:
        """List eligible pages and sync them all. Never raises; failures land on the SyncRun."""
        async with self._run_lock:
            run = SyncRun(started_at=datetime.now(timezone.utc))
            try:
                run.pages = await self._api.list_pages(self._database_id)
            except Exception as exc:
                logger.error(
                    "Failed to list pages for database %s: %s",
                    self._database_id,
                    exc,
                    exc_info=True,
                )
                run.listing_error = str(exc)
                run.finished_at = datetime.now(timezone.utc)
                return run

            outcomes = await asyncio.gather(*(self.sync_page(page) for page in run.pages))
            run.outcomes = {outcome.page_id: outcome for outcome in outcomes}
            run.finished_at = datetime.now(timezone.utc)

        logger.info("Finish updating for all pages", extra=run.summary())
        return run

    async def sync_page(self, page: Page) -> PageOutcome:
        """Replace one page's content. Returns a DONE or FAILED outcome, never raises."""
        outcome = PageOutcome(page_id=page.id, title=page.title, state=PageState.FETCHING)
        try:
            await self._replace_page(page, outcome)
        except PageSyncFailure as failure:
            outcome.failed_in = outcome.state
            outcome.state = PageState.FAILED
            outcome.error = str(failure.__cause__ or failure)
            logger.error(
                "Failed to sync page %s while %s: %s",
                page.label,
                failure.state,
                outcome.error,
                exc_info=failure,
                extra={"page_id": page.id, "page_state": failure.state},
            )
            return outcome

        logger.info(
            "Finish updating for page: %s",
            page.label,
            extra={
                "page_id": page.id,
                "deleted_blocks": outcome.deleted_blocks,
                "appended_blocks": outcome.appended_blocks,
            },
        )
        return outcome

    async def _replace_page(self, page: Page, outcome: PageOutcome) -> None:
        """Run the page state machine, wrapping any error in PageSyncFailure."""
        try:
            outcome.state = PageState.FETCHING
            page.blocks = await self._api.list_blocks(page.id)
            outcome.original_blocks = len(page.blocks)

            outcome.state = PageState.REWRITING
            rewritten = await self._rewriter.rewrite_all(page.blocks)

            # Every delete must finish before the first append: children are positional.
            outcome.state = PageState.REPLACING
            await self._delete_blocks(page, outcome)
            for chunk in chunk_blocks(rewritten):
                await self._api.append_blocks(page.id, chunk)
                outcome.append_calls += 1
                outcome.appended_blocks += len(chunk)

            outcome.state = PageState.MARKING
            await self._api.mark_synchronized(page.id)

            outcome.state = PageState.DONE
        except Exception as exc:
            raise PageSyncFailure(page.id, outcome.state.value, str(exc)) from exc

    async def _delete_blocks(self, page: Page, outcome: PageOutcome) -> None:
        block_ids = [block["id"] for block in page.blocks if block.get("id")]
        results = await asyncio.gather(
            *(self._api.delete_block(block_id) for block_id in block_ids),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, Exception)]
        outcome.deleted_blocks = len(block_ids) - len(failures)
        if not failures:
            return
        if self._strict_deletes:
            raise failures[0]
        logger.warning(
            "Skipped %d failed delete(s) on page %s: %s",
            len(failures),
            page.label,
            failures[0],
            extra={"page_id": page.id},
        )
