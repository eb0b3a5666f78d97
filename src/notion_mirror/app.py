"""FastAPI application: wiring, health endpoint and sync trigger."""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from pathlib import Path

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.staticfiles import StaticFiles

from notion_mirror.config import Settings, get_settings
from notion_mirror.images.processor import ImageProcessor
from notion_mirror.images.storage import create_blob_store
from notion_mirror.logging_config import configure_logging
from notion_mirror.notion.client import ContentApiClient, create_notion_client
from notion_mirror.rate_limit import RateLimiter
from notion_mirror.sync.orchestrator import PageSyncOrchestrator
from notion_mirror.sync.rewriter import BlockRewriter

logger = logging.getLogger(__name__)


def build_orchestrator(
    settings: Settings, http: httpx.AsyncClient
) -> tuple[PageSyncOrchestrator, ContentApiClient]:
    """Wire every component around one shared rate limiter."""
    limiter = RateLimiter(settings.rate_limit_requests, settings.rate_limit_period_seconds)
    api = ContentApiClient(create_notion_client(settings), limiter, settings)
    processor = ImageProcessor(http, create_blob_store(settings), limiter, settings)
    rewriter = BlockRewriter(processor, settings)
    return PageSyncOrchestrator(api, rewriter, settings), api


async def run_periodically(orchestrator: PageSyncOrchestrator, interval_seconds: float) -> None:
    """Start a run every ``interval_seconds`` after the previous one finishes."""
    while True:
        await orchestrator.run_sync()
        await asyncio.sleep(interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: configure logging, build the sync pipeline, start the schedule."""
    settings = get_settings()
    configure_logging(settings.log_level)
    app.state.settings = settings

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.image_download_timeout_seconds),
        follow_redirects=True,
    ) as http:
        orchestrator, api = build_orchestrator(settings, http)
        app.state.orchestrator = orchestrator

        if settings.blob_backend == "local":
            Path(settings.local_blob_dir).mkdir(parents=True, exist_ok=True)
            app.mount("/images", StaticFiles(directory=settings.local_blob_dir), name="images")

        schedule = None
        if settings.sync_interval_seconds > 0:
            logger.info("Scheduling sync every %ds", settings.sync_interval_seconds)
            schedule = asyncio.create_task(
                run_periodically(orchestrator, settings.sync_interval_seconds)
            )
        try:
            yield
        finally:
            if schedule is not None:
                schedule.cancel()
                with suppress(asyncio.CancelledError):
                    await schedule
            await orchestrator.stop()
            await api.aclose()


app = FastAPI(
    title="Notion Mirror",
    lifespan=lifespan,
)


async def verify_scheduler(request: Request) -> None:
    """Verify the scheduler secret header for protected endpoints.

    Compares the X-Scheduler-Secret header against the configured secret.
    Raises HTTPException 403 if the header is missing, empty, or mismatched.
    """
    settings = get_settings()
    secret = request.headers.get("X-Scheduler-Secret", "")
    if not settings.scheduler_secret or secret != settings.scheduler_secret:
        raise HTTPException(status_code=403, detail="Invalid scheduler secret")


def get_orchestrator(request: Request) -> PageSyncOrchestrator:
    """Return the orchestrator built by the lifespan; 503 until it exists."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Sync pipeline not initialized")
    return orchestrator


@app.get("/health")
async def health():
    """Health check endpoint for Cloud Run and local development."""
    return {
        "status": "ok",
        "service": "notion-mirror",
        "version": "0.1.0",
    }


@app.post("/sync")
async def sync_endpoint(
    wait: bool = False,
    _: None = Depends(verify_scheduler),
    orchestrator: PageSyncOrchestrator = Depends(get_orchestrator),
):
    """Trigger one sync run: in the background by default, inline with ?wait=true."""
    if wait:
        if orchestrator.is_running:
            return {"status": "already_running"}
        run = await orchestrator.run_sync()
        return {"status": "completed", **run.summary()}
    if not orchestrator.start_background_run():
        return {"status": "already_running"}
    return {"status": "started"}
