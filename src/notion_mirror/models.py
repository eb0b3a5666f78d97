"""Domain models for pages, image assets and sync runs."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Page(BaseModel):
    """A Notion database page eligible for mirroring.

    Blocks are fetched lazily by the orchestrator, so ``blocks`` starts empty.
    """

    id: str
    title: str | None = None
    synchronized: bool = False
    blocks: list[dict] = Field(default_factory=list)

    @property
    def label(self) -> str:
        """Human-readable name for log lines: title when known, else id."""
        return self.title or self.id


class ImageAsset(BaseModel):
    """An uploaded image, addressed by the md5 of its original bytes."""

    model_config = ConfigDict(frozen=True)

    content_hash: str
    format: str  # lowercase Pillow format name, e.g. "png", "jpeg"
    width: int
    height: int
    storage_key: str  # "{content_hash}.{ext}"
    content_type: str


class PageState(str, Enum):
    """Per-page sync state machine."""

    FETCHING = "fetching"
    REWRITING = "rewriting"
    REPLACING = "replacing"
    MARKING = "marking"
    DONE = "done"
    FAILED = "failed"


class PageOutcome(BaseModel):
    """Terminal result of syncing one page."""

    page_id: str
    title: str | None = None
    state: PageState
    error: str | None = None
    failed_in: PageState | None = None  # state the page was in when it failed
    original_blocks: int = 0
    deleted_blocks: int = 0
    appended_blocks: int = 0
    append_calls: int = 0


class SyncRun(BaseModel):
    """One orchestration pass. Ephemeral, never persisted."""

    started_at: datetime
    finished_at: datetime | None = None
    pages: list[Page] = Field(default_factory=list)
    outcomes: dict[str, PageOutcome] = Field(default_factory=dict)
    listing_error: str | None = None

    @property
    def errors(self) -> dict[str, str]:
        """Error text keyed by page id, for pages that ended in FAILED."""
        return {
            page_id: outcome.error or ""
            for page_id, outcome in self.outcomes.items()
            if outcome.state == PageState.FAILED
        }

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes.values() if o.state == PageState.DONE)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes.values() if o.state == PageState.FAILED)

    def summary(self) -> dict:
        """Compact JSON-friendly summary for log lines and HTTP responses."""
        return {
            "pages": len(self.pages),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": self.errors,
            "listing_error": self.listing_error,
        }
