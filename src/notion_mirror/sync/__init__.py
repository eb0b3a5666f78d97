"""Sync pipeline: block rewriting and page orchestration."""

from notion_mirror.sync.orchestrator import PageSyncOrchestrator
from notion_mirror.sync.rewriter import BlockRewriter, asset_url

__all__ = [
    "asset_url",
    "BlockRewriter",
    "PageSyncOrchestrator",
]
