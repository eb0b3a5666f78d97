"""Tests for FastAPI app endpoints including scheduler authentication."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from notion_mirror.app import app, get_orchestrator, run_periodically
from notion_mirror.models import PageOutcome, PageState, SyncRun


@pytest.fixture
def client():
    """Create a TestClient scoped to this module (not session-scoped conftest)."""
    return TestClient(app)


@pytest.fixture
def orchestrator():
    """Install a mock orchestrator in place of the one built by the lifespan."""
    mock = MagicMock()
    mock.is_running = False
    mock.start_background_run = MagicMock(return_value=True)
    mock.run_sync = AsyncMock(
        return_value=SyncRun(
            started_at=datetime(2026, 10, 17, tzinfo=timezone.utc),
            outcomes={
                "p1": PageOutcome(page_id="p1", state=PageState.DONE),
                "p2": PageOutcome(page_id="p2", state=PageState.FAILED, error="boom"),
            },
        )
    )
    app.dependency_overrides[get_orchestrator] = lambda: mock
    yield mock
    app.dependency_overrides.pop(get_orchestrator, None)


def _auth():
    return {"X-Scheduler-Secret": "test-secret"}


def test_sync_endpoint_requires_auth(client: TestClient):
    """POST /sync without scheduler secret returns 403."""
    response = client.post("/sync")
    assert response.status_code == 403
    assert "Invalid scheduler secret" in response.json()["detail"]


def test_sync_endpoint_wrong_secret(client: TestClient):
    """POST /sync with wrong scheduler secret returns 403."""
    with patch("notion_mirror.app.get_settings") as mock_settings:
        mock_settings.return_value.scheduler_secret = "correct-secret"
        response = client.post("/sync", headers={"X-Scheduler-Secret": "wrong-secret"})
    assert response.status_code == 403


def test_sync_endpoint_starts_background_run(client: TestClient, orchestrator):
    """POST /sync with correct secret acknowledges and runs the sync in the background."""
    with patch("notion_mirror.app.get_settings") as mock_settings:
        mock_settings.return_value.scheduler_secret = "test-secret"
        response = client.post("/sync", headers=_auth())

    assert response.status_code == 200
    assert response.json() == {"status": "started"}
    orchestrator.start_background_run.assert_called_once_with()
    orchestrator.run_sync.assert_not_called()


def test_sync_endpoint_wait_returns_summary(client: TestClient, orchestrator):
    """POST /sync?wait=true runs inline and returns per-page outcomes."""
    with patch("notion_mirror.app.get_settings") as mock_settings:
        mock_settings.return_value.scheduler_secret = "test-secret"
        response = client.post("/sync?wait=true", headers=_auth())

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["succeeded"] == 1
    assert body["failed"] == 1
    assert body["errors"] == {"p2": "boom"}


def test_sync_endpoint_already_running(client: TestClient, orchestrator):
    """A trigger while a run is in progress does not start another one."""
    orchestrator.start_background_run.return_value = False
    with patch("notion_mirror.app.get_settings") as mock_settings:
        mock_settings.return_value.scheduler_secret = "test-secret"
        response = client.post("/sync", headers=_auth())

    assert response.json() == {"status": "already_running"}
    orchestrator.run_sync.assert_not_called()


def test_sync_endpoint_without_pipeline_returns_503(client: TestClient):
    """Before the lifespan has built the pipeline, the trigger answers 503."""
    with patch("notion_mirror.app.get_settings") as mock_settings:
        mock_settings.return_value.scheduler_secret = "test-secret"
        response = client.post("/sync", headers=_auth())
    assert response.status_code == 503


async def test_run_periodically_repeats_runs():
    """The schedule loop starts a new run after each interval until cancelled."""
    orchestrator = MagicMock()
    orchestrator.run_sync = AsyncMock()

    with patch("notion_mirror.app.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        mock_sleep.side_effect = [None, None, RuntimeError("stop")]
        with pytest.raises(RuntimeError):
            await run_periodically(orchestrator, 30)

    assert orchestrator.run_sync.await_count == 3
    mock_sleep.assert_awaited_with(30)


def test_sync_endpoint_wait_while_running(client: TestClient, orchestrator):
    """An inline trigger during a run answers already_running instead of queueing."""
    orchestrator.is_running = True
    with patch("notion_mirror.app.get_settings") as mock_settings:
        mock_settings.return_value.scheduler_secret = "test-secret"
        response = client.post("/sync?wait=true", headers=_auth())

    assert response.json() == {"status": "already_running"}
    orchestrator.run_sync.assert_not_called()
