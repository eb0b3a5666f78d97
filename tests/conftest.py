"""Shared test fixtures."""

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from notion_mirror.app import app
from notion_mirror.config import Settings
from notion_mirror.rate_limit import RateLimiter


@pytest.fixture(scope="session")
def client() -> TestClient:
    """Create a TestClient for the FastAPI app."""
    return TestClient(app)


def _make_settings(**overrides) -> Settings:
    """Settings with test defaults, ignoring any local .env file."""
    defaults = {
        "notion_api_key": "secret-test",
        "notion_database_id": "db-123",
        "image_base_url": "https://img.example.com",
        "convert_to_webp_formats": ["bmp"],
        "image_retry_attempts": 3,
        "rate_limit_requests": 1,
        "rate_limit_period_seconds": 0.0,
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def _make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (4, 3)) -> bytes:
    """Render a tiny solid-colour image in the given Pillow format."""
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_settings():
    """Factory for Settings with per-test overrides."""
    return _make_settings


@pytest.fixture
def settings() -> Settings:
    return _make_settings()


@pytest.fixture
def make_image_bytes():
    """Factory for in-memory image bytes."""
    return _make_image_bytes


@pytest.fixture
def limiter() -> RateLimiter:
    """A limiter with zero spacing so tests never sleep."""
    return RateLimiter(requests=1, period=0.0)
