import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Set env BEFORE any app import; the process-wide Settings are read once.
os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("SITE_TRUSTED_HOSTS", "localhost,testserver")

from helpers import FakeResponse  # noqa: E402

from site_backend.app.services import tiktok  # noqa: E402

TIKTOK_ENV = {
    "TIKTOK_CLIENT_KEY": "client-key",
    "TIKTOK_CLIENT_SECRET": "client-secret",
    "TIKTOK_REDIRECT_URI": "http://site.test/api/auth/callback/tiktok",
    "SITE_BASE_URL": "http://site.test",
    "SESSION_SECRET": "session-secret",
}

_CONFIG_VARS = (
    "TIKTOK_CLIENT_KEY",
    "TIKTOK_CLIENT_SECRET",
    "TIKTOK_REDIRECT_URI",
    "NEXT_PUBLIC_TIKTOK_REDIRECT_URI",
    "SITE_BASE_URL",
    "NEXTAUTH_URL",
    "SESSION_SECRET",
    "NEXTAUTH_SECRET",
    "TIKTOK_SCOPES",
    "TIKTOK_HTTP_TIMEOUT",
    "TIKTOK_VIDEO_PAGE_SIZE",
    "TIKTOK_STATE_TTL_SECONDS",
    "TIKTOK_PROFILE_MAX_AGE_SECONDS",
    "TIKTOK_BIND_PROFILE_TO_TOKEN",
)


@pytest.fixture(autouse=True)
def isolate_tiktok_env(monkeypatch):
    """Strip any real TikTok credentials from the environment."""
    for name in _CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tiktok_env(monkeypatch) -> dict[str, str]:
    for name, value in TIKTOK_ENV.items():
        monkeypatch.setenv(name, value)
    return dict(TIKTOK_ENV)


@pytest.fixture
def fake_http(monkeypatch) -> MagicMock:
    """
    Replace the outbound HTTP calls made by the TikTok helpers.

    ``fake_http.post`` / ``fake_http.get`` are MagicMocks, so tests can set
    return values and assert call counts.
    """
    fake = MagicMock()
    fake.post.return_value = FakeResponse(500, {"error": {"code": "unconfigured_fake"}})
    fake.get.return_value = FakeResponse(500, {"error": {"code": "unconfigured_fake"}})
    monkeypatch.setattr(tiktok.requests, "post", fake.post)
    monkeypatch.setattr(tiktok.requests, "get", fake.get)
    return fake


@pytest.fixture
def client() -> TestClient:
    from site_backend.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

