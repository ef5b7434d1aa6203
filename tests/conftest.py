import httpx
import pytest
from httpx import ASGITransport


@pytest.fixture
def mock_env(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    monkeypatch.setenv("CRAWL_INTER_REQUEST_DELAY", "0")
    monkeypatch.setenv("CRAWL_MAX_PAGES", "5")


@pytest.fixture
async def client(mock_env):
    from site_import.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c
