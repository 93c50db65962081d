from datetime import datetime, timezone

import httpx
import pytest
import pytest_asyncio

from travel_tools.config import CONFIG
from travel_tools.context import RequestContext, ToolContext


@pytest.fixture
def request_context() -> RequestContext:
    # Monday 19 Oct 2026, 12:00 UTC
    return RequestContext.create("UTC", now=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def provider_keys(monkeypatch):
    monkeypatch.setattr(CONFIG, "tavily_api_key", "tvly-test")
    monkeypatch.setattr(CONFIG, "openweather_api_key", "ow-test")
    monkeypatch.setattr(CONFIG, "google_maps_api_key", "gm-test")
    monkeypatch.setattr(CONFIG, "mapbox_access_token", "mb-test")
    monkeypatch.setattr(CONFIG, "tripadvisor_api_key", "ta-test")
    monkeypatch.setattr(CONFIG, "aviation_stack_api_key", "as-test")
    monkeypatch.setattr(CONFIG, "image_proxy_url", "")


@pytest_asyncio.fixture
async def http_client():
    async with httpx.AsyncClient(timeout=5) as client:
        yield client


@pytest.fixture
def annotations():
    return []


@pytest.fixture
def tool_context(request_context, http_client, annotations):
    return ToolContext(request=request_context, http=http_client, annotate=annotations.append)
