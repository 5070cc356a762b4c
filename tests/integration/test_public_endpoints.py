import pytest
from httpx import ASGITransport, AsyncClient

from storefront_api.core.config import settings
from storefront_api.main import app


@pytest.mark.anyio
async def test_root_endpoint_basic_response():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/")
    assert resp.status_code == 200
    body = resp.json()
    assert body.get("message") == settings.APP_NAME
    assert body.get("status") == "operational"


@pytest.mark.anyio
async def test_health_endpoint():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert "rate_provider" in body
    assert "fallback_rates" in body


@pytest.mark.anyio
async def test_metrics_json_endpoint():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        await client.get("/")
        resp = await client.get("/metrics/json")
    assert resp.status_code == 200
    body = resp.json()
    assert "counters" in body
    assert "request_latency" in body
