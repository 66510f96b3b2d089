"""Tests for GET /api/health."""
import pytest
from httpx import AsyncClient

from app.config import settings


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["gemini"] == "configured"
    assert data["models"][0] == settings.GEMINI_MODEL
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_health_degraded_without_key(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "")
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["gemini"] == "missing"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Manuscript Analyzer API"
    assert data["endpoints"]["analyze"] == "/analyze"
