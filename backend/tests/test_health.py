"""Health endpoints."""

import pytest

from salesdesk.routers import health


@pytest.mark.api
@pytest.mark.asyncio
class TestHealth:

    async def test_liveness_needs_no_auth(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["service"] == "SalesDesk"

    async def test_ready_when_database_answers(self, client, test_engine, monkeypatch):
        monkeypatch.setattr(health, "engine", test_engine)
        resp = await client.get("/health/ready")
        assert resp.status_code == 200
        assert resp.json()["checks"]["database"] == "ok"
