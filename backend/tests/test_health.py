"""
Tests for health check and root endpoints.
"""
from unittest.mock import AsyncMock, MagicMock

from httpx import AsyncClient, ASGITransport

from radiocalico.dependencies import get_backend
from radiocalico.main import app
from radiocalico.services.database import POSTGRES


async def test_root(client):
    """Root endpoint should name the service and the database in use."""
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] == "Welcome to RadioCalico API"
    assert data["status"] == "Server is running"
    expected = "PostgreSQL Connected" if client.backend.kind == POSTGRES else "SQLite Connected"
    assert data["database"] == expected


async def test_health_all_healthy(client):
    """Health check should return healthy when the database answers."""
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"] == "0.1.0"
    assert data["services"] == {"api": True, "database": True}


async def test_health_database_down():
    """Health check should report degraded when the database is unreachable."""
    backend = MagicMock()
    backend.kind = "sqlite"
    backend.ping = AsyncMock(return_value=False)
    app.dependency_overrides[get_backend] = lambda: backend

    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/health")
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["services"]["database"] is False
    assert data["version"] == "0.1.0"
