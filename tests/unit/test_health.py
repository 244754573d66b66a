"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)

HEALTHY_DB = {
    "healthy": True,
    "service": "database_pool",
    "connection_time_ms": 1.2,
    "pool_stats": {"pool_size": 4, "pool_available": 3, "pool_utilization_percent": 25.0},
}


def test_healthz_endpoint():
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "attention-feed"}


def test_readyz_all_services_healthy():
    with (
        patch("app.routes.health.fast_redis.ping", new=AsyncMock(return_value=True)),
        patch("app.routes.health.db_health_check", new=AsyncMock(return_value=HEALTHY_DB)),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["redis"]["ok"] is True
    assert data["checks"]["database"]["pool_size"] == 4


def test_readyz_tolerates_missing_redis():
    with (
        patch("app.routes.health.fast_redis.ping", new=AsyncMock(return_value=False)),
        patch("app.routes.health.db_health_check", new=AsyncMock(return_value=HEALTHY_DB)),
    ):
        data = client.get("/readyz").json()

    assert data["overall_ok"] is True
    assert data["checks"]["redis"]["ok"] is False


def test_readyz_database_unhealthy():
    unhealthy = {"healthy": False, "service": "database_pool", "error": "Pool not available"}
    with (
        patch("app.routes.health.fast_redis.ping", new=AsyncMock(return_value=True)),
        patch("app.routes.health.db_health_check", new=AsyncMock(return_value=unhealthy)),
    ):
        data = client.get("/readyz").json()

    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Pool not available"
