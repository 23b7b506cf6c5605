"""Integration tests for the health check.

Covers:
- GET /health reports every dependency and answers 200 when all are up
- A failing dependency turns the check 503 and is logged
- The check needs no credentials
"""

import logging

import pytest

from modules.core import views

pytestmark = pytest.mark.integration


class TestHealthCheck:
    def test_healthy(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert set(body["services"]) == {"database", "cache"}
        assert all(service["status"] == "up" for service in body["services"].values())
        assert "timestamp" in body

    def test_dependency_down(self, api_client, monkeypatch, caplog):
        def broken_cache():
            raise ConnectionError("redis unreachable")

        monkeypatch.setitem(views.CHECKS, "cache", broken_cache)

        with caplog.at_level(logging.ERROR, logger="modules.core.views"):
            response = api_client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["services"]["cache"] == {"status": "down"}
        assert body["services"]["database"]["status"] == "up"
        assert any("health_check.service_down" in r.getMessage() for r in caplog.records)

    def test_ignores_bearer_header(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer expired")
        assert api_client.get("/health").status_code == 200
