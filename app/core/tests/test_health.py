"""
Tests for the health check endpoint.
"""

from __future__ import annotations

import pytest

HEALTH_URL = "/health/"


@pytest.mark.django_db
class TestHealthCheck:
    def test_healthy(self, client):
        response = client.get(HEALTH_URL)

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
        }

    def test_database_down(self, client, mocker):
        mocker.patch("core.views._database_ok", return_value=False)

        response = client.get(HEALTH_URL)

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "disconnected"
