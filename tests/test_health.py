"""
Tests for health check endpoint.
"""
from unittest.mock import MagicMock

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from app.core.database import get_db
from app.main import app


def test_health_endpoint_returns_ok(client):
    """Test that /api/v1/health returns ok when DB is healthy."""
    response = client.get("/api/v1/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["ok"] is True
    assert data["db"] is True
    assert data["statuses"] == 5
    assert "environment" in data


def test_health_endpoint_with_db_failure():
    """Test that /api/v1/health returns 503 when DB is down."""
    def failing_get_db():
        session = MagicMock()
        session.execute.side_effect = SQLAlchemyError("Simulated DB failure")
        yield session

    app.dependency_overrides[get_db] = failing_get_db
    try:
        response = TestClient(app).get("/api/v1/health")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["detail"] == "Database connection failed"
    finally:
        app.dependency_overrides.clear()


def test_health_endpoint_trace_id_header(client):
    """RequestLoggingMiddleware adds the X-Trace-ID header."""
    response = client.get("/api/v1/health")

    assert "X-Trace-ID" in response.headers
    assert len(response.headers["X-Trace-ID"]) > 0


def test_incoming_trace_id_is_reused(client):
    response = client.get("/api/v1/health", headers={"X-Trace-ID": "mobile-1234"})

    assert response.headers["X-Trace-ID"] == "mobile-1234"
